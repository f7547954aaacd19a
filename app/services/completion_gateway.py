"""
Vision completion gateway.

One opaque call: (system prompt, user prompt, images, model options) -> text.
Transport and API failures are classified into the CompletionError family here;
no retries happen at this layer.
"""

from __future__ import annotations

import asyncio
import http
import logging
from typing import Any, Dict, List, Optional, Union

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.models.photo_import import EncodedImage
from app.utils.exceptions import AuthError, CompletionError, TransportError, UpstreamError
from app.utils.image_validation import split_data_url

logger = logging.getLogger(__name__)

AUTH_STATUS_CODES = (401, 403)


class CompletionGateway:
    """Interface for a single vision completion call."""

    async def call(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        images: List[EncodedImage],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        raise NotImplementedError


def classify_error(exc: BaseException) -> CompletionError:
    """Map an SDK / network exception onto the CompletionError taxonomy."""
    if isinstance(exc, CompletionError):
        return exc

    if isinstance(exc, genai_errors.APIError):
        code = getattr(exc, "code", None)
        message = exc.message or exc.status or _status_phrase(code)
        if code in AUTH_STATUS_CODES:
            return AuthError(f"Gemini rejected the API key ({code}): {message}")
        return UpstreamError(f"Gemini API error ({code}): {message}", status_code=code)

    if isinstance(exc, (httpx.HTTPError, OSError)):
        return TransportError(f"Could not reach Gemini: {exc.__class__.__name__}: {exc}")

    return CompletionError(f"Gemini call failed: {exc.__class__.__name__}: {exc}")


def _status_phrase(code: Optional[int]) -> str:
    try:
        return http.HTTPStatus(code).phrase
    except (TypeError, ValueError):
        return "unknown error"


def get_response_text(response: Any) -> str:
    """
    Extract text from a google-genai response.

    Tries response.text first, then candidates[0].content.parts[*].text.
    """
    try:
        text = getattr(response, "text", None)
        if isinstance(text, str) and text.strip():
            return text
    except ValueError:
        # .text raises when the candidate was blocked / has no text parts
        pass

    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str) and part_text.strip():
                return part_text
    return ""


class GeminiCompletionGateway(CompletionGateway):
    """Gateway backed by the google-genai SDK."""

    def __init__(self, api_key: Optional[str], client: Optional[genai.Client] = None) -> None:
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> genai.Client:
        """Get or create Gemini client (lazy initialization)."""
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    @staticmethod
    def build_contents(images: List[EncodedImage], user_prompt: str) -> List[Union[str, Dict[str, Any]]]:
        """Images first, in submission order, followed by the text prompt."""
        contents: List[Union[str, Dict[str, Any]]] = []
        for image in images:
            mime_type, data = split_data_url(image)
            contents.append({"inline_data": {"mime_type": mime_type, "data": data}})
        contents.append(user_prompt)
        return contents

    async def call(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        images: List[EncodedImage],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        if self._client is None and not (self._api_key and self._api_key.strip()):
            raise AuthError("Gemini API key is not configured")

        contents = self.build_contents(images, user_prompt)
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            max_output_tokens=max_tokens,
            temperature=temperature,
            response_mime_type="application/json",
        )

        def _sync_call() -> Any:
            return self.client.models.generate_content(model=model, contents=contents, config=config)

        logger.info("Gemini vision call (model=%s, images=%d, max_tokens=%d)", model, len(images), max_tokens)
        try:
            response = await asyncio.to_thread(_sync_call)
        except Exception as e:
            error = classify_error(e)
            logger.warning("Gemini vision call failed (%s): %s", error.kind, error)
            raise error from e

        text = get_response_text(response)
        if not text:
            raise UpstreamError("Gemini returned an empty response")
        logger.debug("Gemini raw response:\n%s", text)
        return text.strip()
