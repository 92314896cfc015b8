"""
Clients for the external vision model.

Two backends share one interface, `complete(messages, max_tokens, model)`,
which returns the raw reply text. OpenAI is used when OPENAI_API_KEY is set,
Gemini otherwise when GEMINI_API_KEY is set.

Any failure of the remote call surfaces as `UpstreamError(status, body)`
carrying the provider's own status code and error body.
"""

import base64
import binascii
import logging
import mimetypes
from typing import Any, Dict, List, Optional, Tuple

import httpx

# --- OPENAI IMPORTS ---
from openai import OpenAI, APIConnectionError, APIStatusError

# --- GEMINI IMPORTS ---
from google import genai
from google.genai import types
from google.genai.errors import APIError as GeminiAPIError

from instrument_lens.config import ServiceConfig
from instrument_lens.analysis_service.errors import UpstreamError

DEFAULT_IMAGE_MIME = "image/jpeg"


class VisionModelClient:
    """Interface every backend implements."""

    provider: str = ""

    def complete(self, messages: List[Dict[str, Any]], max_tokens: int, model: Optional[str] = None) -> str:
        """
        Send chat-style `messages` and return the reply text.

        Raises:
            UpstreamError: The remote call failed or returned an error status.
        """
        raise NotImplementedError


class OpenAIVisionClient(VisionModelClient):
    """
    Chat-completions backend.

    The SDK client carries the bearer credential, the request timeout and a
    bounded retry with exponential backoff for transient failures
    (connection errors, 408, 429, 5xx).
    """

    provider = "openai"

    def __init__(self, config: ServiceConfig, client: Optional[OpenAI] = None):
        self.default_model = config.analysis_model
        self.client = client or OpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    def complete(self, messages: List[Dict[str, Any]], max_tokens: int, model: Optional[str] = None) -> str:
        try:
            response = self.client.chat.completions.create(
                model=model or self.default_model,
                messages=messages,
                max_tokens=max_tokens,
            )
        except APIStatusError as e:
            body = _status_error_body(e)
            logging.error(f"OpenAI request failed: {e.status_code} {body}")
            raise UpstreamError(e.status_code, body)
        except APIConnectionError as e:
            logging.error(f"Could not reach the OpenAI API: {e}")
            raise UpstreamError(500, {"error": str(e) or "OpenAI request failed"})

        choices = response.choices or []
        content = choices[0].message.content if choices else None
        if not isinstance(content, str):
            # Let the extractor have a go at whatever came back
            content = response.model_dump_json()
        return content


def _status_error_body(e: APIStatusError) -> Any:
    try:
        return e.response.json()
    except ValueError:
        return e.response.text or e.body


class GeminiVisionClient(VisionModelClient):
    """
    `google.genai` backend.

    Chat-style messages are converted on the fly: system messages become the
    system instruction, data URLs become inline image bytes and other URLs
    become URI parts.
    """

    provider = "gemini"

    def __init__(self, config: ServiceConfig, client: Optional[genai.Client] = None):
        self.default_model = config.analysis_model
        self.client = client or genai.Client(
            api_key=config.gemini_api_key,
            http_options=types.HttpOptions(
                timeout=int(config.timeout_seconds * 1000),
                retry_options=types.HttpRetryOptions(attempts=config.max_retries + 1),
            ),
        )

    def complete(self, messages: List[Dict[str, Any]], max_tokens: int, model: Optional[str] = None) -> str:
        system_instruction, contents = to_gemini_contents(messages)
        try:
            response = self.client.models.generate_content(
                model=model or self.default_model,
                contents=contents,
                config=types.GenerateContentConfig(
                    max_output_tokens=max_tokens,
                    system_instruction=system_instruction,
                ),
            )
        except GeminiAPIError as e:
            body = e.details if e.details is not None else {"error": e.message}
            logging.error(f"Gemini request failed: {e.code} {body}")
            raise UpstreamError(e.code or 500, body)
        except httpx.HTTPError as e:
            logging.error(f"Could not reach the Gemini API: {e}")
            raise UpstreamError(500, {"error": str(e) or "Gemini request failed"})

        text = response.text
        if not isinstance(text, str):
            # Blocked or empty candidates still get passed on for extraction
            text = response.model_dump_json()
        return text


def to_gemini_contents(messages: List[Dict[str, Any]]) -> Tuple[Optional[str], List[types.Content]]:
    """
    Convert chat-style messages to (system_instruction, contents).
    """
    system_parts: List[str] = []
    contents: List[types.Content] = []

    for message in messages:
        role = message.get("role", "user")
        content = message.get("content")

        if role == "system":
            system_parts.append(content if isinstance(content, str) else str(content))
            continue

        if isinstance(content, str):
            parts = [types.Part.from_text(text=content)]
        else:
            parts = []
            for part in content or []:
                if part.get("type") == "image_url":
                    parts.append(image_part(part["image_url"]["url"]))
                elif part.get("type") == "text":
                    parts.append(types.Part.from_text(text=part["text"]))

        contents.append(types.Content(role="model" if role == "assistant" else "user", parts=parts))

    system_instruction = "\n\n".join(system_parts) if system_parts else None
    return system_instruction, contents


def image_part(reference: str) -> types.Part:
    """
    Turn an image reference into a Gemini part.

    Raises:
        UpstreamError: A data URL or raw base64 payload could not be decoded.
    """
    if reference.startswith(("http://", "https://", "gs://")):
        mime_type, _ = mimetypes.guess_type(reference)
        return types.Part.from_uri(file_uri=reference, mime_type=mime_type or DEFAULT_IMAGE_MIME)

    mime_type, payload = parse_data_url(reference)
    payload = "".join(payload.split())
    try:
        # Unpadded payloads are common in hand-built data URLs
        data = base64.b64decode(payload + "=" * (-len(payload) % 4))
    except (binascii.Error, ValueError):
        raise UpstreamError(500, {"error": "Image content could not be decoded for Gemini"})
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def parse_data_url(reference: str) -> Tuple[str, str]:
    """
    Split "data:<mime>;base64,<payload>" into (mime, payload).

    Raw base64 without the data: prefix is treated as JPEG.
    """
    if not reference.startswith("data:"):
        return DEFAULT_IMAGE_MIME, reference

    header, _, payload = reference.partition(",")
    mime_type = header[len("data:"):].split(";", 1)[0] or DEFAULT_IMAGE_MIME
    return mime_type, payload


def build_vision_client(config: ServiceConfig) -> Optional[VisionModelClient]:
    """
    Create the client for the configured provider, or None without a credential.
    """
    if config.provider == "openai":
        logging.info(f"Using OpenAI backend (model={config.analysis_model}).")
        return OpenAIVisionClient(config)
    if config.provider == "gemini":
        logging.info(f"Using Gemini backend (model={config.analysis_model}).")
        return GeminiVisionClient(config)
    return None
