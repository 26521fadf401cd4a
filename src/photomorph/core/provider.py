"""External image/text generation provider.

The generation service never talks to a process-wide client.  Instead it is
handed an :class:`ImageProvider` instance at construction time, which keeps
the provider swappable (OpenAI, an OpenAI-compatible gateway such as
OpenRouter, or a fake in tests).

Provider Contract
-----------------
- ``generate_image(prompt)`` makes exactly one outbound call and returns a
  :class:`ProviderImage` holding either a URL or raw image bytes.
- ``write_instruction(description)`` makes one text-model call and returns
  the model's answer.  Callers treat it as best effort.
- ``check_connection()`` reports whether the provider answers at all.

Every failure surfaces as :class:`~photomorph.core.errors.GenerationError`
with a :class:`~photomorph.core.errors.GenerationCause`.  Nothing is retried:
the OpenAI client is built with ``max_retries=0``.

Usage
-----
::

    from photomorph.core.config import config
    from photomorph.core.provider import OpenAIImageProvider

    provider = OpenAIImageProvider(config)
    image = provider.generate_image("A pixel-art hero on a mountain top")
    print(image.url)
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import openai
from openai import OpenAI

from .config import PhotomorphConfig
from .errors import GenerationCause, GenerationError

logger = logging.getLogger(__name__)

INSTRUCTION_SYSTEM_PROMPT = (
    "You are an expert at creating image generation prompts. Create a detailed prompt to "
    "transform a person into a baby version while maintaining their key features and "
    "characteristics. Focus on making the face more round, eyes bigger, features softer, "
    "but keep the essence of the original person."
)


@dataclass(frozen=True)
class ProviderImage:
    """Image returned by a provider: a hosted URL or inline bytes."""

    url: str | None = None
    data: bytes | None = None

    def __post_init__(self):
        if not self.url and not self.data:
            raise ValueError("ProviderImage needs a url or data")


def classify_provider_error(error: Exception) -> GenerationCause:
    """Map an OpenAI client exception onto a failure category."""
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return GenerationCause.UNAUTHORIZED
    if isinstance(error, openai.RateLimitError):
        return GenerationCause.RATE_LIMITED
    if isinstance(error, openai.BadRequestError):
        code = getattr(error, "code", None) or ""
        if "content_policy" in code or "content policy" in str(error).lower():
            return GenerationCause.POLICY_VIOLATION
        return GenerationCause.UNKNOWN
    if isinstance(error, (openai.APIConnectionError, openai.InternalServerError)):
        return GenerationCause.UPSTREAM_UNAVAILABLE
    if isinstance(error, openai.APIStatusError) and error.status_code >= 500:
        return GenerationCause.UPSTREAM_UNAVAILABLE
    return GenerationCause.UNKNOWN


class ImageProvider(ABC):
    """Interface the generation service depends on."""

    name: str = "Base Provider"

    @abstractmethod
    def generate_image(self, prompt: str) -> ProviderImage:
        """Generate one image from ``prompt``.

        Raises:
            GenerationError: If the provider call fails
        """

    @abstractmethod
    def write_instruction(self, description: str) -> str:
        """Ask a text model to write an image instruction for ``description``.

        Raises:
            GenerationError: If the provider call fails or returns nothing
        """

    @abstractmethod
    def check_connection(self) -> bool:
        """Return True if the provider is reachable with our credentials."""


class OpenAIImageProvider(ImageProvider):
    """Provider backed by the OpenAI Python client.

    Works against api.openai.com or any OpenAI-compatible base URL.  The
    client is created lazily so the application can start without an API
    key and report ``provider_connected: false`` from the health check.
    """

    name = "OpenAI"

    def __init__(self, config: PhotomorphConfig) -> None:
        self._config = config
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if not self._config.openai_api_key:
            raise GenerationError(
                GenerationCause.UNAUTHORIZED, "Image provider API key is not configured"
            )
        if self._client is None:
            self._client = OpenAI(
                api_key=self._config.openai_api_key,
                base_url=self._config.openai_base_url,
                timeout=self._config.provider_timeout,
                max_retries=0,
            )
            logger.info(f"Created provider client (base_url={self._config.openai_base_url or 'default'})")
        return self._client

    def generate_image(self, prompt: str) -> ProviderImage:
        client = self._get_client()
        logger.info(f'Generating image with prompt: "{prompt[:100]}..."')
        try:
            result = client.images.generate(
                model=self._config.image_model,
                prompt=prompt,
                n=1,
                size=self._config.image_size,
                quality=self._config.image_quality,
            )
        except openai.OpenAIError as e:
            cause = classify_provider_error(e)
            logger.error(f"Image generation failed ({cause.value}): {e}")
            raise GenerationError(cause) from e

        if not result.data:
            raise GenerationError(GenerationCause.UNKNOWN, "Provider returned no image")

        data0 = result.data[0]
        url = getattr(data0, "url", None)
        if url:
            return ProviderImage(url=url)

        b64 = getattr(data0, "b64_json", None)
        if b64:
            return ProviderImage(data=base64.b64decode(b64))

        raise GenerationError(GenerationCause.UNKNOWN, "Provider returned neither url nor b64_json")

    def write_instruction(self, description: str) -> str:
        client = self._get_client()
        try:
            rsp = client.chat.completions.create(
                model=self._config.text_model,
                messages=[
                    {"role": "system", "content": INSTRUCTION_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Create a baby transformation prompt for: {description}",
                    },
                ],
                max_tokens=200,
            )
        except openai.OpenAIError as e:
            raise GenerationError(classify_provider_error(e)) from e

        text = ""
        if rsp.choices:
            text = (rsp.choices[0].message.content or "").strip()
        if not text:
            raise GenerationError(GenerationCause.UNKNOWN, "Provider returned an empty instruction")
        return text

    def check_connection(self) -> bool:
        if not self._config.openai_api_key:
            logger.warning("Provider API key is not configured")
            return False
        try:
            self._get_client().models.list()
        except openai.OpenAIError as e:
            logger.error(f"Provider connection test failed: {e}")
            return False
        logger.debug("Provider connection test successful")
        return True
