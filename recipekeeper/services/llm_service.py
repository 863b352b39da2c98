"""
Chat-completion client for local and cloud LLM providers.

Both providers speak the OpenAI ``/v1/chat/completions`` protocol:
- local: llama.cpp (or compatible) server, no auth
- cloud: OpenRouter-style endpoint, bearer key + attribution headers

Every failure is classified (see ``recipekeeper.utils.exceptions``) and
surfaced immediately; nothing here retries.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Optional

import httpx

from recipekeeper.config import Settings, settings as default_settings
from recipekeeper.utils.exceptions import (
    LLMConfigurationError,
    LLMInvalidResponseError,
    LLMRequestError,
    LLMUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PROVIDERS = ("local", "cloud")
_THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)


def strip_reasoning(content: str) -> str:
    """Remove ``<think>...</think>`` blocks emitted by reasoning models."""
    return _THINK_BLOCK.sub("", content or "").strip()


class LLMService:
    """Service for calling an OpenAI-compatible chat completion endpoint."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or default_settings
        self._transport = transport

    # ---------------------------------------------------------------------
    # Provider resolution
    # ---------------------------------------------------------------------

    def _endpoint(self, provider: str) -> Dict[str, Any]:
        """Base URL, model and headers for a provider; validates config first."""
        if provider == "local":
            return {
                "base_url": self.config.llm_local_base_url.rstrip("/"),
                "model": self.config.llm_local_model,
                "headers": {"Content-Type": "application/json"},
            }

        if provider == "cloud":
            if not self.config.llm_cloud_api_key:
                raise LLMConfigurationError(
                    "Cloud LLM provider requires LLM_CLOUD_API_KEY to be set."
                )
            return {
                "base_url": self.config.llm_cloud_base_url.rstrip("/"),
                "model": self.config.llm_cloud_model,
                "headers": {
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.config.llm_cloud_api_key}",
                    "HTTP-Referer": self.config.llm_app_url,
                    "X-Title": self.config.llm_app_title,
                },
            }

        raise ValidationError(f"Unknown LLM provider: {provider}")

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    async def chat(
        self,
        system: str,
        user: str,
        *,
        provider: str = "local",
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        no_think: bool = False,
    ) -> str:
        """
        Send one system + user exchange and return the cleaned reply text.

        Raises:
            LLMConfigurationError: provider is missing required settings
            LLMUnavailableError: local server refused the connection
            LLMRequestError: timeout, transport error or non-2xx status
            LLMInvalidResponseError: body unparsable or reply empty
        """
        endpoint = self._endpoint(provider)

        if no_think:
            user = f"{user}\n/no_think"

        body: Dict[str, Any] = {
            "model": endpoint["model"],
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens or self.config.llm_max_tokens,
            "temperature": self.config.llm_temperature if temperature is None else temperature,
            "top_p": self.config.llm_top_p,
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        url = f"{endpoint['base_url']}/v1/chat/completions"
        logger.info(
            f"Calling {provider} LLM",
            extra={"provider": provider, "model": endpoint["model"], "json_mode": json_mode},
        )

        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.config.llm_timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers=endpoint["headers"])
                response.raise_for_status()
        except httpx.ConnectError as e:
            if provider == "local":
                logger.error(f"Local LLM server unreachable at {endpoint['base_url']}: {e}")
                raise LLMUnavailableError(
                    "Local LLM server is not running. Start llama-server first."
                ) from e
            logger.error(f"Cloud LLM connection failed: {e}")
            raise LLMRequestError(f"Could not connect to cloud LLM provider: {e}") from e
        except httpx.TimeoutException as e:
            logger.error(f"{provider} LLM request timed out after {self.config.llm_timeout}s")
            raise LLMRequestError(
                f"LLM request timed out after {self.config.llm_timeout:g} seconds."
            ) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"{provider} LLM returned HTTP {e.response.status_code}")
            raise LLMRequestError(f"LLM request failed with HTTP {e.response.status_code}.") from e
        except httpx.HTTPError as e:
            logger.error(f"{provider} LLM request failed: {e}")
            raise LLMRequestError(f"LLM request failed: {e}") from e

        logger.info(f"{provider} LLM responded in {time.time() - start_time:.2f} seconds")

        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMInvalidResponseError(f"LLM returned an unexpected response body: {e}") from e
        if content is None:
            content = ""
        if not isinstance(content, str):
            raise LLMInvalidResponseError(
                f"LLM returned non-text message content ({type(content).__name__})."
            )

        cleaned = strip_reasoning(content)
        if not cleaned:
            raise LLMInvalidResponseError("LLM returned an empty response.")
        return cleaned
