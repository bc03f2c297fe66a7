"""Provider interface behind the model gateway, plus the shared SDK adapter."""

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import Any

from config.config_loader import ModelConfig
from src.models import ModelResponse

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """A model call that produced no usable text."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """One registered model id. The gateway only sees this interface."""

    @abstractmethod
    def name(self) -> str:
        """Return the registered model id (e.g. 'openai', 'together-mixtral')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the vendor's model identifier."""
        ...

    @abstractmethod
    async def generate(self, prompt: str) -> ModelResponse:
        """Send prompt as a single user message and return the reply.

        Raises:
            ProviderError: On API failure, timeout, or empty reply.
        """
        ...


class SDKProvider(AIProvider):
    """Adapter over a vendor SDK client.

    Subclasses build the client and make one completion call; this class
    owns the API key lookup, the per-call timeout, timing and logging.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = self._make_client(api_key)

    @abstractmethod
    def _make_client(self, api_key: str) -> Any:
        ...

    @abstractmethod
    async def _complete(self, prompt: str) -> tuple[str | None, int | None]:
        """Return (reply text, total tokens) for one call."""
        ...

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str) -> ModelResponse:
        cfg = self._config
        start = time.monotonic()
        try:
            text, token_count = await asyncio.wait_for(self._complete(prompt), timeout=cfg.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(cfg.name, f"Request timed out after {cfg.timeout_sec}s") from exc
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(cfg.name, f"API call failed: {exc}") from exc
        latency = time.monotonic() - start

        if not text:
            raise ProviderError(cfg.name, "Empty reply")

        logger.info("%s (%s): %.2fs, %s tokens", cfg.name, cfg.model, latency, token_count)
        return ModelResponse(
            provider=cfg.name,
            model=cfg.model,
            content=text,
            latency_sec=latency,
            token_count=token_count,
        )
