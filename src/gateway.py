"""Model gateway: one call surface over every registered provider."""

import logging
from collections.abc import Mapping

from src.models import ModelResponse
from src.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


class ModelGateway:
    """Invoke registered providers by id without ever raising.

    Failures come back as ProviderError values so callers can branch on them.
    No retries happen here.
    """

    def __init__(self, providers: Mapping[str, AIProvider]) -> None:
        self._providers = dict(providers)

    def model_ids(self) -> list[str]:
        return list(self._providers)

    def has_model(self, model_id: str) -> bool:
        return model_id in self._providers

    async def invoke(self, model_id: str, prompt: str) -> ModelResponse | ProviderError:
        provider = self._providers.get(model_id)
        if provider is None:
            logger.error("Model %s is not registered", model_id)
            return ProviderError(model_id, "Model not registered")
        try:
            return await provider.generate(prompt)
        except ProviderError as exc:
            logger.warning("Model %s failed: %s", model_id, exc)
            return exc
        except Exception as exc:
            logger.warning("Model %s unexpected failure: %s", model_id, exc)
            return ProviderError(model_id, f"Unexpected error: {exc}")
