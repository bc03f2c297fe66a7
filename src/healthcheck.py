"""Model health checks: ping every registered model before generating."""

import asyncio
import logging

from src.gateway import ModelGateway
from src.providers.base import ProviderError

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def _check_one(gateway: ModelGateway, model_id: str) -> tuple[str, bool, str]:
    """Ping a single model. Returns (model_id, ok, error_message)."""
    try:
        result = await asyncio.wait_for(gateway.invoke(model_id, _PING_PROMPT), timeout=_TIMEOUT_SEC)
    except TimeoutError:
        return model_id, False, f"No reply within {_TIMEOUT_SEC:g}s"
    if isinstance(result, ProviderError):
        return model_id, False, str(result)
    return model_id, True, ""


async def run_health_checks(gateway: ModelGateway) -> dict[str, tuple[bool, str]]:
    """Ping all models in parallel.

    Returns:
        Dict mapping model id -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(gateway, m) for m in gateway.model_ids()))
    failed = [m for m, ok, _ in results if not ok]
    if failed:
        logger.warning("Health check failed for: %s", ", ".join(failed))
    return {model_id: (ok, err) for model_id, ok, err in results}
