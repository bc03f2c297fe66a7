"""Answer collection: parallel fan-out of the question to every model."""

import asyncio
import logging

from src.extraction import ExtractionError, StructuredExtractor, format_instructions
from src.gateway import ModelGateway
from src.models import RankedAnswer
from src.providers.base import ProviderError
from src.schemas import AnswersSchema

logger = logging.getLogger(__name__)

# Quality gate: warn when fewer than this many models contribute
_MIN_QUALITY_RESPONSES = 3


def normalize_answer(answer: str) -> str:
    return answer.strip().lower()


def rank_answers(answers: list[str], model_id: str) -> list[RankedAnswer]:
    """Normalize one model's list, keeping each answer's original position."""
    ranked: list[RankedAnswer] = []
    for position, raw in enumerate(answers):
        normalized = normalize_answer(raw)
        if normalized:
            ranked.append(RankedAnswer(answer=normalized, position=position, model=model_id))
    return ranked


class AnswerCollector:
    def __init__(
        self,
        gateway: ModelGateway,
        extractor: StructuredExtractor,
        prompt_template: str,
        model_ids: list[str] | None = None,
    ) -> None:
        self._gateway = gateway
        self._extractor = extractor
        self._prompt_template = prompt_template
        self._model_ids = model_ids

    def panel(self) -> list[str]:
        if self._model_ids is None:
            return self._gateway.model_ids()
        return [m for m in self._model_ids if self._gateway.has_model(m)]

    async def _collect_one(self, model_id: str, prompt: str) -> list[RankedAnswer] | None:
        """Answers from a single model, or None if it contributes nothing."""
        logger.debug("Querying %s", model_id)
        response = await self._gateway.invoke(model_id, prompt)
        if isinstance(response, ProviderError):
            return None

        try:
            parsed = await self._extractor.extract(AnswersSchema, response.content, model_id)
        except ExtractionError as exc:
            logger.warning("Dropping answers from %s: %s", model_id, exc)
            return None

        ranked = rank_answers(parsed.answers, model_id)
        logger.info("Received %d valid answers from %s", len(ranked), model_id)
        return ranked

    async def collect(self, question: str) -> list[RankedAnswer]:
        """Ask every model in the panel; waits for all of them.

        Returns:
            Flattened ranked answers from every model that produced a valid
            list. Empty when every model failed.
        """
        model_ids = self.panel()
        prompt = self._prompt_template.format(
            question=question,
            format_instructions=format_instructions(AnswersSchema),
        )

        logger.info("Querying %d model(s) for answers to %r", len(model_ids), question)
        results = await asyncio.gather(*(self._collect_one(m, prompt) for m in model_ids))

        collected: list[RankedAnswer] = []
        contributors = 0
        for result in results:
            if result is None:
                continue
            contributors += 1
            collected.extend(result)

        if len(model_ids) >= _MIN_QUALITY_RESPONSES and contributors < _MIN_QUALITY_RESPONSES:
            logger.warning(
                "Only %d/%d models contributed answers. Consensus quality is degraded.",
                contributors,
                len(model_ids),
            )

        logger.info(
            "Answer collection complete: %d/%d models, %d answers",
            contributors, len(model_ids), len(collected),
        )
        return collected
