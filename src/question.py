"""Question proposer: turn a topic into one puzzle question."""

import logging

from src.extraction import ExtractionError, StructuredExtractor, format_instructions
from src.gateway import ModelGateway
from src.providers.base import ProviderError
from src.schemas import QuestionSchema

logger = logging.getLogger(__name__)


class QuestionProposer:
    def __init__(
        self,
        gateway: ModelGateway,
        extractor: StructuredExtractor,
        prompt_template: str,
        model_id: str = "openai",
    ) -> None:
        self._gateway = gateway
        self._extractor = extractor
        self._prompt_template = prompt_template
        self._model_id = model_id

    async def propose(self, topic: str, model_id: str | None = None) -> str | None:
        """Return a question for topic, or None if generation failed."""
        model_id = model_id or self._model_id
        prompt = self._prompt_template.format(
            topic=topic,
            format_instructions=format_instructions(QuestionSchema),
        )

        logger.info("Generating question for topic %r using %s", topic, model_id)
        response = await self._gateway.invoke(model_id, prompt)
        if isinstance(response, ProviderError):
            logger.error("Question generation failed for topic %r: %s", topic, response)
            return None

        try:
            parsed = await self._extractor.extract(QuestionSchema, response.content, model_id)
        except ExtractionError as exc:
            logger.error("Could not extract a question for topic %r: %s", topic, exc)
            return None

        question = parsed.question.strip()
        if not question:
            logger.error("Model %s returned a blank question for topic %r", model_id, topic)
            return None

        logger.info("Question generated: %r", question)
        return question
