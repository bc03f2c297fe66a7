"""Puzzle assembly: topic -> question -> answers -> scored puzzle."""

import logging

from src.collector import AnswerCollector
from src.models import Puzzle
from src.question import QuestionProposer
from src.scoring import ConsensusScorer, NoDataError

logger = logging.getLogger(__name__)


class PuzzleGenerator:
    def __init__(
        self,
        proposer: QuestionProposer,
        collector: AnswerCollector,
        scorer: ConsensusScorer,
    ) -> None:
        self._proposer = proposer
        self._collector = collector
        self._scorer = scorer

    async def assemble(self, topic: str, question_model: str | None = None) -> Puzzle | None:
        """Generate a complete puzzle for topic, or None if any stage came up empty."""
        question = await self._proposer.propose(topic, model_id=question_model)
        if not question:
            return None

        ranked = await self._collector.collect(question)
        if not ranked:
            logger.error("No valid answers collected for %r", question)
            return None

        try:
            answers = await self._scorer.score(question, ranked)
        except NoDataError as exc:
            logger.error("Could not score answers for %r: %s", question, exc)
            return None

        return Puzzle(question=question, answers=answers, topic=topic)
