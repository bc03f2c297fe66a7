"""Consensus scoring: statistics, consolidation, selection, 100-point table."""

import logging
import math
from abc import ABC, abstractmethod

from src.collector import normalize_answer
from src.extraction import ExtractionError, StructuredExtractor, format_instructions
from src.gateway import ModelGateway
from src.models import ConsolidationGroup, FinalAnswer, RankedAnswer, ScoredAnswer
from src.providers.base import ProviderError
from src.schemas import ConsolidationSchema

logger = logging.getLogger(__name__)

# Frequency vs order weighting. Fixed: changing these changes every puzzle's scores.
FREQUENCY_WEIGHT = 0.7
ORDER_WEIGHT = 0.3
MAX_POSITION = 9

MAX_ANSWERS = 10
TOTAL_POINTS = 100


class NoDataError(Exception):
    """Raised when there is nothing to score."""


class ConsolidationError(Exception):
    """Raised when near-duplicate consolidation could not be completed."""


def combined_score(frequency: int, max_frequency: int, average_position: float) -> float:
    normalized_frequency = frequency / max_frequency
    normalized_position = 1 - (average_position / MAX_POSITION)
    return FREQUENCY_WEIGHT * normalized_frequency + ORDER_WEIGHT * normalized_position


def compute_statistics(ranked: list[RankedAnswer]) -> list[ScoredAnswer]:
    """Frequency, mean position and combined score per answer, in first-seen order.

    Raises:
        NoDataError: If ranked is empty.
    """
    if not ranked:
        raise NoDataError("No answers to score")

    positions: dict[str, list[int]] = {}
    for item in ranked:
        positions.setdefault(item.answer, []).append(item.position)

    max_frequency = max(len(p) for p in positions.values())
    scored: list[ScoredAnswer] = []
    for answer, answer_positions in positions.items():
        frequency = len(answer_positions)
        average_position = sum(answer_positions) / frequency
        scored.append(
            ScoredAnswer(
                answer=answer,
                frequency=frequency,
                average_position=average_position,
                score=combined_score(frequency, max_frequency, average_position),
            )
        )
    return scored


def format_answers_for_consolidation(scored: list[ScoredAnswer]) -> str:
    return "\n".join(f'"{s.answer}" (score: {s.score:.3f})' for s in scored)


def rescore_groups(
    groups: list[ConsolidationGroup],
    scored: list[ScoredAnswer],
) -> list[tuple[str, float]]:
    """Score each group by its best member and sort descending (stable).

    Groups whose labels differ only in case or whitespace are merged under
    the first-seen label, keeping the higher score.
    """
    by_answer = {s.answer: s.score for s in scored}
    labels: dict[str, str] = {}
    best: dict[str, float] = {}
    for group in groups:
        key = normalize_answer(group.answer)
        score = max((by_answer.get(normalize_answer(m), 0.0) for m in group.members), default=0.0)
        if key in best:
            best[key] = max(best[key], score)
        else:
            labels[key] = group.answer
            best[key] = score
    rescored = [(labels[key], score) for key, score in best.items()]
    return sorted(rescored, key=lambda entry: entry[1], reverse=True)



def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def reconcile_points(points: list[int]) -> list[int]:
    """Push all rounding slack onto the first (highest-scored) entry."""
    if not points:
        return []
    adjusted = list(points)
    point_sum = sum(adjusted)
    if point_sum != TOTAL_POINTS:
        adjusted[0] += TOTAL_POINTS - point_sum
    return adjusted


def assign_points(entries: list[tuple[str, float]]) -> list[FinalAnswer]:
    """Pick the top entries by score and convert scores to points summing to 100.

    Raises:
        NoDataError: If there is nothing to select or every score is zero.
    """
    selected = sorted(entries, key=lambda entry: entry[1], reverse=True)[:MAX_ANSWERS]
    if not selected:
        raise NoDataError("No answers selected")

    total_score = sum(score for _, score in selected)
    if total_score <= 0:
        raise NoDataError("Selected answers have no score")

    if len(selected) < MAX_ANSWERS:
        logger.warning("Only %d unique answers found. Puzzle will have fewer than %d items.", len(selected), MAX_ANSWERS)

    points = [max(1, _round_half_up(score / total_score * TOTAL_POINTS)) for _, score in selected]
    points = reconcile_points(points)

    logger.info("Points distribution: %s", ", ".join(str(p) for p in points))
    return [FinalAnswer(answer=answer, points=p) for (answer, _), p in zip(selected, points)]


class Consolidator(ABC):
    """Strategy that merges near-duplicate answers under canonical labels."""

    @abstractmethod
    async def consolidate(self, question: str, scored: list[ScoredAnswer]) -> list[ConsolidationGroup]:
        """Group scored answers.

        Raises:
            ConsolidationError: If grouping could not be produced.
        """
        ...


class LLMConsolidator(Consolidator):
    """Ask one model to group spelling variants, plurals and abbreviations."""

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

    async def consolidate(self, question: str, scored: list[ScoredAnswer]) -> list[ConsolidationGroup]:
        if not self._gateway.has_model(self._model_id):
            raise ConsolidationError(f"Model {self._model_id} not available for consolidation")

        prompt = self._prompt_template.format(
            question=question,
            answers_to_consolidate=format_answers_for_consolidation(scored),
            format_instructions=format_instructions(ConsolidationSchema),
        )
        response = await self._gateway.invoke(self._model_id, prompt)
        if isinstance(response, ProviderError):
            raise ConsolidationError(str(response)) from response

        try:
            parsed = await self._extractor.extract(ConsolidationSchema, response.content, self._model_id)
        except ExtractionError as exc:
            raise ConsolidationError(str(exc)) from exc

        groups = [
            ConsolidationGroup(answer=g.answer.strip(), members=set(g.original_answers))
            for g in parsed.consolidated_answers
            if g.answer.strip()
        ]
        if not groups:
            raise ConsolidationError("Consolidation returned no groups")
        return groups


class ConsensusScorer:
    def __init__(self, consolidator: Consolidator | None = None) -> None:
        self._consolidator = consolidator

    async def _consolidated_entries(
        self,
        question: str,
        scored: list[ScoredAnswer],
    ) -> list[tuple[str, float]] | None:
        if self._consolidator is None:
            logger.warning("No consolidator configured. Proceeding with raw answers.")
            return None
        try:
            groups = await self._consolidator.consolidate(question, scored)
        except ConsolidationError as exc:
            logger.warning("Answer consolidation failed, proceeding with raw answers: %s", exc)
            return None
        entries = rescore_groups(groups, scored)
        if not any(score > 0 for _, score in entries):
            logger.warning("Consolidated groups match none of the collected answers, proceeding with raw answers.")
            return None
        logger.info("Consolidated %d answers into %d groups", len(scored), len(entries))
        return entries

    async def score(self, question: str, ranked: list[RankedAnswer]) -> list[FinalAnswer]:
        """Rank collected answers into at most ten point-valued answers.

        Raises:
            NoDataError: If there is nothing to score.
        """
        scored = compute_statistics(ranked)
        entries = await self._consolidated_entries(question, scored)
        if entries is None:
            entries = [(s.answer, s.score) for s in scored]
        return assign_points(entries)
