"""Pure dataclasses for the puzzle generation pipeline. No logic, no deps."""

from dataclasses import dataclass, field


@dataclass
class ModelResponse:
    provider: str          # registered model id, e.g. "openai", "together"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None


@dataclass(frozen=True)
class RankedAnswer:
    answer: str            # normalized: trimmed and lower-cased
    position: int          # 0-based rank in the source model's list
    model: str


@dataclass
class ScoredAnswer:
    answer: str
    frequency: int
    average_position: float
    score: float


@dataclass
class ConsolidationGroup:
    answer: str                                  # canonical label
    members: set[str] = field(default_factory=set)


@dataclass
class FinalAnswer:
    answer: str
    points: int


@dataclass
class Puzzle:
    question: str
    answers: list[FinalAnswer]
    topic: str = ""

    def to_dict(self) -> dict:
        """Storage shape: {question, answers: [{answer, points}]}."""
        return {
            "question": self.question,
            "answers": [{"answer": a.answer, "points": a.points} for a in self.answers],
        }
