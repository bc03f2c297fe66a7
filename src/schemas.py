"""Pydantic shapes the models are asked to answer in."""

from pydantic import BaseModel, Field

ANSWERS_PER_MODEL = 10


class QuestionSchema(BaseModel):
    question: str = Field(
        description=(
            "A short, engaging question suitable for a word-guessing game (like 'Family Feud' "
            "or 'Top 10') based on the provided topic. It should elicit common, single-word or "
            "short-phrase answers."
        )
    )


class AnswersSchema(BaseModel):
    answers: list[str] = Field(
        min_length=ANSWERS_PER_MODEL,
        max_length=ANSWERS_PER_MODEL,
        description=(
            "An array of EXACTLY 10 single-word or short-phrase answers to the provided question, "
            "ordered from most common/expected to least common."
        ),
    )


class ConsolidatedGroupSchema(BaseModel):
    answer: str = Field(
        description="The standardized, canonical form of the answer (choose the most complete/formal version)"
    )
    original_answers: list[str] = Field(
        description="All original answers that are variations or duplicates of this consolidated answer"
    )


class ConsolidationSchema(BaseModel):
    consolidated_answers: list[ConsolidatedGroupSchema] = Field(
        description="Unique, deduplicated answers where similar variations are consolidated"
    )
