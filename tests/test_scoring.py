"""Tests for src/scoring.py."""

import logging
from unittest.mock import AsyncMock

import pytest

from src.collector import rank_answers
from src.gateway import ModelGateway
from src.models import ConsolidationGroup, RankedAnswer, ScoredAnswer
from src.providers.base import ProviderError
from src.scoring import (
    ConsensusScorer,
    ConsolidationError,
    Consolidator,
    LLMConsolidator,
    NoDataError,
    _round_half_up,
    assign_points,
    combined_score,
    compute_statistics,
    format_answers_for_consolidation,
    reconcile_points,
    rescore_groups,
)
from tests.conftest import MockProvider, consolidation_json, make_response

MODEL_LISTS = {
    "m1": ["JavaScript", "Python", "Java", "C", "C++", "Go", "Rust", "Ruby", "PHP", "Swift"],
    "m2": ["Python", "javascript", "Java", "TypeScript", "C#", "Go", "Kotlin", "Rust", "Scala", "Perl"],
    "m3": [" javascript ", "Python", "TypeScript", "Java", "C", "Rust", "Go", "Dart", "Haskell", "Elixir"],
}


def _three_model_answers() -> list[RankedAnswer]:
    ranked: list[RankedAnswer] = []
    for model_id, answers in MODEL_LISTS.items():
        ranked.extend(rank_answers(answers, model_id))
    return ranked


class StubConsolidator(Consolidator):
    def __init__(self, groups: list[ConsolidationGroup] | None = None, error: str | None = None) -> None:
        self.groups = groups or []
        self.error = error
        self.calls = 0

    async def consolidate(self, question, scored):
        self.calls += 1
        if self.error:
            raise ConsolidationError(self.error)
        return self.groups


# --- statistics ---

def test_combined_score_formula():
    score = combined_score(frequency=2, max_frequency=3, average_position=4.5)
    assert score == pytest.approx(0.7 * (2 / 3) + 0.3 * (1 - 4.5 / 9))


def test_combined_score_bounds():
    assert combined_score(3, 3, 0.0) == pytest.approx(1.0)
    assert combined_score(1, 1, 9.0) == pytest.approx(0.7)


def test_compute_statistics_frequency_and_position():
    ranked = [
        RankedAnswer("javascript", 0, "a"),
        RankedAnswer("python", 1, "a"),
        RankedAnswer("javascript", 1, "b"),
        RankedAnswer("javascript", 0, "c"),
    ]
    scored = {s.answer: s for s in compute_statistics(ranked)}

    assert scored["javascript"].frequency == 3
    assert scored["javascript"].average_position == pytest.approx(1 / 3)
    assert scored["javascript"].score == pytest.approx(0.7 + 0.3 * (1 - (1 / 3) / 9))
    assert scored["python"].frequency == 1
    assert scored["python"].score == pytest.approx(0.7 * (1 / 3) + 0.3 * (1 - 1 / 9))


def test_compute_statistics_keeps_first_seen_order():
    ranked = [RankedAnswer("b", 0, "a"), RankedAnswer("a", 1, "a"), RankedAnswer("b", 2, "b")]
    assert [s.answer for s in compute_statistics(ranked)] == ["b", "a"]


def test_compute_statistics_empty_raises():
    with pytest.raises(NoDataError):
        compute_statistics([])


def test_case_and_whitespace_variants_share_one_group():
    ranked = rank_answers(["Pizza", " pizza", "PIZZA  "] + ["x"] * 7, "m")
    scored = {s.answer: s for s in compute_statistics(ranked)}
    assert scored["pizza"].frequency == 3
    assert scored["pizza"].average_position == pytest.approx(1.0)


def test_format_answers_for_consolidation():
    scored = [
        ScoredAnswer("javascript", 3, 1 / 3, 0.988888),
        ScoredAnswer("python", 1, 1.0, 0.5),
    ]
    assert format_answers_for_consolidation(scored) == '"javascript" (score: 0.989)\n"python" (score: 0.500)'


# --- group rescoring ---

def test_rescore_groups_uses_max_member_score():
    scored = [
        ScoredAnswer("js", 1, 3.0, 0.4),
        ScoredAnswer("javascript", 3, 0.0, 1.0),
        ScoredAnswer("python", 2, 1.0, 0.7),
    ]
    groups = [
        ConsolidationGroup("Python", {"python"}),
        ConsolidationGroup("JavaScript", {"js", "javascript"}),
    ]
    assert rescore_groups(groups, scored) == [("JavaScript", 1.0), ("Python", 0.7)]


def test_rescore_groups_missing_member_scores_zero():
    scored = [ScoredAnswer("python", 1, 0.0, 0.8)]
    groups = [ConsolidationGroup("Cobol", {"cobol"}), ConsolidationGroup("Python", {"python"})]
    assert rescore_groups(groups, scored) == [("Python", 0.8), ("Cobol", 0.0)]


def test_rescore_groups_normalizes_member_text():
    scored = [ScoredAnswer("python", 1, 0.0, 0.8)]
    groups = [ConsolidationGroup("Python", {"  Python "})]
    assert rescore_groups(groups, scored) == [("Python", 0.8)]


def test_rescore_groups_merges_repeated_labels():
    scored = [
        ScoredAnswer("js", 1, 3.0, 0.4),
        ScoredAnswer("javascript", 3, 0.0, 1.0),
        ScoredAnswer("go", 2, 1.0, 0.7),
    ]
    groups = [
        ConsolidationGroup("JavaScript", {"js"}),
        ConsolidationGroup("Go", {"go"}),
        ConsolidationGroup(" javascript", {"javascript"}),
    ]
    assert rescore_groups(groups, scored) == [("JavaScript", 1.0), ("Go", 0.7)]


# --- point assignment ---

def test_reconcile_points_applies_slack_to_top_entry_only():
    assert reconcile_points([34, 29, 18, 9, 4, 3, 2, 1, 1, 1]) == [32, 29, 18, 9, 4, 3, 2, 1, 1, 1]


def test_reconcile_points_leaves_exact_sum_alone():
    assert reconcile_points([50, 30, 20]) == [50, 30, 20]


def test_reconcile_points_empty():
    assert reconcile_points([]) == []


def test_round_half_up():
    assert _round_half_up(2.5) == 3
    assert _round_half_up(3.5) == 4
    assert _round_half_up(2.49) == 2


def test_assign_points_equal_scores():
    result = assign_points([("a", 0.5), ("b", 0.5), ("c", 0.5)])
    assert [a.points for a in result] == [34, 33, 33]
    assert {a.answer for a in result} == {"a", "b", "c"}


def test_assign_points_minimum_one_point():
    result = assign_points([("big", 10.0), ("tiny", 0.01)])
    assert [(a.answer, a.points) for a in result] == [("big", 99), ("tiny", 1)]


def test_assign_points_sorts_and_caps_at_ten():
    entries = [(f"answer{i}", 0.1 + i * 0.05) for i in range(12)]
    result = assign_points(entries)
    assert len(result) == 10
    assert "answer0" not in {a.answer for a in result}
    assert "answer1" not in {a.answer for a in result}
    assert result[0].answer == "answer11"
    assert sum(a.points for a in result) == 100
    assert all(a.points >= 1 for a in result)


def test_assign_points_fewer_than_ten_is_valid():
    result = assign_points([("a", 0.9), ("b", 0.6)])
    assert len(result) == 2
    assert sum(a.points for a in result) == 100


def test_assign_points_empty_raises():
    with pytest.raises(NoDataError):
        assign_points([])


def test_assign_points_all_zero_raises():
    with pytest.raises(NoDataError):
        assign_points([("a", 0.0), ("b", 0.0)])


# --- scorer ---

async def test_three_model_example_raw_scoring():
    ranked = _three_model_answers()
    assert len(ranked) == 30
    assert len({r.answer for r in ranked}) == 18

    result = await ConsensusScorer().score("Name a programming language", ranked)

    assert len(result) == 10
    assert sum(a.points for a in result) == 100
    assert all(a.points >= 1 for a in result)
    assert result[0].answer == "javascript"
    assert result[0].points == max(a.points for a in result)


async def test_scorer_points_follow_descending_score():
    ranked = _three_model_answers()
    scored = {s.answer: s.score for s in compute_statistics(ranked)}

    result = await ConsensusScorer().score("q", ranked)
    scores = [scored[a.answer] for a in result]
    assert scores == sorted(scores, reverse=True)


async def test_scorer_uses_consolidated_groups():
    ranked = [
        RankedAnswer("tv", 0, "a"),
        RankedAnswer("radio", 1, "a"),
        RankedAnswer("television", 0, "b"),
        RankedAnswer("radio", 1, "b"),
    ]
    consolidator = StubConsolidator(
        [ConsolidationGroup("Radio", {"radio"}), ConsolidationGroup("Television", {"tv", "television"})]
    )

    result = await ConsensusScorer(consolidator).score("Things at home", ranked)

    assert consolidator.calls == 1
    assert {a.answer for a in result} == {"Television", "Radio"}
    assert sum(a.points for a in result) == 100


async def test_group_score_is_max_not_sum():
    # "tv" and "television" each appear once; merged they must not outrank "radio" (twice).
    ranked = [
        RankedAnswer("radio", 0, "a"),
        RankedAnswer("tv", 1, "a"),
        RankedAnswer("radio", 0, "b"),
        RankedAnswer("television", 1, "b"),
    ]
    consolidator = StubConsolidator(
        [ConsolidationGroup("Television", {"tv", "television"}), ConsolidationGroup("Radio", {"radio"})]
    )
    result = await ConsensusScorer(consolidator).score("q", ranked)
    assert result[0].answer == "Radio"


async def test_scorer_degrades_when_consolidation_fails(caplog):
    ranked = _three_model_answers()
    consolidator = StubConsolidator(error="model returned garbage")

    with caplog.at_level(logging.WARNING):
        result = await ConsensusScorer(consolidator).score("q", ranked)

    assert len(result) == 10
    assert sum(a.points for a in result) == 100
    assert result[0].answer == "javascript"
    assert any("consolidation failed" in msg for msg in caplog.messages)


async def test_scorer_falls_back_when_groups_match_nothing(caplog):
    ranked = [RankedAnswer("python", 0, "a"), RankedAnswer("java", 1, "a")]
    consolidator = StubConsolidator([ConsolidationGroup("Cobol", {"cobol"})])

    with caplog.at_level(logging.WARNING):
        result = await ConsensusScorer(consolidator).score("q", ranked)

    assert [a.answer for a in result] == ["python", "java"]
    assert sum(a.points for a in result) == 100
    assert any("match none of the collected answers" in msg for msg in caplog.messages)


async def test_scorer_lists_repeated_group_label_once():
    ranked = [
        RankedAnswer("js", 0, "a"),
        RankedAnswer("go", 1, "a"),
        RankedAnswer("javascript", 0, "b"),
        RankedAnswer("go", 1, "b"),
    ]
    consolidator = StubConsolidator(
        [
            ConsolidationGroup("JavaScript", {"js"}),
            ConsolidationGroup("JavaScript", {"javascript"}),
            ConsolidationGroup("Go", {"go"}),
        ]
    )

    result = await ConsensusScorer(consolidator).score("q", ranked)

    assert [a.answer for a in result] == ["Go", "JavaScript"]
    assert sum(a.points for a in result) == 100


async def test_scorer_without_consolidator_uses_raw_scores():
    result = await ConsensusScorer(None).score("q", [RankedAnswer("only", 0, "a")])
    assert [(a.answer, a.points) for a in result] == [("only", 100)]


async def test_scorer_empty_input_raises():
    with pytest.raises(NoDataError):
        await ConsensusScorer(StubConsolidator()).score("q", [])


# --- LLM consolidator ---

def _llm_consolidator(provider: MockProvider, make_extractor, sample_prompts_config, model_id="openai"):
    gateway = ModelGateway({provider.name(): provider})
    return LLMConsolidator(gateway, make_extractor(gateway), sample_prompts_config.consolidation, model_id=model_id)


async def test_llm_consolidator_parses_groups(make_extractor, sample_prompts_config):
    provider = MockProvider("openai", consolidation_json([("JavaScript", ["javascript", "js"])]))
    consolidator = _llm_consolidator(provider, make_extractor, sample_prompts_config)
    scored = [ScoredAnswer("javascript", 3, 1 / 3, 0.988888), ScoredAnswer("js", 1, 2.0, 0.4)]

    groups = await consolidator.consolidate("Name a language", scored)

    assert groups == [ConsolidationGroup("JavaScript", {"javascript", "js"})]
    prompt = provider.generate.call_args.args[0]
    assert '"javascript" (score: 0.989)' in prompt
    assert "Name a language" in prompt


async def test_llm_consolidator_repairs_once(make_extractor, sample_prompts_config):
    provider = MockProvider("openai")
    provider.generate = AsyncMock(
        side_effect=[
            make_response("openai", "Sure! Here are the groups: JavaScript, js"),
            make_response("openai", consolidation_json([("JavaScript", ["javascript", "js"])])),
        ]
    )
    consolidator = _llm_consolidator(provider, make_extractor, sample_prompts_config)

    groups = await consolidator.consolidate("q", [ScoredAnswer("javascript", 1, 0.0, 1.0)])

    assert groups[0].answer == "JavaScript"
    assert provider.generate.await_count == 2


async def test_llm_consolidator_raises_on_provider_error(make_extractor, sample_prompts_config):
    provider = MockProvider("openai")
    provider.generate = AsyncMock(side_effect=ProviderError("openai", "503"))
    consolidator = _llm_consolidator(provider, make_extractor, sample_prompts_config)

    with pytest.raises(ConsolidationError):
        await consolidator.consolidate("q", [ScoredAnswer("a", 1, 0.0, 1.0)])


async def test_llm_consolidator_raises_after_failed_repair(make_extractor, sample_prompts_config):
    provider = MockProvider("openai", "not json at all")
    consolidator = _llm_consolidator(provider, make_extractor, sample_prompts_config)

    with pytest.raises(ConsolidationError):
        await consolidator.consolidate("q", [ScoredAnswer("a", 1, 0.0, 1.0)])
    assert provider.generate.await_count == 2


async def test_llm_consolidator_raises_on_empty_groups(make_extractor, sample_prompts_config):
    provider = MockProvider("openai", consolidation_json([]))
    consolidator = _llm_consolidator(provider, make_extractor, sample_prompts_config)

    with pytest.raises(ConsolidationError, match="no groups"):
        await consolidator.consolidate("q", [ScoredAnswer("a", 1, 0.0, 1.0)])


async def test_llm_consolidator_raises_when_model_missing(make_extractor, sample_prompts_config):
    provider = MockProvider("claude", consolidation_json([("A", ["a"])]))
    consolidator = _llm_consolidator(provider, make_extractor, sample_prompts_config, model_id="openai")

    with pytest.raises(ConsolidationError, match="not available"):
        await consolidator.consolidate("q", [ScoredAnswer("a", 1, 0.0, 1.0)])
    provider.generate.assert_not_awaited()
