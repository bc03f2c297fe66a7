"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from src.extraction import StructuredExtractor
from src.gateway import ModelGateway
from src.models import ModelResponse
from src.providers.base import AIProvider


def answers_json(answers: list[str]) -> str:
    """A well-formed AnswersSchema reply wrapped in a json fence."""
    return "```json\n" + json.dumps({"answers": answers}) + "\n```"


def question_json(question: str) -> str:
    return json.dumps({"question": question})


def consolidation_json(groups: list[tuple[str, list[str]]]) -> str:
    return json.dumps(
        {"consolidated_answers": [{"answer": a, "original_answers": m} for a, m in groups]}
    )


def make_response(provider: str, content: str) -> ModelResponse:
    return ModelResponse(
        provider=provider,
        model="mock-model",
        content=content,
        latency_sec=0.1,
        token_count=10,
    )


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        question="Write a question about: {topic}\n\n{format_instructions}",
        answers="List 10 answers.\n\n{format_instructions}\n\nQuestion: {question}",
        consolidation=(
            "Question: {question}\nAnswers:\n{answers_to_consolidate}\n\n{format_instructions}"
        ),
        repair="Instructions:\n{instructions}\nCompletion:\n{completion}\nError:\n{error}\nTry again:",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        question_model="openai",
        consolidation_model="openai",
        output_dir=tmp_path / "puzzles",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="openai",
        sdk="openai",
        model="gpt-4o-mini",
        api_key_env="OPENAI_API_KEY",
        timeout_sec=60,
        max_tokens=1024,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"openai": model_cfg},
        prompts=sample_prompts_config,
        topics=["Programming Languages", "Sci-Fi Movies"],
        available_providers={"openai"},
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=make_response(provider_name, response_content)
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self._name, self._response_content)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def make_extractor(sample_prompts_config):
    def _make(gateway: ModelGateway) -> StructuredExtractor:
        return StructuredExtractor(gateway, sample_prompts_config.repair)
    return _make
