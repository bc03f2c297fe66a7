"""Load settings.yaml into typed dataclasses. Checks API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    temperature: float = 0.7
    base_url: str | None = None


@dataclass
class PromptsConfig:
    question: str
    answers: str
    consolidation: str
    repair: str


@dataclass
class DefaultsConfig:
    question_model: str
    consolidation_model: str
    output_dir: Path
    days: int = 7
    panel: list[str] = field(default_factory=list)


@dataclass
class InboxConfig:
    dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    topics: list[str] = field(default_factory=list)
    inbox: InboxConfig = field(default_factory=InboxConfig)
    available_providers: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise. Callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        question_model=str(defaults_raw["question_model"]),
        consolidation_model=str(defaults_raw.get("consolidation_model", defaults_raw["question_model"])),
        output_dir=Path(defaults_raw["output_dir"]),
        days=int(defaults_raw.get("days", 7)),
        panel=list(defaults_raw.get("panel") or []),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        question=prompts_raw["question"],
        answers=prompts_raw["answers"],
        consolidation=prompts_raw["consolidation"],
        repair=prompts_raw["repair"],
    )

    inbox_raw = raw.get("inbox") or {}
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for model_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=model_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            temperature=float(model_raw.get("temperature", 0.7)),
            base_url=model_raw.get("base_url"),
        )
        models[model_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(model_name)
            logger.info("Model available: %s", model_name)
        else:
            logger.info(
                "Model skipped (no API key): %s, set %s in .env",
                model_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        topics=[str(t) for t in raw.get("topics") or []],
        inbox=inbox,
        available_providers=available_providers,
    )
