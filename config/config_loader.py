"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

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
    base_url: str | None = None


@dataclass
class PromptsConfig:
    statement: str
    question_response: str
    question_answer: str
    persona_extraction: str
    statement_analysis: str
    mode_instructions: dict[str, str] = field(default_factory=dict)
    mode_contexts: dict[str, str] = field(default_factory=dict)
    opening_marker: str = "(This is the opening of the meeting.)"
    statement_max_tokens: int = 500
    answer_max_tokens: int = 300
    persona_max_tokens: int = 1000
    analysis_max_tokens: int = 300


@dataclass
class DefaultsConfig:
    database_path: Path
    provider: str
    discussion_mode: str = "round_robin"
    max_rounds: int = 10
    max_participants: int = 8
    context_window: int = 5
    question_window: int = 3


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_providers before building a provider.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        database_path=Path(defaults_raw["database_path"]),
        provider=str(defaults_raw["provider"]),
        discussion_mode=str(defaults_raw.get("discussion_mode", "round_robin")),
        max_rounds=int(defaults_raw.get("max_rounds", 10)),
        max_participants=int(defaults_raw.get("max_participants", 8)),
        context_window=int(defaults_raw.get("context_window", 5)),
        question_window=int(defaults_raw.get("question_window", 3)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        statement=prompts_raw["statement"],
        question_response=prompts_raw["question_response"],
        question_answer=prompts_raw["question_answer"],
        persona_extraction=prompts_raw["persona_extraction"],
        statement_analysis=prompts_raw["statement_analysis"],
        mode_instructions={k: str(v) for k, v in raw.get("mode_instructions", {}).items()},
        mode_contexts={k: str(v) for k, v in raw.get("mode_contexts", {}).items()},
    )
    if "opening_marker" in prompts_raw:
        prompts.opening_marker = str(prompts_raw["opening_marker"])
    limits_raw = raw.get("limits", {})
    if "statement_max_tokens" in limits_raw:
        prompts.statement_max_tokens = int(limits_raw["statement_max_tokens"])
    if "answer_max_tokens" in limits_raw:
        prompts.answer_max_tokens = int(limits_raw["answer_max_tokens"])
    if "persona_max_tokens" in limits_raw:
        prompts.persona_max_tokens = int(limits_raw["persona_max_tokens"])
    if "analysis_max_tokens" in limits_raw:
        prompts.analysis_max_tokens = int(limits_raw["analysis_max_tokens"])

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.debug("Provider available: %s", provider_name)
        else:
            logger.debug(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        available_providers=available_providers,
    )
