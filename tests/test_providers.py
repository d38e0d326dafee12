"""Tests for the provider adapters with the SDK clients stubbed out."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from boardroom.errors import GenerationFailure
from boardroom.providers.anthropic import AnthropicProvider
from boardroom.providers.base import ProviderError
from boardroom.providers.openai_provider import OpenAIProvider


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    monkeypatch.setenv("TEST_API_KEY", "sk-test")


def _anthropic_response(text: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=40, output_tokens=12),
    )


def _openai_response(text: str | None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=40, completion_tokens=12),
    )


def test_missing_key_raises(sample_model_config, monkeypatch):
    monkeypatch.delenv("TEST_API_KEY")
    with pytest.raises(ProviderError, match="Missing API key"):
        AnthropicProvider(sample_model_config)


def test_provider_error_is_generation_failure():
    assert issubclass(ProviderError, GenerationFailure)
    assert str(ProviderError("claude", "boom")) == "[claude] boom"


async def test_anthropic_generate(sample_model_config):
    provider = AnthropicProvider(sample_model_config)
    create = AsyncMock(return_value=_anthropic_response("Hello."))
    provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

    result = await provider.generate("prompt", 500)

    assert result.content == "Hello."
    assert result.input_tokens == 40
    assert result.output_tokens == 12
    assert result.token_count == 52
    assert create.call_args.kwargs["max_tokens"] == 500


async def test_anthropic_uses_config_limit_by_default(sample_model_config):
    provider = AnthropicProvider(sample_model_config)
    create = AsyncMock(return_value=_anthropic_response("Hello."))
    provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

    await provider.generate("prompt")

    assert create.call_args.kwargs["max_tokens"] == sample_model_config.max_tokens


async def test_anthropic_api_failure(sample_model_config):
    provider = AnthropicProvider(sample_model_config)
    create = AsyncMock(side_effect=RuntimeError("overloaded"))
    provider._client = SimpleNamespace(messages=SimpleNamespace(create=create))

    with pytest.raises(ProviderError, match="overloaded"):
        await provider.generate("prompt")


async def test_openai_generate(sample_model_config):
    sample_model_config.sdk = "openai"
    provider = OpenAIProvider(sample_model_config)
    create = AsyncMock(return_value=_openai_response("Hi."))
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    result = await provider.generate("prompt", 300)

    assert result.content == "Hi."
    assert result.output_tokens == 12
    assert create.call_args.kwargs["max_tokens"] == 300


async def test_openai_empty_content(sample_model_config):
    provider = OpenAIProvider(sample_model_config)
    create = AsyncMock(return_value=_openai_response(None))
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    with pytest.raises(ProviderError, match="Empty"):
        await provider.generate("prompt")


def test_openai_compatible_base_url(sample_model_config):
    sample_model_config.base_url = "https://api.deepseek.com"
    provider = OpenAIProvider(sample_model_config)
    assert "deepseek" in str(provider._client.base_url)
