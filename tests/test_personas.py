"""Tests for boardroom/personas.py."""

from pathlib import Path

import pytest

from boardroom.errors import MalformedGenerationOutput, ValidationError
from boardroom.personas import PERSONA_DEFAULTS, extract_persona, load_director_file, parse_persona_json
from boardroom.providers.base import ProviderError
from tests.conftest import make_result


def _write(tmp_path: Path, text: str, name: str = "director.md") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_director_file(tmp_path):
    path = _write(
        tmp_path,
        "---\n"
        "id: lincoln\n"
        "name: Abraham Lincoln\n"
        "title: 16th President\n"
        "era: 19th century\n"
        "personality_traits: [patient, witty]\n"
        "core_beliefs: Union, Liberty\n"
        "---\n"
        "You are Abraham Lincoln.\n",
    )
    director = load_director_file(path)
    assert director.id == "lincoln"
    assert director.name == "Abraham Lincoln"
    assert director.title == "16th President"
    assert director.system_prompt == "You are Abraham Lincoln."
    assert director.personality_traits == ["patient", "witty"]
    assert director.core_beliefs == ["Union", "Liberty"]
    assert director.expertise_areas == []


def test_load_director_file_generates_id(tmp_path):
    path = _write(tmp_path, "---\nname: Hypatia\n---\nYou are Hypatia.\n")
    director = load_director_file(path)
    assert director.id
    assert director.title == PERSONA_DEFAULTS["title"]


def test_load_director_file_requires_name(tmp_path):
    path = _write(tmp_path, "---\ntitle: Nobody\n---\nBody text.\n")
    with pytest.raises(ValidationError, match="director.md"):
        load_director_file(path)


def test_load_director_file_requires_body(tmp_path):
    path = _write(tmp_path, "---\nname: Empty\n---\n")
    with pytest.raises(ValidationError):
        load_director_file(path)


def test_parse_persona_json_plain():
    assert parse_persona_json('{"name": "Ada"}') == {"name": "Ada"}


def test_parse_persona_json_fenced():
    text = 'Here you go:\n```json\n{"name": "Ada", "era": "1840s"}\n```'
    assert parse_persona_json(text)["era"] == "1840s"


@pytest.mark.parametrize("text", ["not json", "[1, 2]", "```json\n{broken\n```"])
def test_parse_persona_json_malformed(text):
    with pytest.raises(MalformedGenerationOutput):
        parse_persona_json(text)


async def test_extract_persona(mock_provider, sample_prompts_config):
    mock_provider.generate.return_value = make_result(
        '{"name": "Ada Lovelace", "title": "Analyst", "era": "1840s",'
        ' "personality_traits": ["curious"], "speaking_style": "precise"}'
    )

    director = await extract_persona(
        mock_provider, "You are Ada.", sample_prompts_config, avatar_url="https://example.org/a.png"
    )

    assert director.name == "Ada Lovelace"
    assert director.era == "1840s"
    assert director.personality_traits == ["curious"]
    assert director.core_beliefs == []
    assert director.system_prompt == "You are Ada."
    assert director.avatar_url == "https://example.org/a.png"
    prompt, max_tokens = mock_provider.generate.call_args.args
    assert "You are Ada." in prompt
    assert max_tokens == 1000


async def test_extract_persona_falls_back_on_bad_output(mock_provider, sample_prompts_config, caplog):
    mock_provider.generate.return_value = make_result("I cannot do that.")

    director = await extract_persona(mock_provider, "You are someone.", sample_prompts_config)

    assert director.name == PERSONA_DEFAULTS["name"]
    assert director.title == PERSONA_DEFAULTS["title"]
    assert director.era == PERSONA_DEFAULTS["era"]
    assert director.speaking_style == PERSONA_DEFAULTS["speaking_style"]
    assert director.system_prompt == "You are someone."
    assert any("Falling back" in msg for msg in caplog.messages)


async def test_extract_persona_fills_missing_fields(mock_provider, sample_prompts_config):
    mock_provider.generate.return_value = make_result('{"name": "Ada"}')
    director = await extract_persona(mock_provider, "You are Ada.", sample_prompts_config)
    assert director.name == "Ada"
    assert director.era == PERSONA_DEFAULTS["era"]


async def test_extract_persona_requires_prompt(mock_provider, sample_prompts_config):
    with pytest.raises(ValidationError):
        await extract_persona(mock_provider, "  ", sample_prompts_config)
    mock_provider.generate.assert_not_called()


async def test_extract_persona_propagates_generation_failure(mock_provider, sample_prompts_config):
    mock_provider.generate.side_effect = ProviderError("mock", "down")
    with pytest.raises(ProviderError):
        await extract_persona(mock_provider, "You are Ada.", sample_prompts_config)


def test_bundled_personas_load():
    files = sorted((Path(__file__).parent.parent / "personas").glob("*.md"))
    assert files
    for path in files:
        director = load_director_file(path)
        assert director.id == path.stem
        assert director.core_beliefs
