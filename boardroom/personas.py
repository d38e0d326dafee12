"""Director personas: load from markdown files or extract from a free-text prompt."""

import json
import logging
import re
import uuid
from pathlib import Path

import frontmatter

from config.config_loader import PromptsConfig
from boardroom.errors import MalformedGenerationOutput, ValidationError
from boardroom.models import Director
from boardroom.providers.base import AIProvider

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

# Used when the generated profile is missing a field or cannot be parsed
PERSONA_DEFAULTS = {
    "name": "Unknown Director",
    "title": "Historical Figure",
    "era": "Unknown Era",
    "speaking_style": "Unknown Style",
}


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def load_director_file(file_path: Path) -> Director:
    """Read a director from a markdown file with YAML frontmatter.

    The body is the persona background; ``name`` and ``title`` come from the
    frontmatter, as do the optional era, speaking_style, personality_traits,
    core_beliefs, expertise_areas and avatar_url.
    """
    post = frontmatter.load(str(file_path))
    meta = dict(post.metadata)
    background = post.content.strip()
    if not meta.get("name") or not background:
        raise ValidationError(f"{file_path.name}: frontmatter 'name' and a persona body are required")

    return Director(
        id=str(meta.get("id") or uuid.uuid4()),
        name=str(meta["name"]),
        title=str(meta.get("title") or PERSONA_DEFAULTS["title"]),
        system_prompt=background,
        era=str(meta.get("era", "")),
        speaking_style=str(meta.get("speaking_style", "")),
        personality_traits=_as_list(meta.get("personality_traits")),
        core_beliefs=_as_list(meta.get("core_beliefs")),
        expertise_areas=_as_list(meta.get("expertise_areas")),
        avatar_url=meta.get("avatar_url"),
    )


def parse_generated_json(text: str, label: str) -> dict:
    """Parse a generated JSON object, unwrapping a fenced code block if present.

    Raises:
        MalformedGenerationOutput: If no JSON object can be read.
    """
    content = text.strip()
    match = _JSON_FENCE.search(content)
    if match:
        content = match.group(1)
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise MalformedGenerationOutput(f"{label} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedGenerationOutput(f"{label} must be a JSON object, got {type(data).__name__}")
    return data


def parse_persona_json(text: str) -> dict:
    return parse_generated_json(text, "Persona profile")


async def extract_persona(
    provider: AIProvider,
    system_prompt: str,
    prompts: PromptsConfig,
    avatar_url: str | None = None,
) -> Director:
    """Ask the provider to derive a director profile from a character prompt.

    Generation failures propagate. Output that cannot be parsed falls back to
    PERSONA_DEFAULTS so the director is still created from the prompt.
    """
    if not system_prompt or not system_prompt.strip():
        raise ValidationError("System prompt is required")

    result = await provider.generate(
        prompts.persona_extraction.format(system_prompt=system_prompt),
        prompts.persona_max_tokens,
    )
    try:
        profile = parse_persona_json(result.content)
    except MalformedGenerationOutput as exc:
        logger.warning("Falling back to default persona fields: %s", exc)
        profile = {}

    return Director(
        id=str(uuid.uuid4()),
        name=str(profile.get("name") or PERSONA_DEFAULTS["name"]),
        title=str(profile.get("title") or PERSONA_DEFAULTS["title"]),
        system_prompt=system_prompt.strip(),
        era=str(profile.get("era") or PERSONA_DEFAULTS["era"]),
        speaking_style=str(profile.get("speaking_style") or PERSONA_DEFAULTS["speaking_style"]),
        personality_traits=_as_list(profile.get("personality_traits")),
        core_beliefs=_as_list(profile.get("core_beliefs")),
        expertise_areas=_as_list(profile.get("expertise_areas")),
        avatar_url=avatar_url,
    )
