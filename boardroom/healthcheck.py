"""Provider health check: ping the generation API before a multi-turn run."""

import asyncio
import logging

from boardroom.providers.base import AIProvider

logger = logging.getLogger(__name__)

_PING_PROMPT = "Reply with the word OK only."
_PING_MAX_TOKENS = 5
_TIMEOUT_SEC = 15.0


async def check_provider(provider: AIProvider) -> tuple[bool, str]:
    """Ping a provider.

    Returns:
        (ok, error_message); error_message is "" when ok is True.
    """
    try:
        await asyncio.wait_for(
            provider.generate(_PING_PROMPT, _PING_MAX_TOKENS),
            timeout=_TIMEOUT_SEC,
        )
    except TimeoutError:
        logger.warning("Provider %s did not answer within %.0fs", provider.name(), _TIMEOUT_SEC)
        return False, f"No answer within {_TIMEOUT_SEC:.0f}s"
    except Exception as exc:
        logger.warning("Provider %s failed health check: %s", provider.name(), exc)
        return False, str(exc)
    return True, ""
