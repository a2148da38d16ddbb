"""Human-readable device labels for the active-sessions list."""
import logging

from user_agents import parse
from user_agents.parsers import UserAgent

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE = "unknown"
UNKNOWN_BROWSER = "Unknown Browser"
UNKNOWN_OS = "Unknown OS"
DEFAULT_DEVICE_TYPE = "desktop"

# ua-parser reports unrecognised families as "Other"
_UNRECOGNISED = {"", "Other"}


def _family(value, fallback: str) -> str:
    family = getattr(value, "family", None) or ""
    return fallback if family in _UNRECOGNISED else family


def _device_type(agent: UserAgent) -> str:
    if agent.is_tablet:
        return "tablet"
    if agent.is_mobile:
        return "mobile"
    return DEFAULT_DEVICE_TYPE


def raw_user_agent(user_agent: str | UserAgent | None) -> str:
    """Raw header value for storage, whatever form the caller passed."""
    if user_agent is None:
        return ""
    if isinstance(user_agent, UserAgent):
        return user_agent.ua_string or ""
    return user_agent


def describe_device(user_agent: str | UserAgent | None) -> str:
    """Format a user agent as e.g. ``"Chrome on Mac OS X (desktop)"``.

    Accepts a raw header string or an already parsed ``UserAgent``. Empty
    input yields ``"unknown"``; parser failures fall back to the unknown
    browser/OS labels instead of raising.
    """
    if not user_agent:
        return UNKNOWN_DEVICE

    try:
        agent = user_agent if isinstance(user_agent, UserAgent) else parse(user_agent)
        browser = _family(agent.browser, UNKNOWN_BROWSER)
        os_name = _family(agent.os, UNKNOWN_OS)
        device = _device_type(agent)
    except Exception as exc:
        logger.debug(f"Failed to parse user agent: {exc}")
        browser, os_name, device = UNKNOWN_BROWSER, UNKNOWN_OS, DEFAULT_DEVICE_TYPE

    return f"{browser} on {os_name} ({device})"
