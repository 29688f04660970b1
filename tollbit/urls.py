"""
URL helpers for the Tollbit API.

The API addresses a page by its bare host + path: one scheme prefix and one
leading "www." are dropped, everything else is passed through untouched.
"""

from .config import (
    BOT_USER_AGENT_FORMAT,
    CONTENT_RESOURCE,
    DEFAULT_CONFIG,
    RATE_RESOURCE,
    ClientConfig,
)

_SCHEMES = ("https://", "http://")
_WWW = "www."


def canonicalize_url(url: str) -> str:
    """
    Strip one leading scheme and one leading "www.".

    Prefix matching is case-sensitive and nothing is validated, so malformed
    input comes back unchanged apart from the stripped prefixes.

        >>> canonicalize_url("https://www.example.com/x")
        'example.com/x'
    """
    for scheme in _SCHEMES:
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    if url.startswith(_WWW):
        url = url[len(_WWW):]
    return url


def content_endpoint(url: str, config: ClientConfig = DEFAULT_CONFIG) -> str:
    return f"{config.api_root}/{CONTENT_RESOURCE}/{canonicalize_url(url)}"


def rate_endpoint(url: str, config: ClientConfig = DEFAULT_CONFIG) -> str:
    return f"{config.api_root}/{RATE_RESOURCE}/{canonicalize_url(url)}"


def bot_user_agent(user_agent: str) -> str:
    """User-Agent header value identifying the caller's bot to Tollbit."""
    return BOT_USER_AGENT_FORMAT.format(user_agent=user_agent)
