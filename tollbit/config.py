"""
Configuration for the Tollbit client.

Endpoints, headers and defaults used by TollbitClient. Nothing here is read
from the environment: callers pass a ClientConfig explicitly when they need
to point the client elsewhere (e.g. a staging host).
"""

from dataclasses import dataclass, field
from typing import FrozenSet


# ============================================================
# API ENDPOINTS
# ============================================================

TOLLBIT_BASE_URL = "https://api.tollbit.com"
TOLLBIT_API_PATH = "dev/v1"

CONTENT_RESOURCE = "content"
RATE_RESOURCE = "rate"

# ============================================================
# HEADERS
# ============================================================

HEADER_ORG_CUID = "TollbitOrgCuid"
HEADER_TOKEN = "TollbitToken"
HEADER_USER_AGENT = "User-Agent"

# Wraps the caller's bot name, e.g. "Mozilla/5.0 (compatible; MyBot; +https://tollbit.com/bot)"
BOT_USER_AGENT_FORMAT = "Mozilla/5.0 (compatible; {user_agent}; +https://tollbit.com/bot)"

# ============================================================
# DEFAULTS
# ============================================================

DEFAULT_TIMEOUT = 15.0          # seconds, per request
DEFAULT_CURRENCY = "USD"
SUPPORTED_CURRENCIES = frozenset({"USD"})


@dataclass(frozen=True)
class ClientConfig:
    """Endpoint and transport settings for one client."""
    base_url: str = TOLLBIT_BASE_URL
    api_path: str = TOLLBIT_API_PATH
    timeout: float = DEFAULT_TIMEOUT
    supported_currencies: FrozenSet[str] = field(default_factory=lambda: SUPPORTED_CURRENCIES)

    @property
    def api_root(self) -> str:
        """Base url and api path joined, without trailing slash."""
        return f"{self.base_url.rstrip('/')}/{self.api_path.strip('/')}"


DEFAULT_CONFIG = ClientConfig()
