from dataclasses import dataclass, field

from backend.config import Settings
from backend.utils.cache import TTLCache
from backend.utils.load import LoadGate
from backend.utils.rate_limit import RateLimiter


@dataclass
class ServerState:
    """Mutable per-app state, kept on ``app.state.server``."""

    load_gate: LoadGate = field(default_factory=LoadGate)
    rate_limiter: RateLimiter = field(default_factory=RateLimiter)
    chat_list_cache: TTLCache = field(default_factory=TTLCache)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServerState":
        return cls(
            load_gate=LoadGate(settings.max_connections, settings.load_shed_threshold),
            rate_limiter=RateLimiter(settings.rate_limit_requests, settings.rate_limit_window),
            chat_list_cache=TTLCache(settings.cache_max_entries, settings.cache_ttl),
        )
