"""authentication state and provider-driven operations."""
from .manager import SessionManager, DEFAULT_PROVIDER_TIMEOUT

__all__ = [
    "SessionManager",
    "DEFAULT_PROVIDER_TIMEOUT",
]
