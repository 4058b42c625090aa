"""identity provider clients."""
from .client import IdentityProvider
from .firebase import FirebaseIdentityProvider, classify_error

__all__ = [
    "IdentityProvider",
    "FirebaseIdentityProvider",
    "classify_error",
]
