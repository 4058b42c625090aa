"""local profile details and profile image."""
from .store import (
    ProfileStore,
    ProfileField,
    PROFILE_NAMESPACE,
    PLACEHOLDER_IMAGE_REF,
    validate_age,
)

__all__ = [
    "ProfileStore",
    "ProfileField",
    "PROFILE_NAMESPACE",
    "PLACEHOLDER_IMAGE_REF",
    "validate_age",
]
