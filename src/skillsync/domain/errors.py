from enum import Enum
from typing import Optional


class SkillSyncError(Exception):
    """base class for exceptions in SkillSync."""
    pass


class ValidationError(SkillSyncError):
    """raised when local input fails a precondition. no network is involved."""
    pass


class ConfigError(SkillSyncError):
    """raised when configuration is missing or invalid."""
    pass


class ProviderErrorKind(str, Enum):
    """classification of identity provider failures."""
    CREDENTIALS_ALREADY_IN_USE = "credentials_already_in_use"
    MALFORMED_EMAIL = "malformed_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    REQUIRES_RECENT_LOGIN = "requires_recent_login"
    OTHER = "other"


class ProviderError(SkillSyncError):
    """raised when the identity provider rejects a request."""
    def __init__(self, kind: ProviderErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.message = message
        super().__init__(message or kind.value)


class ProfileImageError(SkillSyncError, OSError):
    """raised when a profile image cannot be copied into local storage."""
    pass


class StorageError(SkillSyncError, OSError):
    """raised when local key-value data cannot be written."""
    pass
