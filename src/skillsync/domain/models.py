from enum import Enum
from typing import Optional
from pydantic import BaseModel


class StatusKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class ErrorKind(str, Enum):
    """what went wrong, for error statuses."""
    VALIDATION = "validation"
    CREDENTIALS_ALREADY_IN_USE = "credentials_already_in_use"
    MALFORMED_EMAIL = "malformed_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    REQUIRES_RECENT_LOGIN = "requires_recent_login"
    IO = "io"
    BUSY = "busy"
    TIMEOUT = "timeout"
    OTHER = "other"


class Status(BaseModel):
    """a single user-facing message with an explicit kind."""
    kind: StatusKind
    message: str
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.kind != StatusKind.ERROR

    @classmethod
    def success(cls, message: str) -> "Status":
        return cls(kind=StatusKind.SUCCESS, message=message)

    @classmethod
    def info(cls, message: str) -> "Status":
        return cls(kind=StatusKind.INFO, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Status":
        return cls(kind=StatusKind.ERROR, message=message, error=error)


class Session(BaseModel):
    """client-side record of authentication state and login form input."""
    is_authenticated: bool = False
    identity_email: Optional[str] = None
    status: Optional[Status] = None
    is_login_mode: bool = True
    email_input: str = ""
    password_input: str = ""

    @property
    def status_message(self) -> Optional[str]:
        return self.status.message if self.status else None

    def reset(self) -> None:
        """reset to an anonymous session."""
        self.is_authenticated = False
        self.identity_email = None
        self.status = None
        self.is_login_mode = True
        self.email_input = ""
        self.password_input = ""


class ProfileDetails(BaseModel):
    """locally persisted, user-editable profile attributes."""
    name: Optional[str] = None
    age: Optional[str] = None
    skills: Optional[str] = None
    location: Optional[str] = None
    profile_image_ref: Optional[str] = None


class ProviderUser(BaseModel):
    """the signed-in identity as reported by the provider."""
    uid: str
    email: Optional[str] = None
