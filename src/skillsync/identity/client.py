from abc import ABC, abstractmethod
from typing import Optional

from ..domain.models import ProviderUser


class IdentityProvider(ABC):
    """
    hosted identity service used for email/password accounts.

    async methods raise ProviderError on failure.
    """

    @abstractmethod
    def current_user(self) -> Optional[ProviderUser]:
        """Return the cached signed-in user without a network call."""
        pass

    @abstractmethod
    async def create_account(self, email: str, password: str) -> ProviderUser:
        """Create a new email/password account."""
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> ProviderUser:
        """Sign in and cache the session."""
        pass

    @abstractmethod
    def sign_out(self) -> None:
        """Forget the cached session. Safe to call when signed out."""
        pass

    @abstractmethod
    async def send_password_reset(self, email: str) -> None:
        """Ask the provider to email a password reset link."""
        pass

    @abstractmethod
    async def update_email(self, new_email: str) -> ProviderUser:
        """Change the signed-in user's email address."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        pass
