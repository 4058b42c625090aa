"""shared fixtures: an in-memory identity provider and stores in temp dirs."""
import asyncio
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from skillsync.domain.errors import ProviderError, ProviderErrorKind
from skillsync.domain.models import ProviderUser
from skillsync.identity.client import IdentityProvider
from skillsync.profiles.store import ProfileStore
from skillsync.session.manager import SessionManager


class FakeIdentityProvider(IdentityProvider):
    """in-memory provider recording every call."""

    def __init__(self):
        self.accounts: Dict[str, str] = {}
        self.user: Optional[ProviderUser] = None
        self.calls: List[str] = []
        self.fail_with: Optional[ProviderError] = None
        # when set, provider calls wait for it before answering
        self.gate: Optional[asyncio.Event] = None

    def current_user(self) -> Optional[ProviderUser]:
        return self.user

    async def create_account(self, email: str, password: str) -> ProviderUser:
        await self._enter("create_account")
        if email in self.accounts:
            raise ProviderError(ProviderErrorKind.CREDENTIALS_ALREADY_IN_USE, "EMAIL_EXISTS")
        if "@" not in email:
            raise ProviderError(ProviderErrorKind.MALFORMED_EMAIL, "INVALID_EMAIL")
        self.accounts[email] = password
        return ProviderUser(uid=f"uid-{email}", email=email)

    async def sign_in(self, email: str, password: str) -> ProviderUser:
        await self._enter("sign_in")
        if self.accounts.get(email) != password:
            raise ProviderError(ProviderErrorKind.INVALID_CREDENTIALS, "INVALID_LOGIN_CREDENTIALS")
        self.user = ProviderUser(uid=f"uid-{email}", email=email)
        return self.user

    def sign_out(self) -> None:
        self.calls.append("sign_out")
        self.user = None

    async def send_password_reset(self, email: str) -> None:
        await self._enter("send_password_reset")
        if email not in self.accounts:
            raise ProviderError(ProviderErrorKind.OTHER, "There is no user record for this email.")

    async def update_email(self, new_email: str) -> ProviderUser:
        await self._enter("update_email")
        if self.user is None:
            raise ProviderError(ProviderErrorKind.REQUIRES_RECENT_LOGIN, "Not signed in.")
        self.accounts[new_email] = self.accounts.pop(self.user.email, "")
        self.user = ProviderUser(uid=self.user.uid, email=new_email)
        return self.user

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def temp_dir():
    """create a temporary data directory."""
    path = Path(tempfile.mkdtemp())
    yield path
    # cleanup
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def profiles(temp_dir):
    return ProfileStore.open(temp_dir)


@pytest.fixture
def manager(provider, profiles):
    manager = SessionManager(provider, profiles, provider_timeout=1.0)
    manager.initialize()
    return manager
