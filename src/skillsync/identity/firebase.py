import json
import logging
import httpx
from pathlib import Path
from typing import Dict, Optional
from pydantic import BaseModel

from .client import IdentityProvider
from ..domain.errors import ProviderError, ProviderErrorKind
from ..domain.models import ProviderUser

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# identity toolkit error codes -> our classification
ERROR_KINDS: Dict[str, ProviderErrorKind] = {
    "EMAIL_EXISTS": ProviderErrorKind.CREDENTIALS_ALREADY_IN_USE,
    "INVALID_EMAIL": ProviderErrorKind.MALFORMED_EMAIL,
    "MISSING_EMAIL": ProviderErrorKind.MALFORMED_EMAIL,
    "EMAIL_NOT_FOUND": ProviderErrorKind.INVALID_CREDENTIALS,
    "INVALID_PASSWORD": ProviderErrorKind.INVALID_CREDENTIALS,
    "INVALID_LOGIN_CREDENTIALS": ProviderErrorKind.INVALID_CREDENTIALS,
    "MISSING_PASSWORD": ProviderErrorKind.INVALID_CREDENTIALS,
    "USER_DISABLED": ProviderErrorKind.INVALID_CREDENTIALS,
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": ProviderErrorKind.REQUIRES_RECENT_LOGIN,
    "TOKEN_EXPIRED": ProviderErrorKind.REQUIRES_RECENT_LOGIN,
    "INVALID_ID_TOKEN": ProviderErrorKind.REQUIRES_RECENT_LOGIN,
    "USER_NOT_FOUND": ProviderErrorKind.REQUIRES_RECENT_LOGIN,
}

ERROR_MESSAGES: Dict[str, str] = {
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "USER_DISABLED": "The user account has been disabled by an administrator.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "OPERATION_NOT_ALLOWED": "Password sign-in is disabled for this project.",
}


class CachedSession(BaseModel):
    """signed-in state persisted between runs."""
    uid: str
    email: Optional[str] = None
    id_token: str
    refresh_token: Optional[str] = None


def classify_error(raw: str) -> ProviderError:
    """
    turn an identity toolkit error string into a ProviderError.

    raw looks like "EMAIL_EXISTS" or "WEAK_PASSWORD : Password should be at least 6 characters".
    """
    code, _, detail = raw.partition(" : ")
    code = code.strip()
    kind = ERROR_KINDS.get(code, ProviderErrorKind.OTHER)
    message = detail.strip() or ERROR_MESSAGES.get(code) or code.replace("_", " ").capitalize()
    return ProviderError(kind, message)


class FirebaseIdentityProvider(IdentityProvider):
    """Firebase Authentication through the Identity Toolkit REST API."""

    def __init__(
        self,
        api_key: str,
        session_file: Path,
        base_url: str = IDENTITY_TOOLKIT_URL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.session_file = session_file
        self.base_url = base_url.rstrip("/")
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        # created on first request; cache-only use never opens a connection pool
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def current_user(self) -> Optional[ProviderUser]:
        cached = self._load_session()
        if cached is None:
            return None
        return ProviderUser(uid=cached.uid, email=cached.email)

    async def create_account(self, email: str, password: str) -> ProviderUser:
        # the new account's tokens are not cached: registering does not sign in
        data = await self._post("signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        return ProviderUser(uid=data["localId"], email=data.get("email", email))

    async def sign_in(self, email: str, password: str) -> ProviderUser:
        data = await self._post("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        cached = CachedSession(
            uid=data["localId"],
            email=data.get("email", email),
            id_token=data["idToken"],
            refresh_token=data.get("refreshToken"),
        )
        self._save_session(cached)
        logger.debug(f"signed in as {cached.uid}")
        return ProviderUser(uid=cached.uid, email=cached.email)

    def sign_out(self) -> None:
        self.session_file.unlink(missing_ok=True)

    async def send_password_reset(self, email: str) -> None:
        await self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})

    async def update_email(self, new_email: str) -> ProviderUser:
        cached = self._load_session()
        if cached is None:
            raise ProviderError(ProviderErrorKind.REQUIRES_RECENT_LOGIN, "Not signed in.")

        data = await self._post("update", {
            "idToken": cached.id_token,
            "email": new_email,
            "returnSecureToken": True,
        })
        cached.email = data.get("email", new_email)
        # the provider may rotate tokens on sensitive updates
        cached.id_token = data.get("idToken", cached.id_token)
        cached.refresh_token = data.get("refreshToken", cached.refresh_token)
        self._save_session(cached)
        return ProviderUser(uid=cached.uid, email=cached.email)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _post(self, endpoint: str, payload: dict) -> dict:
        url = f"{self.base_url}/accounts:{endpoint}"
        try:
            response = await self.client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"request to {endpoint} failed: {e}")
            raise ProviderError(ProviderErrorKind.OTHER, f"Network error: {e}") from e

        if response.is_error:
            try:
                raw = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                raw = f"HTTP {response.status_code}"
            logger.debug(f"{endpoint} rejected: {raw}")
            raise classify_error(raw)

        return response.json()

    def _load_session(self) -> Optional[CachedSession]:
        if not self.session_file.exists():
            return None
        try:
            with open(self.session_file, "r") as f:
                return CachedSession(**json.load(f))
        except (json.JSONDecodeError, ValueError, TypeError):
            # corrupted cache counts as signed out
            logger.warning(f"ignoring corrupted session cache {self.session_file}")
            return None

    def _save_session(self, cached: CachedSession) -> None:
        self.session_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.session_file, "w") as f:
            json.dump(cached.model_dump(), f, indent=2)
