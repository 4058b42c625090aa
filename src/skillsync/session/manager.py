import asyncio
import logging
from pathlib import Path
from typing import Awaitable, BinaryIO, Callable, Optional, TypeVar, Union

from ..config import DEFAULT_PROVIDER_TIMEOUT
from ..domain.errors import (
    ProfileImageError,
    ProviderError,
    ProviderErrorKind,
    StorageError,
    ValidationError,
)
from ..domain.models import ErrorKind, Session, Status, StatusKind
from ..identity.client import IdentityProvider
from ..observers import Observable
from ..profiles.store import (
    DEFAULT_AGE,
    DEFAULT_LOCATION,
    DEFAULT_NAME,
    DEFAULT_SKILLS,
    ProfileStore,
    validate_age,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# user-facing messages
MSG_REGISTER_MISSING = "Please enter both email and password."
MSG_LOGIN_MISSING = "Please fill both email and password fields."
MSG_RESET_MISSING = "Please enter your email to reset the password."
MSG_REGISTERED = "Registration successful! Please log in."
MSG_EMAIL_IN_USE = "This email is already in use."
MSG_EMAIL_MALFORMED = "The email address is badly formatted."
MSG_REGISTER_FAILED = "Registration failed."
MSG_INVALID_CREDENTIALS = "Invalid email or password. Please try again."
MSG_LOGIN_FAILED = "Login failed."
MSG_RESET_SENT = "Password reset email sent. Check your inbox."
MSG_RESET_FAILED = "Failed to send reset email."
MSG_EMAIL_INVALID = "Invalid email provided for update."
MSG_EMAIL_UPDATED = "Email updated successfully. You may need to sign in again soon."
MSG_EMAIL_UPDATE_FAILED = "Failed to update email. Please sign out, sign back in immediately, and try again."
MSG_DETAILS_UPDATED = "User details updated successfully."
MSG_IMAGE_SAVED = "Profile image updated successfully."
MSG_IMAGE_FAILED = "Failed to save image. Check file permissions and try again."
MSG_BUSY = "Another request is already in progress."
MSG_TIMEOUT = "The request timed out. Please try again."
MSG_DETAILS_FAILED = "Failed to save details. Check file permissions and try again."


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _or_default(value: Optional[str], default: str) -> str:
    return default if _blank(value) else value


class _CallInterrupted(Exception):
    """a provider call that never produced an answer (busy or timed out)."""
    def __init__(self, status: Status):
        self.status = status
        super().__init__(status.message)


class SessionManager:
    """
    single source of truth for authentication state.

    drives the identity provider, keeps the login form input, and reports the
    outcome of every operation as one Status. observers subscribe to
    `session_changes` (Session snapshots) and `statuses`.

    only one provider call runs at a time; a concurrent attempt is rejected
    as busy. sign_out() and close() invalidate calls still in flight so their
    results are discarded when they arrive.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileStore,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT,
    ):
        self.provider = provider
        self.profiles = profiles
        self.provider_timeout = provider_timeout
        self.session = Session()
        self.session_changes: Observable[Session] = Observable()
        self.statuses: Observable[Status] = Observable()
        self._generation = 0
        self._signed_out_at = -1
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    def initialize(self) -> None:
        """pick up a session the provider still has cached. no network call."""
        user = self.provider.current_user()
        self.session.is_authenticated = user is not None
        self.session.identity_email = user.email if user else None
        if user is not None:
            try:
                self.profiles.ensure_default_profile(user.email or DEFAULT_NAME)
            except StorageError as e:
                logger.error(f"could not write default profile: {e}")
        logger.debug(f"initial auth state: logged in={self.session.is_authenticated}")
        self._publish_session()

    # --- form input ---

    def set_email_input(self, value: str) -> None:
        self.session.email_input = value
        self.session.status = None
        self._publish_session()

    def set_password_input(self, value: str) -> None:
        self.session.password_input = value
        self.session.status = None
        self._publish_session()

    def toggle_mode(self) -> None:
        """switch between login and registration, discarding typed input."""
        self.session.is_login_mode = not self.session.is_login_mode
        self._clear_inputs()
        self.session.status = None
        self._publish_session()

    # --- provider operations ---

    async def register(self, name: str = "", age: str = "", skills: str = "") -> Status:
        """
        create an account from the current input, seeding the local profile.

        registering does not sign in: on success the form switches to login mode.
        """
        email, password = self.session.email_input, self.session.password_input
        if _blank(email) or _blank(password):
            return self._report(Status.failure(ErrorKind.VALIDATION, MSG_REGISTER_MISSING))

        generation = self._generation
        try:
            await self._call(lambda: self.provider.create_account(email, password))
        except _CallInterrupted as e:
            return self._finish(generation, e.status, clear_inputs=False)
        except ProviderError as e:
            logger.error(f"registration failed: {e}")
            if e.kind == ProviderErrorKind.CREDENTIALS_ALREADY_IN_USE:
                status = Status.failure(ErrorKind.CREDENTIALS_ALREADY_IN_USE, MSG_EMAIL_IN_USE)
            elif e.kind == ProviderErrorKind.MALFORMED_EMAIL:
                status = Status.failure(ErrorKind.MALFORMED_EMAIL, MSG_EMAIL_MALFORMED)
            else:
                status = Status.failure(ErrorKind.OTHER, e.message or MSG_REGISTER_FAILED)
            return self._finish(generation, status)

        def apply() -> None:
            self.profiles.save_all(
                _or_default(name, DEFAULT_NAME),
                _or_default(age, DEFAULT_AGE),
                _or_default(skills, DEFAULT_SKILLS),
                DEFAULT_LOCATION,
            )
            self.session.is_login_mode = True

        return self._finish(generation, Status.success(MSG_REGISTERED), apply)

    async def login(self) -> Status:
        email, password = self.session.email_input, self.session.password_input
        if _blank(email) or _blank(password):
            return self._report(Status.failure(ErrorKind.VALIDATION, MSG_LOGIN_MISSING))

        generation = self._generation
        try:
            user = await self._call(lambda: self.provider.sign_in(email, password))
        except _CallInterrupted as e:
            return self._finish(generation, e.status, clear_inputs=False)
        except ProviderError as e:
            logger.error(f"login failed: {e}")
            # a malformed email is reported as bad credentials at login
            if e.kind in (ProviderErrorKind.INVALID_CREDENTIALS, ProviderErrorKind.MALFORMED_EMAIL):
                status = Status.failure(ErrorKind.INVALID_CREDENTIALS, MSG_INVALID_CREDENTIALS)
            else:
                status = Status.failure(ErrorKind.OTHER, e.message or MSG_LOGIN_FAILED)
            return self._finish(generation, status)

        def apply() -> None:
            self.session.is_authenticated = True
            self.session.identity_email = user.email
            # restore defaults if local details were cleared
            try:
                self.profiles.ensure_default_profile(user.email or DEFAULT_NAME)
            except StorageError as e:
                logger.error(f"could not write default profile: {e}")
            logger.debug(f"login successful for user {user.uid}")

        return self._finish(
            generation,
            Status.success(f"Logged in as {user.email or user.uid}."),
            apply,
            discard=lambda: self._undo_provider_session(generation),
        )

    def sign_out(self) -> None:
        """end the session. calls still in flight are discarded when they return."""
        self.provider.sign_out()
        self._generation += 1
        self._signed_out_at = self._generation
        self.session.is_authenticated = False
        self.session.identity_email = None
        self.session.status = None
        logger.debug("user signed out")
        self._publish_session()

    async def send_password_reset(self) -> Status:
        email = self.session.email_input
        if _blank(email):
            return self._report(Status.failure(ErrorKind.VALIDATION, MSG_RESET_MISSING))

        generation = self._generation
        try:
            await self._call(lambda: self.provider.send_password_reset(email))
        except _CallInterrupted as e:
            return self._finish(generation, e.status, clear_inputs=False)
        except ProviderError as e:
            logger.error(f"password reset failed: {e}")
            return self._finish(generation, Status.failure(ErrorKind.OTHER, e.message or MSG_RESET_FAILED))

        return self._finish(generation, Status.success(MSG_RESET_SENT))

    async def update_identity_email(self, new_email: str) -> Status:
        """
        change the signed-in account's email.

        the provider may insist on a recent login; failures are reported as
        re-authentication guidance and never retried here.
        """
        if not self.session.is_authenticated or _blank(new_email):
            return self._report(Status.failure(ErrorKind.VALIDATION, MSG_EMAIL_INVALID))

        generation = self._generation
        try:
            user = await self._call(lambda: self.provider.update_email(new_email.strip()))
        except _CallInterrupted as e:
            return self._finish(generation, e.status, clear_inputs=False)
        except ProviderError as e:
            logger.error(f"email update failed: {e}")
            return self._finish(
                generation,
                Status.failure(ErrorKind.REQUIRES_RECENT_LOGIN, MSG_EMAIL_UPDATE_FAILED),
                clear_inputs=False,
            )

        def apply() -> None:
            self.session.identity_email = user.email

        return self._finish(
            generation,
            Status.success(MSG_EMAIL_UPDATED),
            apply,
            clear_inputs=False,
            discard=lambda: self._undo_provider_session(generation),
        )

    # --- profile ---

    async def save_profile_details(
        self,
        name: str,
        age: str,
        skills: str,
        location: str,
        email: Optional[str] = None,
    ) -> Status:
        """
        save the profile edit form.

        when a different email is given the identity email is updated too and
        that outcome becomes the reported status.
        """
        try:
            validate_age(age)
        except ValidationError as e:
            return self._report(Status.failure(ErrorKind.VALIDATION, str(e)))

        try:
            self.profiles.save_all(name, age, skills, location)
        except StorageError as e:
            logger.error(f"profile details save failed: {e}")
            return self._report(Status.failure(ErrorKind.IO, MSG_DETAILS_FAILED))

        if not _blank(email) and email.strip() != self.session.identity_email:
            return await self.update_identity_email(email)
        return self._report(Status.success(MSG_DETAILS_UPDATED))

    def save_profile_image(self, source: Union[str, Path, BinaryIO]) -> Status:
        try:
            self.profiles.save_profile_image(source)
        except ProfileImageError as e:
            logger.error(f"profile image save failed: {e}")
            return self._report(Status.failure(ErrorKind.IO, MSG_IMAGE_FAILED))
        return self._report(Status.success(MSG_IMAGE_SAVED))

    # --- status slot ---

    def set_status(self, message: str, kind: StatusKind = StatusKind.INFO) -> Status:
        return self._report(Status(kind=kind, message=message))

    def clear_status(self) -> None:
        self.session.status = None
        self._publish_session()

    def close(self) -> None:
        """
        tear down local state.

        the provider's cached session is kept so the next process can pick it
        up in initialize().
        """
        self._generation += 1
        self.session.reset()
        self._publish_session()
        self.session_changes.clear()
        self.statuses.clear()

    # --- internals ---

    async def _call(self, factory: Callable[[], Awaitable[T]]) -> T:
        if self._in_flight:
            raise _CallInterrupted(Status.failure(ErrorKind.BUSY, MSG_BUSY))

        self._in_flight = True
        try:
            return await asyncio.wait_for(factory(), timeout=self.provider_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"provider call timed out after {self.provider_timeout}s")
            raise _CallInterrupted(Status.failure(ErrorKind.TIMEOUT, MSG_TIMEOUT))
        except ProviderError:
            raise
        except Exception as e:
            logger.exception("provider call failed unexpectedly")
            raise ProviderError(ProviderErrorKind.OTHER, str(e) or None) from e
        finally:
            self._in_flight = False

    def _finish(
        self,
        generation: int,
        status: Status,
        apply: Optional[Callable[[], None]] = None,
        clear_inputs: bool = True,
        discard: Optional[Callable[[], None]] = None,
    ) -> Status:
        """
        apply a provider outcome unless the session moved on meanwhile.

        a stale outcome is dropped; `discard` undoes whatever the provider
        itself kept from it (such as a freshly cached sign-in).
        """
        if generation != self._generation:
            logger.debug(f"discarding stale result: {status.message}")
            if discard is not None:
                discard()
            return status

        if apply is not None:
            try:
                apply()
            except StorageError as e:
                logger.error(f"could not save local state: {e}")
                status = Status.failure(ErrorKind.IO, MSG_DETAILS_FAILED)
        if clear_inputs:
            self._clear_inputs()
        return self._report(status)

    def _undo_provider_session(self, generation: int) -> None:
        # the provider caches a session when sign-in or an email update succeeds;
        # a sign_out() issued while that call was running must still win
        if self._signed_out_at > generation:
            logger.debug("signing out again after a stale provider result")
            self.provider.sign_out()

    def _report(self, status: Status) -> Status:
        # last message wins
        self.session.status = status
        self.statuses.publish(status)
        self._publish_session()
        return status

    def _clear_inputs(self) -> None:
        self.session.email_input = ""
        self.session.password_input = ""

    def _publish_session(self) -> None:
        self.session_changes.publish(self.session.model_copy(deep=True))
