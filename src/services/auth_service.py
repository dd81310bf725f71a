"""Auth service: login/logout lifecycle and session restoration."""

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from src.adapters.http_client import TypedHTTPClient
from src.core.exceptions import APIError, AuthenticationError
from src.core.session_store import SessionStore
from src.core.types import (
    CurrentUser,
    DeleteAccountRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    RequestEmailVerificationRequest,
    RequestEmailVerificationResponse,
    SignupRequest,
    SignupResponse,
    VerifyEmailCodeRequest,
)

logger = logging.getLogger("oeeecafe")


@dataclass(frozen=True)
class AuthState:
    is_authenticated: bool = False
    current_user: Optional[CurrentUser] = None
    is_checking: bool = False


class AuthService:
    """Owns the in-process auth state and keeps the persisted flag in step.

    Responsibilities:
    - Login/signup: set state and persist the "was authenticated" flag
    - Logout/delete account: always clear local state, server call is best effort
    - Restore: verify a persisted session with /auth/me at startup
    """

    def __init__(self, client: TypedHTTPClient, session_store: SessionStore):
        self._client = client
        self._store = session_store
        self._lock = threading.RLock()
        self._state = AuthState()
        self._listeners: list = []

    # --- State ---

    @property
    def state(self) -> AuthState:
        with self._lock:
            return self._state

    @property
    def current_user(self) -> Optional[CurrentUser]:
        return self.state.current_user

    @property
    def is_authenticated(self) -> bool:
        return self.state.is_authenticated

    def is_session_valid(self) -> bool:
        """True when a verified user is present. Push registration keys off this."""
        state = self.state
        return state.is_authenticated and state.current_user is not None

    def subscribe(self, listener: Callable[[AuthState], None]) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: AuthState) -> None:
        with self._lock:
            self._state = state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state)

    # --- Operations ---

    def login(self, login_name: str, password: str) -> CurrentUser:
        """Log in and persist the session.

        Raises:
            AuthenticationError: server answered but rejected the credentials
            APIError: any transport/server/decode failure
        """
        response = self._client.post(
            "/auth/login", LoginResponse,
            body=LoginRequest(login_name=login_name, password=password),
        )
        return self._complete_login(response, "Login")

    def signup(self, login_name: str, password: str, display_name: str) -> CurrentUser:
        response = self._client.post(
            "/auth/signup", SignupResponse,
            body=SignupRequest(login_name=login_name, password=password, display_name=display_name),
        )
        return self._complete_login(response, "Signup")

    def _complete_login(self, response: LoginResponse, action: str) -> CurrentUser:
        if not response.success or response.user is None:
            logger.warning(f"{action} rejected: {response.error or 'no user returned'}")
            raise AuthenticationError(response.error or f"{action} failed")

        user = response.user
        self._set_state(AuthState(is_authenticated=True, current_user=user))
        saved = self._store.persist_authenticated()
        logger.info(f"{action} successful for {user.login_name}")
        logger.debug(f"Persisted auth flag: {saved}")
        return user

    def logout(self, device_token: Optional[str] = None) -> None:
        """Log out. Local state is cleared even if the server call fails."""
        try:
            self._client.post("/auth/logout", body=LogoutRequest(device_token=device_token))
        except APIError as e:
            logger.warning(f"Logout request failed, clearing local session anyway: {e.message}")
        self._clear_local_session()
        logger.info("Logged out")

    def delete_account(self, password: str) -> None:
        """Delete the account, then drop the local session.

        Raises:
            APIError: the server refused or could not be reached; local state is kept
        """
        self._client.delete("/account", body=DeleteAccountRequest(password=password))
        self._clear_local_session()
        logger.info("Account deleted")

    def check_auth_status(self) -> bool:
        """Verify the session with the server. Any failure logs out silently."""
        with self._lock:
            self._set_state(dataclasses.replace(self._state, is_checking=True))
        try:
            user = self._client.get("/auth/me", CurrentUser)
        except APIError as e:
            logger.info(f"Session check failed, treating as logged out: {e.message}")
            self._store.clear_authenticated()
            self._set_state(AuthState())
            return False

        self._set_state(AuthState(is_authenticated=True, current_user=user))
        self._store.persist_authenticated()
        logger.debug(f"Session valid for {user.login_name}")
        return True

    def restore_session(self) -> bool:
        """Check the server only if a previous run left the authenticated flag set."""
        if not self._store.is_authenticated_flag_set():
            logger.debug("No persisted session to restore")
            return False
        return self.check_auth_status()

    def request_email_verification(self, email: str) -> RequestEmailVerificationResponse:
        return self._client.post(
            "/account/request-verify-email", RequestEmailVerificationResponse,
            body=RequestEmailVerificationRequest(email=email),
        )

    def verify_email_code(self, challenge_id: str, token: str) -> None:
        self._client.post(
            "/account/verify-email",
            body=VerifyEmailCodeRequest(challenge_id=challenge_id, token=token),
        )

    def _clear_local_session(self) -> None:
        self._store.clear_session()
        self._set_state(AuthState())
