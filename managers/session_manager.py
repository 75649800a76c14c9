"""
Session store - who is logged in, and with which bearer token.

The token is the only thing persisted across restarts. Token and user are
always set together and cleared together; on teardown the persisted token is
removed before the in-memory state so a later restore() cannot bring it back.
"""
import threading
from typing import Callable, List, Optional

from pydantic import ValidationError as SchemaError

from caller.rest import ApiClient
from config.constants import Endpoints, StorageKeys
from models.session import LoginRequest, LoginResponse, RegisterRequest, Role, User
from utils.auth_helpers import is_token_expired, mask_email
from utils.error_handlers import AppException, AuthenticationError, ErrorContext
from utils.logging_config import get_logger
from utils.secrets_manager import SecretsManager

logger = get_logger(__name__)

SessionListener = Callable[["SessionStore"], None]


class SessionStore:
    """Single source of truth for the authenticated identity"""

    def __init__(self, api: ApiClient, secrets: SecretsManager):
        self._api = api
        self._secrets = secrets
        # Serialises every transition, including the network call inside logout()
        self._lock = threading.RLock()
        self._token: Optional[str] = None
        self._user: Optional[User] = None
        self._loading = True
        self._listeners: List[SessionListener] = []
        # Token whose stored copy could not be deleted; never restored in this process
        self._revoked_token: Optional[str] = None

    # -------------------- state --------------------

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def loading(self) -> bool:
        """True until the first restore() has settled"""
        return self._loading

    @property
    def role(self) -> Optional[Role]:
        user = self._user
        return user.role if user else None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and self._user is not None

    def add_listener(self, callback: SessionListener) -> Callable[[], None]:
        """
        Call ``callback(store)`` after every completed transition.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _notify(self) -> None:
        for callback in list(self._listeners):
            with ErrorContext("[Session] Session listener"):
                callback(self)

    # -------------------- transitions --------------------

    def restore(self) -> Optional[User]:
        """
        Resume the persisted session, if any.

        Any failure to resolve the user (network, 401, bad payload, expired
        JWT) tears the session down. Never raises for those cases.
        """
        user = None
        with self._lock:
            try:
                token = self._secrets.get_credential(StorageKeys.SESSION_TOKEN)
                if not token:
                    logger.debug("[Session] No stored session")
                    self._clear_state()
                elif token == self._revoked_token:
                    logger.warning("[Session] Stored token was signed out earlier, removing it again")
                    self._teardown()
                elif is_token_expired(token):
                    logger.info("[Session] Stored token has expired, signing out")
                    self._teardown()
                else:
                    user = self._resolve_user(token)
                    if user is None:
                        self._teardown()
                    else:
                        self._token, self._user = token, user
                        logger.info(f"[Session] Restored session for {mask_email(user.email)} ({user.role.value})")
            finally:
                self._loading = False
        self._notify()
        return user

    def _resolve_user(self, token: str) -> Optional[User]:
        try:
            data = self._api.get(Endpoints.AUTH_ME, token=token, report_unauthorized=False)
            return User.model_validate(data)
        except AppException as e:
            logger.info(f"[Session] Could not restore session: {e.error_code}")
        except SchemaError:
            logger.warning("[Session] Could not restore session: malformed profile")
        return None

    def login(self, email: str, password: str) -> User:
        """
        Sign in and persist the session.

        Returns:
            The signed-in user (callers branch on ``user.role``)

        Raises:
            ValidationError: blank or malformed input, no request is made
            APIError / NetworkError: from the backend, state untouched
            AuthenticationError: response lacked a token or user
        """
        credentials = LoginRequest.from_form(email, password)
        with self._lock:
            data = self._api.post(
                Endpoints.AUTH_LOGIN,
                json=credentials.model_dump(),
                authenticated=False,
            )
            user = self._establish(data)
            logger.info(f"[Session] Logged in {mask_email(credentials.email)} as {user.role.value}")
        self._notify()
        return user

    def register(self, email: str, name: str, password: str) -> User:
        """Create an account and sign in with it (same contract as login)."""
        account = RegisterRequest.from_form(email, name, password)
        with self._lock:
            data = self._api.post(
                Endpoints.AUTH_REGISTER,
                json=account.model_dump(),
                authenticated=False,
            )
            user = self._establish(data)
            logger.info(f"[Session] Registered {mask_email(account.email)}")
        self._notify()
        return user

    def _establish(self, data) -> User:
        try:
            response = LoginResponse.model_validate(data)
        except SchemaError as e:
            raise AuthenticationError(original_error=e) from e

        if not self._secrets.set_credential(StorageKeys.SESSION_TOKEN, response.session_token):
            raise AuthenticationError(
                message="Could not save your session on this device",
                recovery_hint="Check that the application data folder is writable.",
            )
        self._token, self._user = response.session_token, response.user
        return response.user

    def logout(self) -> None:
        """
        Best-effort server logout, then local teardown (storage before state).

        Never raises for network failures.
        """
        with self._lock:
            token = self._token or self._secrets.get_credential(StorageKeys.SESSION_TOKEN)
            if token:
                try:
                    self._api.post(Endpoints.AUTH_LOGOUT, token=token, report_unauthorized=False)
                except AppException as e:
                    logger.warning(f"[Session] Logout request failed, signing out locally: {e.error_code}")
            self._teardown()
            logger.info("[Session] Logged out")
        self._notify()

    def invalidate(self, reason: str = "") -> None:
        """Local teardown without calling the backend (e.g. after a 401)."""
        with self._lock:
            if self._token is None and self._user is None:
                return
            logger.warning(f"[Session] Session invalidated{': ' + reason if reason else ''}")
            self._teardown()
        self._notify()

    def _teardown(self) -> None:
        # Storage first, then memory
        self._secrets.delete_credential(StorageKeys.SESSION_TOKEN)
        leftover = self._secrets.get_credential(StorageKeys.SESSION_TOKEN)
        if leftover:
            logger.error("[Session] Stored session token could not be removed; it will not be restored")
            self._revoked_token = leftover
        self._clear_state()

    def _clear_state(self) -> None:
        self._token = None
        self._user = None
