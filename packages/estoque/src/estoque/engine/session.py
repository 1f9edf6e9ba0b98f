"""Bearer credential storage and the session-expired boundary."""

import logging
from collections.abc import Callable

from estoque.engine.notifications import NotificationLevel, Notifier

logger = logging.getLogger(__name__)

AUTH_ERROR_KEY = "auth-error"


class CredentialStore:
    """Holds the bearer token attached to outgoing requests."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    @property
    def token(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token or None

    def clear(self) -> None:
        self._token = None

    def authorization_header(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}


class SessionGuard:
    """
    Reacts to 401 responses.

    The first unauthorized response clears the stored credential, shows one
    "session expired" notice and hands control to ``on_expired`` with the login
    path. Later 401s are ignored until ``reset`` is called after a new login.
    Responses from the login endpoint itself never trigger a redirect.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        notifier: Notifier | None = None,
        *,
        login_path: str = "/login",
        login_endpoint: str = "/api/auth/login",
        on_expired: Callable[[str], None] | None = None,
    ) -> None:
        self._credentials = credentials
        self._notifier = notifier
        self._login_path = login_path
        self._login_endpoint = login_endpoint
        self._on_expired = on_expired
        self._expired = False

    @property
    def expired(self) -> bool:
        return self._expired

    def handle_unauthorized(self, path: str) -> bool:
        """Tear down the session. Returns False when nothing was done."""
        if self._expired:
            return False
        if path.split("?", 1)[0].rstrip("/") == self._login_endpoint.rstrip("/"):
            return False

        self._expired = True
        self._credentials.clear()
        logger.warning(f"Session expired while requesting {path}")

        if self._notifier is not None:
            self._notifier.notify(
                NotificationLevel.ERROR,
                "Your session has expired. Please sign in again.",
                key=AUTH_ERROR_KEY,
            )
        if self._on_expired is not None:
            self._on_expired(self._login_path)
        return True

    def reset(self, token: str | None = None) -> None:
        """Re-arm the guard after a new login."""
        if token:
            self._credentials.set(token)
        self._expired = False
        if self._notifier is not None:
            self._notifier.dismiss(AUTH_ERROR_KEY)
