"""In-memory authentication session.

The session holds the single bearer token obtained at login. It lives only
as long as the process (or the client that owns it); nothing is persisted.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_HEADER = "x-jwt-token"


class AuthSession:
    """Holder for the bearer token and the logged-in user.

    Examples:
        >>> session = AuthSession()
        >>> session.is_authenticated
        False
        >>> session.set_token("abc")
        >>> session.auth_headers()["Authorization"]
        'Bearer abc'
        >>> session.clear()
        True
        >>> session.auth_headers()
        {}
    """

    def __init__(self, token: Optional[str] = None, user: Optional[Dict[str, Any]] = None):
        self._token = token or None
        self.user = user

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        self._token = token or None
        if user is not None:
            self.user = user

    def clear(self) -> bool:
        """Forget the token and user.

        Returns:
            True if a token was present, so callers can tell the first
            clear apart from repeated ones.
        """
        had_token = self._token is not None
        self._token = None
        self.user = None
        if had_token:
            logger.info("Auth token cleared")
        return had_token

    def auth_headers(self) -> Dict[str, str]:
        """Headers carrying the token; empty when unauthenticated."""
        if self._token is None:
            return {}
        return {
            "Authorization": f"Bearer {self._token}",
            TOKEN_HEADER: self._token,
        }

    def __repr__(self) -> str:
        return f"AuthSession(authenticated={self.is_authenticated})"


__all__ = ["AuthSession", "TOKEN_HEADER"]
