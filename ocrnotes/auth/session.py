"""Session guard: resolves the caller's identity from request credentials.

A request is either Unauthenticated or Authenticated(identity). The only way
to become authenticated is the OAuth sign-in flow (``begin_sign_in`` then
``complete_sign_in``); sign-out or token expiry returns the caller to
Unauthenticated.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from starlette.requests import HTTPConnection

from ocrnotes.errors import AuthorizationError, ConfigurationError, ProviderError
from ocrnotes.utils.logger import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_COOKIE = "ocrnotes_access_token"
CODE_VERIFIER_COOKIE = "ocrnotes_code_verifier"


class SessionState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Identity:
    """A signed-in user as reported by the auth provider."""

    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_user_payload(cls, payload: dict[str, Any]) -> "Identity":
        metadata = payload.get("user_metadata") or {}
        return cls(
            id=str(payload["id"]),
            email=payload.get("email") or "",
            name=metadata.get("full_name"),
            avatar_url=metadata.get("avatar_url"),
        )


@dataclass
class AuthSession:
    """Tokens issued after a successful OAuth code exchange."""

    access_token: str
    refresh_token: str | None
    expires_in: int
    identity: Identity


@dataclass
class SessionContext:
    """Session state of one request."""

    state: SessionState
    identity: Identity | None = None
    access_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED


UNAUTHENTICATED = SessionContext(SessionState.UNAUTHENTICATED)


class AuthProvider(Protocol):
    """External auth/session provider."""

    def authorize_url(self, redirect_to: str, code_challenge: str) -> str: ...

    async def exchange_code(self, code: str, code_verifier: str) -> AuthSession: ...

    async def get_user(self, access_token: str) -> Identity | None: ...

    async def sign_out(self, access_token: str) -> None: ...


def extract_token_from_header(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def extract_access_token(connection: HTTPConnection) -> str | None:
    """Find the access token of a request: bearer header first, then cookie."""
    token = extract_token_from_header(connection.headers.get("authorization"))
    return token or connection.cookies.get(ACCESS_TOKEN_COOKIE) or None


def new_code_verifier() -> str:
    return secrets.token_urlsafe(48)


def code_challenge_for(verifier: str) -> str:
    """S256 PKCE challenge for a code verifier."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


class SessionGuard:
    """Resolves and manages user sessions through an auth provider.

    Args:
        provider: Auth provider, or ``None`` when auth is not configured.
    """

    def __init__(self, provider: AuthProvider | None) -> None:
        self.provider = provider

    @property
    def is_configured(self) -> bool:
        return self.provider is not None

    def _require_provider(self) -> AuthProvider:
        if self.provider is None:
            raise ConfigurationError("Supabase is not configured")
        return self.provider

    async def current(self, connection: HTTPConnection) -> SessionContext:
        """Return the session state of a request without raising for guests."""
        token = extract_access_token(connection)
        if not token or self.provider is None:
            return UNAUTHENTICATED

        try:
            return await self._resolve(connection, token)
        except ProviderError as exc:
            logger.error("Error getting current user: %s", exc)
            return UNAUTHENTICATED

    async def require(self, connection: HTTPConnection) -> Identity:
        """Return the caller's identity.

        Raises:
            AuthorizationError: If the request carries no valid session.
            ConfigurationError: If auth is not configured.
            ProviderError: If the auth provider cannot be reached.
        """
        token = extract_access_token(connection)
        if not token:
            raise AuthorizationError()

        self._require_provider()
        context = await self._resolve(connection, token)
        if not context.is_authenticated:
            raise AuthorizationError()
        return context.identity

    async def _resolve(self, connection: HTTPConnection, token: str) -> SessionContext:
        # one provider lookup per request
        cached = getattr(connection.state, "session", None)
        if cached is not None and cached.access_token == token:
            return cached

        identity = await self.provider.get_user(token)
        if identity is None:
            context = SessionContext(SessionState.UNAUTHENTICATED, access_token=token)
        else:
            context = SessionContext(SessionState.AUTHENTICATED, identity, token)
        connection.state.session = context
        return context

    def begin_sign_in(self, redirect_to: str) -> tuple[str, str]:
        """Start the OAuth flow.

        Returns:
            Tuple of (provider authorize URL, PKCE code verifier to keep).
        """
        verifier = new_code_verifier()
        url = self._require_provider().authorize_url(redirect_to, code_challenge_for(verifier))
        return url, verifier

    async def complete_sign_in(self, code: str, code_verifier: str) -> AuthSession:
        session = await self._require_provider().exchange_code(code, code_verifier)
        logger.info("User %s signed in", session.identity.id)
        return session

    async def sign_out(self, access_token: str | None) -> None:
        """Revoke a session at the provider.

        Provider failures are logged; the caller still clears local state.
        """
        if not access_token or self.provider is None:
            return
        try:
            await self.provider.sign_out(access_token)
        except ProviderError as exc:
            logger.error("Error signing out: %s", exc)
