"""Supabase Auth (GoTrue) provider over HTTP."""

from urllib.parse import urlencode

import httpx

from ocrnotes.errors import AuthorizationError, ProviderError
from ocrnotes.utils.config import SupabaseConfig
from ocrnotes.utils.logger import get_logger

from .session import AuthSession, Identity

logger = get_logger(__name__)


def _invalid_payload(endpoint: str, exc: Exception) -> ProviderError:
    logger.error("Unexpected /%s response from Supabase auth: %r", endpoint, exc)
    return ProviderError("Invalid response from authentication service", repr(exc))


class SupabaseAuthProvider:
    """Talks to the ``/auth/v1`` endpoints of a Supabase project.

    Args:
        url: Supabase project URL.
        anon_key: Project anon (public) API key.
        oauth_provider: OAuth provider to sign in with.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        oauth_provider: str = "google",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = url.rstrip("/")
        self.oauth_provider = oauth_provider
        self.client = httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            headers={"apikey": anon_key},
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: SupabaseConfig) -> "SupabaseAuthProvider | None":
        if not config.is_configured:
            return None
        return cls(config.url, config.anon_key, config.oauth_provider)

    async def aclose(self) -> None:
        await self.client.aclose()

    def authorize_url(self, redirect_to: str, code_challenge: str) -> str:
        query = urlencode(
            {
                "provider": self.oauth_provider,
                "redirect_to": redirect_to,
                "code_challenge": code_challenge,
                "code_challenge_method": "s256",
            }
        )
        return f"{self.base_url}/auth/v1/authorize?{query}"

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Supabase auth request %s %s failed: %s", method, path, exc)
            raise ProviderError("Authentication service unavailable", str(exc)) from exc

        if response.status_code >= 500:
            raise ProviderError("Authentication service unavailable", response.text)
        return response

    async def exchange_code(self, code: str, code_verifier: str) -> AuthSession:
        response = await self._send(
            "POST",
            "/token",
            params={"grant_type": "pkce"},
            json={"auth_code": code, "code_verifier": code_verifier},
        )
        if response.status_code != 200:
            logger.warning("Code exchange rejected: %s", response.text)
            raise AuthorizationError("Failed to sign in", response.text)

        try:
            data = response.json()
            return AuthSession(
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token"),
                expires_in=int(data.get("expires_in", 3600)),
                identity=Identity.from_user_payload(data["user"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise _invalid_payload("token", exc) from exc

    async def get_user(self, access_token: str) -> Identity | None:
        response = await self._send(
            "GET", "/user", headers={"Authorization": f"Bearer {access_token}"}
        )
        if response.status_code in (401, 403):
            return None
        if response.status_code != 200:
            raise ProviderError("Failed to resolve session", response.text)
        try:
            return Identity.from_user_payload(response.json())
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise _invalid_payload("user", exc) from exc

    async def sign_out(self, access_token: str) -> None:
        response = await self._send(
            "POST", "/logout", headers={"Authorization": f"Bearer {access_token}"}
        )
        if response.status_code not in (200, 204, 401, 403, 404):
            raise ProviderError("Failed to sign out", response.text)
