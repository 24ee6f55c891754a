"""
Service-account access tokens for Google Cloud (JWT bearer grant).
"""
import time

import httpx
import jwt

from quizgen.services.image_generation.base import CredentialError

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


class ServiceAccountCredentials:
    """Exchanges a signed RS256 assertion for a short-lived OAuth2 access token."""

    def __init__(
        self,
        email: str,
        private_key: str,
        token_url: str = "https://oauth2.googleapis.com/token",
        timeout: float = 30.0,
    ):
        self.email = email
        self.private_key = private_key
        self.token_url = token_url
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.email and self.private_key)

    def build_assertion(self, now: int | None = None) -> str:
        now = int(time.time()) if now is None else now
        claims = {
            "iss": self.email,
            "sub": self.email,
            "aud": self.token_url,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME_SECONDS,
            "scope": CLOUD_PLATFORM_SCOPE,
        }
        try:
            return jwt.encode(claims, self.private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise CredentialError(f"Failed to sign service account assertion: {e}") from e

    async def fetch_access_token(self, client: httpx.AsyncClient) -> str:
        """Raises CredentialError on any failure."""
        if not self.is_configured():
            raise CredentialError(
                "Google Cloud credentials not configured. "
                "Please set GOOGLE_CLOUD_SERVICE_ACCOUNT_EMAIL and GOOGLE_CLOUD_PRIVATE_KEY."
            )

        assertion = self.build_assertion()
        try:
            response = await client.post(
                self.token_url,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise CredentialError(f"Failed to get access token: {e}") from e

        if response.is_error:
            raise CredentialError(
                f"Failed to get access token: {response.text}",
                http_status=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise CredentialError("Failed to get access token: invalid JSON response") from e
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token or not isinstance(token, str):
            raise CredentialError("Failed to get access token: no access_token in response")
        return token
