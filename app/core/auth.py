"""Supabase authentication module."""

import logging
from dataclasses import dataclass
from uuid import UUID

import jwt
from jwt import PyJWKClient

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthUser:
    """The authenticated caller, as described by the token claims."""

    id: UUID
    email: str | None = None
    role: str | None = None


class SupabaseAuth:
    """Supabase JWT validation."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._jwks_client: PyJWKClient | None = None

    @property
    def jwks_client(self) -> PyJWKClient:
        """Lazy-loaded JWKS client."""
        if self._jwks_client is None:
            if not self.settings.jwks_url:
                raise ValueError("SUPABASE_URL or SUPABASE_JWKS_URL is not configured")
            self._jwks_client = PyJWKClient(self.settings.jwks_url)
        return self._jwks_client

    def verify_token(self, token: str) -> dict:
        """Validate a Supabase access token and return its claims.

        Projects using the legacy shared secret sign with HS256; projects
        with asymmetric signing keys publish them on the JWKS endpoint.

        Raises:
            jwt.InvalidTokenError: If the token is invalid or expired
        """
        header = jwt.get_unverified_header(token)
        algorithm = header.get("alg", "HS256")
        audience = self.settings.supabase_jwt_audience or None

        if algorithm == "HS256":
            if not self.settings.supabase_jwt_secret:
                raise jwt.InvalidTokenError("SUPABASE_JWT_SECRET is not configured")
            return jwt.decode(
                token,
                self.settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience=audience,
                options={"verify_aud": audience is not None},
            )

        signing_key = self.jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            audience=audience,
            options={"verify_aud": audience is not None},
        )

    def authenticate(self, token: str) -> AuthUser:
        """Verify the token and build the caller identity from its claims."""
        claims = self.verify_token(token)
        subject = claims.get("sub")
        if not subject:
            raise jwt.InvalidTokenError("Token has no subject")
        try:
            user_id = UUID(subject)
        except ValueError as e:
            raise jwt.InvalidTokenError("Token subject is not a user id") from e
        return AuthUser(id=user_id, email=claims.get("email"), role=claims.get("role"))


# Global instance
supabase_auth = SupabaseAuth()
