import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from enum import Enum

from jose import jwt, JWTError

from bookreview.core.config import settings
from bookreview.core.exceptions import (
    TokenExpired,
    TokenTypeInvalid,
    InvalidToken,
)

# --- Setup ---
logger = logging.getLogger(__name__)


# --- Enums & Config ---
class TokenType(str, Enum):
    """Defines the types of tokens the API accepts."""

    ACCESS = "access"
    REFRESH = "refresh"


class SecurityConfig:
    """Validates and holds all security-related configurations."""

    JWT_SECRET_KEY: str = settings.JWT_SECRET
    JWT_ALGORITHM: str = settings.JWT_ALGORITHM
    ACCESS_TOKEN_EXPIRE_MINUTES: int = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    TOKEN_ISSUER: str = settings.TOKEN_ISSUER
    TOKEN_AUDIENCE: str = settings.TOKEN_AUDIENCE

    @classmethod
    def validate(cls):
        if not cls.JWT_SECRET_KEY or len(cls.JWT_SECRET_KEY) < 32:
            raise ValueError(
                "JWT_SECRET must be configured and be at least 32 characters long."
            )


SecurityConfig.validate()


# --- Token Management ---
class TokenManager:
    """
    Token creation and verification.

    Tokens are issued by the identity service; this API only verifies them.
    `create_token` exists for tooling and tests.
    """

    config = SecurityConfig

    def create_token(
        self,
        subject: str,
        token_type: TokenType = TokenType.ACCESS,
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Creates a JWT with specified type and claims."""
        now = datetime.now(timezone.utc)
        if not expires_delta:
            expires_delta = timedelta(minutes=self.config.ACCESS_TOKEN_EXPIRE_MINUTES)

        claims = {
            "sub": str(subject),
            "exp": now + expires_delta,
            "iat": now,
            "nbf": now,
            "iss": self.config.TOKEN_ISSUER,
            "aud": self.config.TOKEN_AUDIENCE,
            "jti": str(uuid.uuid4()),
            "type": token_type.value,
        }
        if additional_claims:
            claims.update(additional_claims)

        return jwt.encode(
            claims, self.config.JWT_SECRET_KEY, algorithm=self.config.JWT_ALGORITHM
        )

    def verify_token(
        self, token: str, expected_type: TokenType = TokenType.ACCESS
    ) -> Dict[str, Any]:
        """Verifies and decodes a JWT."""
        # 1. Reject empty input before touching the JWT library
        if not token:
            raise InvalidToken("Token cannot be empty.")

        # 2. Signature, expiry, issuer and audience
        try:
            payload = jwt.decode(
                token,
                self.config.JWT_SECRET_KEY,
                algorithms=[self.config.JWT_ALGORITHM],
                audience=self.config.TOKEN_AUDIENCE,
                issuer=self.config.TOKEN_ISSUER,
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except JWTError as e:
            raise InvalidToken(f"Token is invalid: {e}") from e

        # 3. Claims this API relies on
        token_type = payload.get("type")
        if token_type != expected_type.value:
            raise TokenTypeInvalid(
                f"Expected '{expected_type.value}' token, but got '{token_type}'."
            )
        if not payload.get("sub"):
            raise InvalidToken("Token is missing the required 'sub' claim.")

        return payload


# --- Security Utilities ---
class SecurityHeaders:
    """Centralized definition of security headers for API responses."""

    @staticmethod
    def get_headers() -> Dict[str, str]:
        """Returns a dictionary of recommended security headers."""
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "strict-origin-when-cross-origin",
        }


# --- Singleton Instances ---
token_manager = TokenManager()
