"""JWT authentication service"""

import logging
from datetime import UTC, datetime, timedelta

import jwt

logger = logging.getLogger(__name__)


class AuthService:
    """Validate (and, for tooling, mint) Supabase-style access tokens"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        audience: str | None = "authenticated",
        expire_minutes: int = 60,
    ):
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience
        self.expire_minutes = expire_minutes

    def create_access_token(self, user_id: str, email: str | None = None) -> str:
        """Create an access token carrying the user id in ``sub``"""
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "role": "authenticated",
            "exp": now + timedelta(minutes=self.expire_minutes),
            "iat": now,
        }
        if self.audience:
            payload["aud"] = self.audience
        if email:
            payload["email"] = email

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"JWT created for user: {user_id}")
        return token

    def verify_token(self, token: str) -> dict | None:
        """Verify a JWT token and return the payload if valid"""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

        if not payload.get("sub"):
            logger.warning("Token missing sub")
            return None
        return payload
