"""
Passwords, access tokens and login.

Passwords are stored as bcrypt hashes (passlib). Access tokens are
HMAC-signed JWTs (python-jose) whose ``sub`` claim is the public user id.
"""

import structlog
from typing import Optional
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from jose import JWTError, jwt
from pydantic import ValidationError

from myhome.config import get_settings
from myhome.errors import CredentialsIncorrectError, UserNotFoundError
from myhome.models.auth import CurrentUser, LoginRequest, TokenPayload, TokenResponse
from myhome.repositories.user_repo import UserRepository
from shared.metrics import ServiceMetrics, get_service_metrics

logger = structlog.get_logger(__name__)


class AuthService:
    """Credential checks and token handling on top of ``UserRepository``."""

    def __init__(self, user_repo: UserRepository, metrics: Optional[ServiceMetrics] = None):
        self.user_repo = user_repo
        self.settings = get_settings()
        self.metrics = metrics or get_service_metrics()

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.settings.password_bcrypt_rounds
        )

    @property
    def token_lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.jwt_access_token_expire_minutes)

    def hash_password(self, password: str) -> str:
        """Salted bcrypt hash of ``password``."""
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Check ``plain_password`` against a stored hash.

        A stored value that is not a recognisable hash counts as a mismatch.
        """
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except ValueError as e:
            logger.warning("stored_password_unreadable", error=str(e))
            return False

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Signed token for ``user_id``.

        Args:
            user_id: Public user id, stored as ``sub``
            expires_delta: Lifetime; defaults to ``jwt_access_token_expire_minutes``
        """
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + (expires_delta if expires_delta is not None else self.token_lifetime)

        claims = {
            "sub": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(claims, self.settings.jwt_secret_key, algorithm=self.settings.jwt_algorithm)

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """
        Verified claims of ``token``.

        Returns None when the signature or expiry check fails, or when the
        token carries no subject.
        """
        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm]
            )
            if not claims.get("sub"):
                logger.info("token_rejected", reason="no subject")
                return None
            return TokenPayload(sub=claims["sub"], exp=claims.get("exp"), iat=claims.get("iat"))

        except (JWTError, ValidationError) as e:
            logger.info("token_rejected", reason=str(e))
            return None

    async def login(self, login_request: LoginRequest) -> TokenResponse:
        """
        Exchange email and password for an access token.

        Raises:
            UserNotFoundError: no user has this email
            CredentialsIncorrectError: the password does not match
        """
        user = await self.user_repo.get_by_email(login_request.email)

        if user is None:
            self._login_failed("user_not_found", email=login_request.email)
            raise UserNotFoundError(login_request.email)

        if not self.verify_password(login_request.password, user.encrypted_password):
            self._login_failed("invalid_password", user_id=user.user_id)
            raise CredentialsIncorrectError(user.user_id)

        self.metrics.login_attempts.labels(outcome="success").inc()
        logger.info("user_logged_in", user_id=user.user_id)

        return TokenResponse(
            access_token=self.create_access_token(user.user_id),
            token_type="bearer",
            expires_in=int(self.token_lifetime.total_seconds()),
            user_id=user.user_id
        )

    def _login_failed(self, outcome: str, **context) -> None:
        self.metrics.login_attempts.labels(outcome=outcome).inc()
        logger.warning("login_failed", outcome=outcome, **context)

    async def get_current_user(self, token: str) -> Optional[CurrentUser]:
        """User named by a valid token, or None."""
        payload = self.decode_token(token)
        if payload is None:
            return None

        user = await self.user_repo.get_by_user_id(payload.sub)
        if user is None:
            logger.info("token_user_missing", user_id=payload.sub)
            return None

        return CurrentUser(user_id=user.user_id, name=user.name, email=user.email)
