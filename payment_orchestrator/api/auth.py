"""
Bearer-token authentication for the payments, orders and diagnostics APIs.

Tokens are HS256 JWTs carrying issuer, audience, subject, roles and a
lifetime from settings. Validation checks signature, issuer, audience and
expiry with no clock skew allowance.
"""
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from payment_orchestrator.config import Settings, get_settings
from payment_orchestrator.monitoring.logging import get_logger

logger = get_logger(__name__, component="auth")

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


class InvalidTokenError(Exception):
    """Raised when a bearer token fails validation."""

    pass


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Login name")
    password: str = Field(..., min_length=1, description="Password")

    model_config = {"json_schema_extra": {"examples": [{"username": "admin", "password": "password"}]}}


class LoginResponse(BaseModel):
    token: str = Field(..., description="Bearer access token")
    expires_in: int = Field(..., description="Token lifetime in seconds")


class TokenService:
    """Issues and validates access tokens."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.jwt_expiration_minutes)

    def generate_token(
        self,
        user_id: str,
        roles: Optional[Sequence[str]] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Sign a token for ``user_id``.

        Args:
            user_id: Subject of the token
            roles: Role names embedded in the ``roles`` claim
            now: Issue time (defaults to the current UTC time)

        Returns:
            str: Encoded JWT
        """
        issued_at = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": user_id,
            "roles": list(roles or []),
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self.settings.jwt_secret_key, algorithm=ALGORITHM)

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and verify a token.

        Raises:
            InvalidTokenError: If the signature, issuer, audience or expiry is wrong
        """
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[ALGORITHM],
                issuer=self.settings.jwt_issuer,
                audience=self.settings.jwt_audience,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)


async def require_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Dict[str, Any]:
    """Reject the request with 401 unless it carries a valid bearer token."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = tokens.validate_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning("token_rejected", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return claims


def _credentials_match(request: LoginRequest, settings: Settings) -> bool:
    username_ok = hmac.compare_digest(request.username.encode(), settings.api_username.encode())
    password_ok = hmac.compare_digest(request.password.encode(), settings.api_password.encode())
    return username_ok and password_ok


ADMIN_ROLES: List[str] = ["Admin"]


@auth_router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid credentials"}},
    summary="Login",
    description="Exchange API credentials for a bearer token",
)
async def login(
    request: LoginRequest,
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_token_service),
) -> Any:
    if not _credentials_match(request, settings):
        logger.warning("login_failed", username=request.username)
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"message": "Invalid credentials"},
        )
    logger.info("login_succeeded", username=request.username)
    return LoginResponse(
        token=tokens.generate_token(request.username, ADMIN_ROLES),
        expires_in=int(tokens.lifetime.total_seconds()),
    )
