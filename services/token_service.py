from datetime import datetime, timezone, timedelta
from jose import jwt
from core.config import settings


class TokenService:
    """
    Issues the bearer tokens read by utils.deps.get_current_user.
    """

    @staticmethod
    def create_access_token(email: str, user_id: int, role: str, expires_delta: timedelta = None) -> str:
        """
        Creates a JWT access token.

        Args:
            email: User's email
            user_id: User's ID
            role: "customer" or "admin"
            expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)

        Returns:
            JWT access token string
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta

        payload = {
            "sub": email,
            "id": user_id,
            "role": role,
            "type": "access",
            "exp": expire
        }

        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_tokens(email: str, user_id: int, role: str) -> dict:
        return {
            "access_token": TokenService.create_access_token(email, user_id, role),
            "token_type": "bearer"
        }
