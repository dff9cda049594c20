from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordRequestForm
from utils.deps import db_dependency
from utils.responses import envelope
from starlette import status
from schemas.auth_schemas import Token, CreateUserRequest
from services.auth_service import AuthService
from services.token_service import TokenService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/token", response_model=Token)
@limiter.limit("5/minute")
async def login_for_access_token(request: Request, db: db_dependency,
                                 form_data: OAuth2PasswordRequestForm = Depends()):
    user = AuthService.authenticate_user(form_data.username, form_data.password, db)

    token = TokenService.create_tokens(user.email, user.id, user.role)

    logger.info(
        "User logged in successfully",
        extra={"user_id": user.id, "email": user.email}
    )

    return token


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
async def create_user(request: Request, body: CreateUserRequest, db: db_dependency):
    user = AuthService.create_user(body, db)

    logger.info(
        "User registered successfully",
        extra={"user_id": user.id, "email": user.email}
    )

    return envelope(
        {"id": user.id, "email": user.email, "full_name": user.full_name},
        message="Registration successful",
        status_code=status.HTTP_201_CREATED,
    )
