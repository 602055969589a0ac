import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..core.errors import (
    AlreadyExists,
    AlreadyVerified,
    AuthError,
    EmailNotVerified,
    Expired,
    InvalidCode,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    NoChallenge,
    NotFound,
    TooSoon,
)
from ..core.models import PublicAccount
from ..core.service import AuthEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_STATUS_CODES: dict[type[AuthError], int] = {
    AlreadyExists: 409,
    NotFound: 404,
    InvalidCredentials: 401,
    EmailNotVerified: 403,
    AlreadyVerified: 409,
    NoChallenge: 400,
    Expired: 410,
    InvalidCode: 400,
    TooSoon: 429,
    InvalidToken: 401,
    InvalidInput: 422,
}


class RegisterRequest(BaseModel):
    email: str
    password: str
    name: str


class LoginRequest(BaseModel):
    email: str
    password: str


class VerifyEmailRequest(BaseModel):
    email: str
    code: str


class EmailRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    email: str
    code: str
    new_password: str = Field(..., alias="newPassword")

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken")

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    status: str = "ok"
    message: str


class RegisterResponse(MessageResponse):
    user: PublicAccount


class TokenResponse(BaseModel):
    status: str = "ok"
    access_token: str
    refresh_token: str
    expires_at: datetime


class LoginResponse(TokenResponse):
    user: PublicAccount


class MeResponse(BaseModel):
    status: str = "ok"
    user: PublicAccount


class ErrorResponse(BaseModel):
    status: str = "error"
    error: str
    message: str
    remaining_seconds: Optional[int] = None


def error_response(exc: AuthError, *, token_context: bool = False) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    if token_context and isinstance(exc, Expired):
        status_code = 401
    body = ErrorResponse(
        error=exc.kind,
        message=exc.message,
        remaining_seconds=getattr(exc, "remaining_seconds", None),
    )
    headers = None
    if isinstance(exc, TooSoon):
        headers = {"Retry-After": str(exc.remaining_seconds)}
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    locations = [tuple(error.get("loc") or ()) for error in exc.errors()]
    fields = [loc[-1] for loc in locations if len(loc) > 1 and isinstance(loc[-1], str)]
    logger.info("Rejected %s %s: invalid fields %s", request.method, request.url.path, fields)
    message = "Invalid request body"
    if fields:
        message = f"Missing or invalid field: {', '.join(fields)}"
    return error_response(InvalidInput(message))


def bearer_token(authorization: str) -> str:
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def create_router(engine: AuthEngine) -> APIRouter:
    router = APIRouter(prefix="/auth", tags=["auth"])

    def get_engine() -> AuthEngine:
        return engine

    def run(operation: str, call: Callable[[], T], *, token_context: bool = False) -> T | JSONResponse:
        try:
            return call()
        except AuthError as exc:
            logger.info("Auth %s rejected kind=%s", operation, exc.kind)
            return error_response(exc, token_context=token_context)
        except Exception as e:
            logger.exception("Failed handling auth %s", operation)
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/register", response_model=RegisterResponse, responses={409: {"model": ErrorResponse}})
    def register(payload: RegisterRequest, service: AuthEngine = Depends(get_engine)):
        result = run(
            "register",
            lambda: service.register(email=payload.email, password=payload.password, name=payload.name),
        )
        if isinstance(result, JSONResponse):
            return result
        return RegisterResponse(message=result.message, user=result.user)

    @router.post("/login", response_model=LoginResponse, responses={401: {"model": ErrorResponse}})
    def login(payload: LoginRequest, service: AuthEngine = Depends(get_engine)):
        result = run("login", lambda: service.login(email=payload.email, password=payload.password))
        if isinstance(result, JSONResponse):
            return result
        return LoginResponse(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_at=result.expires_at,
            user=result.user,
        )

    @router.post("/verify-email", response_model=MessageResponse, responses={400: {"model": ErrorResponse}})
    def verify_email(payload: VerifyEmailRequest, service: AuthEngine = Depends(get_engine)):
        result = run("verify-email", lambda: service.verify_email(email=payload.email, code=payload.code))
        if isinstance(result, JSONResponse):
            return result
        return MessageResponse(message=result.message)

    @router.post("/resend-verification", response_model=MessageResponse, responses={429: {"model": ErrorResponse}})
    def resend_verification(payload: EmailRequest, service: AuthEngine = Depends(get_engine)):
        result = run("resend-verification", lambda: service.resend_verification(email=payload.email))
        if isinstance(result, JSONResponse):
            return result
        return MessageResponse(message=result.message)

    @router.post("/forgot-password", response_model=MessageResponse)
    def forgot_password(payload: EmailRequest, service: AuthEngine = Depends(get_engine)):
        result = run("forgot-password", lambda: service.forgot_password(email=payload.email))
        if isinstance(result, JSONResponse):
            return result
        return MessageResponse(message=result.message)

    @router.post("/reset-password", response_model=MessageResponse, responses={400: {"model": ErrorResponse}})
    def reset_password(payload: ResetPasswordRequest, service: AuthEngine = Depends(get_engine)):
        result = run(
            "reset-password",
            lambda: service.reset_password(
                email=payload.email,
                code=payload.code,
                new_password=payload.new_password,
            ),
        )
        if isinstance(result, JSONResponse):
            return result
        return MessageResponse(message=result.message)

    @router.post("/refresh", response_model=TokenResponse, responses={401: {"model": ErrorResponse}})
    def refresh(payload: RefreshRequest, service: AuthEngine = Depends(get_engine)):
        result = run(
            "refresh",
            lambda: service.refresh(refresh_token=payload.refresh_token),
            token_context=True,
        )
        if isinstance(result, JSONResponse):
            return result
        return TokenResponse(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_at=result.expires_at,
        )

    @router.get("/me", response_model=MeResponse, responses={401: {"model": ErrorResponse}})
    def me(
        authorization: str = Header(default=""),
        service: AuthEngine = Depends(get_engine),
    ):
        token = bearer_token(authorization)
        result = run("me", lambda: service.me(access_token=token), token_context=True)
        if isinstance(result, JSONResponse):
            return result
        return MeResponse(user=result.user)

    return router
