import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

load_dotenv()


from shared.auth import SixDigitAuthCodeGenerator, utc_now
from shared.auth_runtime_config import AuthRuntimeConfig, runtime_config
from shared.logging_utils import configure_logging

from .core.delivery import CodeDelivery, LoggingCodeDelivery
from .core.service import AuthEngine
from .transport.delivery_gateway import GatewayCodeDelivery
from .transport.http import create_router, request_validation_error

log_level = configure_logging()
logger = logging.getLogger(__name__)


def build_delivery(config: AuthRuntimeConfig) -> CodeDelivery:
    gateway_url = config.delivery_gateway_url()
    if gateway_url:
        return GatewayCodeDelivery(gateway_url)
    return LoggingCodeDelivery()


def build_engine(config: AuthRuntimeConfig = runtime_config) -> AuthEngine:
    return AuthEngine(
        code_generator=SixDigitAuthCodeGenerator(),
        delivery=build_delivery(config),
        clock=utc_now,
        challenge_ttl=config.challenge_ttl(),
        resend_cooldown=config.resend_cooldown(),
        session_ttl=config.session_ttl(),
        min_password_length=config.min_password_length(),
        strict_refresh_tokens=config.strict_refresh_tokens(),
        revoke_sessions_on_reset=config.revoke_sessions_on_reset(),
    )


def create_app(engine: AuthEngine | None = None) -> FastAPI:
    engine = engine or build_engine()
    app = FastAPI()
    app.state.engine = engine
    app.include_router(create_router(engine))
    app.add_exception_handler(RequestValidationError, request_validation_error)

    @app.middleware("http")
    async def prune_expired_sessions(request: Request, call_next):
        engine.prune_expired_sessions()
        return await call_next(request)

    @app.on_event("startup")
    def log_auth_setup() -> None:
        logger.info("Auth endpoints mounted under /auth")
        logger.info(
            "challenge_ttl=%s resend_cooldown=%s session_ttl=%s",
            engine.challenge_ttl,
            engine.resend_cooldown,
            engine.session_ttl,
        )
        if isinstance(engine.delivery, LoggingCodeDelivery):
            logger.warning("No delivery gateway configured; one-time codes will be logged")
        if not engine.strict_refresh_tokens:
            logger.warning("Refresh tokens are not validated (strict_refresh_tokens=false)")

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
