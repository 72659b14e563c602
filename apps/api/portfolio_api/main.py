"""FastAPI application entrypoint."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_api.core.config import get_settings
from portfolio_api.core.logging_safety import configure_logging
from portfolio_api.domain.bootstrap import PrincipalBootstrap
from portfolio_api.errors import ApiError
from portfolio_api.repositories.memory import InMemoryStore
from portfolio_api.routes import auth_router, health_router, portfolio_router
from portfolio_api.schemas.error import ErrorResponse


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Family Portfolio API", version="1.0.0")
    app.state.store = InMemoryStore()
    app.state.bootstrap = PrincipalBootstrap(
        app.state.store,
        email_template=settings.single_user_email_template,
        name=settings.single_user_name,
    )

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.payload.model_dump(exclude_none=True)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        payload = ErrorResponse(error="Validation failed", details=jsonable_encoder(exc.errors()))
        return JSONResponse(status_code=400, content=payload.model_dump())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        payload = ErrorResponse(error=str(exc.detail))
        return JSONResponse(
            status_code=exc.status_code,
            content=payload.model_dump(exclude_none=True),
            headers=exc.headers,
        )

    api_prefix = "/api/v1"
    app.include_router(health_router)
    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(portfolio_router, prefix=api_prefix)

    return app


app = create_app()
