"""FastAPI proxy for DashScope (Qwen) book generation.

Endpoints:
- GET /
- GET /health
- POST /generate-book  { "title": "...", "description": "...", "chapters": 3 }  (Bearer JWT)
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from bookgen_proxy.common.config import Settings, load_settings
from bookgen_proxy.common.errors import (
    BookGenError,
    MissingApiKey,
    MissingFields,
    PayloadValidationError,
)
from bookgen_proxy.common.logging_setup import setup_logging
from bookgen_proxy.common.schema import BookOut, BookRequestIn, GenerationRequest, TokenClaims
from bookgen_proxy.serve import forwarder
from bookgen_proxy.serve.auth import require_auth
from bookgen_proxy.serve.deps import get_settings

LOGGER = logging.getLogger("bookgen.app")


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _handle_bookgen_error(request: Request, exc: BookGenError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    LOGGER.log(
        level,
        "%s %s rejected [%s]: %s",
        request.method,
        request.url.path,
        exc.code,
        exc.detail or exc.message,
    )
    return _error_response(exc.status_code, exc.message)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    LOGGER.warning("%s %s rejected [InvalidBody]: %s", request.method, request.url.path, exc.errors())
    return _error_response(400, PayloadValidationError.message)


async def read_book_request(request: Request) -> GenerationRequest:
    """Parse and validate the body; the first violation wins."""
    raw = await request.body()
    try:
        body = BookRequestIn.model_validate_json(raw)
    except ValidationError as e:
        raise PayloadValidationError(str(e)) from e

    has_title = bool(body.title.strip())
    has_description = bool(body.description.strip())
    if not has_title or not has_description or body.chapters <= 0:
        raise MissingFields(
            f"title={has_title} description={has_description} chapters={body.chapters}"
        )
    return GenerationRequest(title=body.title, description=body.description, chapters=body.chapters)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Build the app.

    Args:
        settings: Configuration; read from the environment when omitted.
        transport: Optional httpx transport for the upstream call.
    """
    settings = settings or load_settings()

    app = FastAPI(title="Book Generation Proxy")
    app.state.settings = settings
    app.state.upstream_transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    )
    app.add_exception_handler(BookGenError, _handle_bookgen_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "Hello There!"

    @app.get("/health")
    def health() -> dict[str, str]:
        now = datetime.now(timezone.utc).replace(microsecond=0)
        return {"status": "healthy", "timestamp": now.isoformat()}

    @app.post("/generate-book", response_model=BookOut)
    async def generate_book(
        request: Request,
        claims: TokenClaims = Depends(require_auth),
        settings: Settings = Depends(get_settings),
    ) -> BookOut:
        req = await read_book_request(request)
        if not settings.api_key:
            raise MissingApiKey("QWEN_API_KEY environment variable not set")

        LOGGER.info(
            "Generating book for user %s: title=%r chapters=%d",
            claims.id,
            req.title,
            req.chapters,
        )
        book = await forwarder.generate_book(
            req,
            settings.api_key,
            transport=request.app.state.upstream_transport,
        )
        return BookOut(book=book)

    return app


def build_app() -> FastAPI:
    """App for `uvicorn bookgen_proxy.serve.fastapi_app:app`, configured from the environment."""
    setup_logging()
    settings = load_settings()
    setup_logging(settings.log_level)
    return create_app(settings)


app = build_app()
