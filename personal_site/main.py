"""
Application factory for the personal-site backend.

Builds the FastAPI app, wires the record store, the exchange-rate cache and
the identity provider onto ``app.state``, installs the JSON error handlers and
includes every router.
"""

import logging
from datetime import date
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from personal_site.exchange_rates import ExchangeRateApiProvider, ExchangeRateCache, RateProvider
from personal_site.identity import IdentityProvider, SupabaseIdentityProvider
from personal_site.routes_cv import router as cv_router
from personal_site.routes_finance import router as finance_router
from personal_site.routes_recurring import router as recurring_router
from personal_site.routes_site import router as site_router
from personal_site.routes_visitors import router as visitors_router
from personal_site.settings import Settings, configure_logging
from personal_site.store import RecordStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    rate_provider: Optional[RateProvider] = None,
    identity: Optional[IdentityProvider] = None,
    today: Callable[[], date] = date.today,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    store = store or RecordStore.from_url(settings.database_url)
    rate_provider = rate_provider or ExchangeRateApiProvider(
        base_url=settings.exchange_api_base_url,
        api_key=settings.exchange_api_key,
    )
    identity = identity or SupabaseIdentityProvider(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
    )

    app = FastAPI(title="Personal Site API")
    app.state.store = store
    app.state.rate_cache = ExchangeRateCache(store=store, provider=rate_provider, today=today)
    app.state.identity = identity
    app.state.today = today

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def init_db() -> None:
        store.create_all()

    @app.on_event("shutdown")
    def close_db() -> None:
        store.dispose()

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return JSONResponse(status_code=400, content={"error": "; ".join(messages)})

    @app.exception_handler(SQLAlchemyError)
    async def store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception("Store failure on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error."})

    app.include_router(site_router)
    app.include_router(visitors_router)
    app.include_router(cv_router)
    app.include_router(finance_router)
    app.include_router(recurring_router)
    return app


app = create_app()
