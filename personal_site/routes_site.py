"""
Site-level routes: health checks, login/logout and exchange rates.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from personal_site.deps import get_identity, get_rate_cache, get_store
from personal_site.exchange_rates import ExchangeRateCache, RateProviderUnavailable
from personal_site.identity import AuthenticationFailed, IdentityProvider
from personal_site.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter()


class CredentialsPayload(BaseModel):
    email: str
    password: str


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/test-db")
def test_db(store: RecordStore = Depends(get_store)):
    try:
        with store.begin() as conn:
            now = conn.execute(select(func.current_timestamp())).scalar()
    except SQLAlchemyError as exc:
        return JSONResponse(
            status_code=500,
            content={"error": "Database connection failed.", "details": str(exc)},
        )
    return {"message": "Database connection OK", "time": now}


@router.post("/auth/login")
def login(
    payload: CredentialsPayload, identity: IdentityProvider = Depends(get_identity)
) -> dict:
    email = payload.email.strip().lower()
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password required.")
    try:
        session = identity.sign_in(email, payload.password)
    except AuthenticationFailed as exc:
        raise HTTPException(status_code=401, detail="Invalid credentials.") from exc
    return {"message": "Login successful", "session": session}


@router.post("/auth/logout")
def logout(
    authorization: str | None = Header(None),
    identity: IdentityProvider = Depends(get_identity),
) -> dict:
    access_token = None
    if authorization and authorization.lower().startswith("bearer "):
        access_token = authorization[len("bearer "):].strip()
    identity.sign_out(access_token)
    return {"message": "Logout successful"}


@router.get("/exchange-rates")
def read_exchange_rates(cache: ExchangeRateCache = Depends(get_rate_cache)) -> dict:
    try:
        cache.ensure_fresh()
    except RateProviderUnavailable as exc:
        logger.warning("Serving stored exchange rates, refresh failed: %s", exc)
    rates = cache.read_rates()
    if not rates:
        raise HTTPException(status_code=404, detail="No exchange rates available.")
    return {"rates": rates}


@router.post("/exchange-rates")
def refresh_exchange_rates(cache: ExchangeRateCache = Depends(get_rate_cache)) -> dict:
    try:
        fetched = cache.ensure_fresh()
    except RateProviderUnavailable as exc:
        raise HTTPException(status_code=500, detail="Failed to update exchange rates.") from exc
    if fetched:
        return {"message": "Exchange rates updated."}
    return {"message": "Exchange rates already up to date."}
