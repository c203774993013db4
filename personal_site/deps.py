"""
Shared FastAPI dependencies.

Collaborators live on ``app.state`` (set by ``create_app``) and are handed to
routes through these functions, so tests can swap any of them.
"""

from datetime import date

from fastapi import HTTPException, Request

from personal_site.exchange_rates import ExchangeRateCache
from personal_site.identity import IdentityProvider
from personal_site.localized_fields import InvalidLanguage, Language, parse_language
from personal_site.store import RecordStore


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_rate_cache(request: Request) -> ExchangeRateCache:
    return request.app.state.rate_cache


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_today(request: Request) -> date:
    return request.app.state.today()


def language_or_400(value: str) -> Language:
    try:
        return parse_language(value)
    except InvalidLanguage as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
