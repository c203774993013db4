from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from http.client import HTTPException
import json
import logging
from typing import Callable, Mapping, Optional, Protocol
from urllib.parse import urlencode
from urllib.request import urlopen

from sqlalchemy import func, insert, select, update

from personal_site.store import RecordStore, exchange_rates

logger = logging.getLogger(__name__)

BASE_CURRENCY = "EUR"


class RateProviderUnavailable(RuntimeError):
    """Raised when the exchange-rate provider cannot return a rate table."""


class RateProvider(Protocol):
    def fetch_rates(self) -> Mapping[str, Decimal]:
        ...


@dataclass
class ExchangeRateApiProvider:
    base_url: str
    api_key: str = ""
    base_currency: str = BASE_CURRENCY
    timeout_seconds: float = 8

    def fetch_rates(self) -> Mapping[str, Decimal]:
        if not self.base_url:
            raise RateProviderUnavailable("Exchange rate API is not configured")
        url = f"{self.base_url.rstrip('/')}/{self.base_currency}"
        if self.api_key:
            url = f"{url}?{urlencode({'apikey': self.api_key})}"
        try:
            with urlopen(url, timeout=self.timeout_seconds) as response:
                payload = json.load(response)
        except (OSError, ValueError, HTTPException) as exc:
            # urllib errors are OSErrors; decode failures are ValueErrors.
            raise RateProviderUnavailable("Exchange rate API unavailable") from exc

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or not rates:
            raise RateProviderUnavailable("Exchange rate response missing rates")
        try:
            return {
                str(code).strip().upper(): Decimal(str(value))
                for code, value in rates.items()
            }
        except InvalidOperation as exc:
            raise RateProviderUnavailable("Exchange rate response has invalid rates") from exc


@dataclass
class ExchangeRateCache:
    store: RecordStore
    provider: RateProvider
    today: Callable[[], date] = field(default=date.today)

    def last_updated(self) -> Optional[date]:
        with self.store.begin() as conn:
            return conn.execute(select(func.max(exchange_rates.c.last_updated))).scalar()

    def ensure_fresh(self) -> bool:
        today = self.today()
        if self.last_updated() == today:
            logger.info("Exchange rates already up to date for %s", today.isoformat())
            return False

        logger.info("Fetching exchange rates from provider")
        rates = self.provider.fetch_rates()
        self.upsert_rates(rates, today)
        logger.info("Stored %d exchange rates for %s", len(rates), today.isoformat())
        return True

    def upsert_rates(self, rates: Mapping[str, Decimal], day: date) -> None:
        with self.store.begin() as conn:
            existing = set(conn.execute(select(exchange_rates.c.currency)).scalars().all())
            for currency, rate in rates.items():
                if currency in existing:
                    conn.execute(
                        update(exchange_rates)
                        .where(exchange_rates.c.currency == currency)
                        .values(rate=rate, last_updated=day)
                    )
                else:
                    conn.execute(
                        insert(exchange_rates).values(
                            currency=currency, rate=rate, last_updated=day
                        )
                    )

    def read_rates(self) -> dict[str, Decimal]:
        with self.store.begin() as conn:
            rows = conn.execute(
                select(exchange_rates.c.currency, exchange_rates.c.rate)
                .order_by(exchange_rates.c.currency.asc())
            ).all()
        return {currency: rate for currency, rate in rows}
