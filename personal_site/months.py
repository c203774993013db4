from __future__ import annotations

import calendar
from datetime import date
from typing import Tuple


class InvalidMonth(ValueError):
    """Raised when a month name or year in the URL cannot be understood."""


MONTH_NAMES = {
    # es
    "enero": "01",
    "febrero": "02",
    "marzo": "03",
    "abril": "04",
    "mayo": "05",
    "junio": "06",
    "julio": "07",
    "agosto": "08",
    "septiembre": "09",
    "setiembre": "09",
    "octubre": "10",
    "noviembre": "11",
    "diciembre": "12",
    # it (marzo and agosto are shared with es)
    "gennaio": "01",
    "febbraio": "02",
    "aprile": "04",
    "maggio": "05",
    "giugno": "06",
    "luglio": "07",
    "settembre": "09",
    "ottobre": "10",
    "novembre": "11",
    "dicembre": "12",
    # en
    "january": "01",
    "february": "02",
    "march": "03",
    "april": "04",
    "may": "05",
    "june": "06",
    "july": "07",
    "august": "08",
    "september": "09",
    "october": "10",
    "november": "11",
    "december": "12",
}


def parse_month(value: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized in MONTH_NAMES:
        return MONTH_NAMES[normalized]
    if normalized.isdigit() and 1 <= int(normalized) <= 12:
        return f"{int(normalized):02d}"
    raise InvalidMonth(f"Invalid month: {value}")


def parse_year(value: str | int) -> int:
    text = str(value).strip()
    if len(text) != 4 or not text.isdigit():
        raise InvalidMonth(f"Invalid year: {value}")
    return int(text)


def month_year_key(month: str, year: str | int) -> str:
    return f"{parse_year(year):04d}-{parse_month(month)}"


def split_month_year_key(key: str) -> Tuple[int, int]:
    try:
        year_text, month_text = key.split("-")
        year, month = int(year_text), int(month_text)
    except ValueError as exc:
        raise InvalidMonth(f"Invalid month key: {key}") from exc
    if not 1 <= month <= 12:
        raise InvalidMonth(f"Invalid month key: {key}")
    return year, month


def previous_month_key(key: str) -> str:
    year, month = split_month_year_key(key)
    month -= 1
    if month == 0:
        month = 12
        year -= 1
    return f"{year:04d}-{month:02d}"


def current_month_key(today: date) -> str:
    return f"{today.year:04d}-{today.month:02d}"


def month_bounds(key: str) -> Tuple[date, date]:
    year, month = split_month_year_key(key)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
