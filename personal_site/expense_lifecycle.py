from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Set, Tuple

from sqlalchemy import func, insert, select, update
from sqlalchemy.engine import Connection

from personal_site.localized_fields import LocalizedEntity
from personal_site.months import current_month_key, previous_month_key
from personal_site.partial_update import BlankValue, apply_update
from personal_site.store import RecordStore, expenses, income, recurring_expenses

logger = logging.getLogger(__name__)

PENDING = "pending"
DEFAULT_CURRENCY = "EUR"

EXPENSE = LocalizedEntity(
    name="expenses",
    table=expenses,
    invariant_fields=("name", "category", "amount", "currency", "status"),
    label="Expense",
)


@dataclass(frozen=True)
class ExpenseDraft:
    name: str
    category: str
    amount: float
    currency: str
    status: str = PENDING


@dataclass(frozen=True)
class RecurringTemplate:
    id: int
    title: Optional[str]
    amount: Optional[Decimal]
    category: Optional[str]
    currency: Optional[str]
    due_day: Optional[int] = None
    active: bool = True

    def is_complete(self) -> bool:
        return bool(self.title and self.amount and self.category and self.currency)


def parse_amount(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("Amount must be a number.")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("Amount must be a number.") from exc


def fetch_month(conn: Connection, month_year: str) -> dict:
    income_row = conn.execute(
        select(income).where(income.c.month_year == month_year)
    ).mappings().first()
    expense_rows = conn.execute(
        select(expenses)
        .where(expenses.c.month_year == month_year)
        .order_by(expenses.c.id.asc())
    ).mappings().all()
    return {
        "income": dict(income_row) if income_row else {"amount": 0, "currency": DEFAULT_CURRENCY},
        "expenses": [
            {
                "id": row["id"],
                "name": row["name"],
                "category": row["category"],
                "amount": row["amount"],
                "currency": row["currency"] or DEFAULT_CURRENCY,
                "status": row["status"],
                "date_added": row["date_added"],
            }
            for row in expense_rows
        ],
    }


def upsert_income(
    conn: Connection, month_year: str, amount: float, currency: str
) -> Tuple[dict, bool]:
    existing = conn.execute(
        select(income.c.id).where(income.c.month_year == month_year)
    ).first()
    if existing:
        stmt = (
            update(income)
            .where(income.c.month_year == month_year)
            .values(amount=amount, currency=currency)
            .returning(*income.c)
        )
        created = False
    else:
        stmt = (
            insert(income)
            .values(month_year=month_year, amount=amount, currency=currency)
            .returning(*income.c)
        )
        created = True
    row = conn.execute(stmt).mappings().first()
    logger.info("Income %s for %s", "created" if created else "updated", month_year)
    return dict(row), created


def delete_income(conn: Connection, month_year: str) -> bool:
    result = conn.execute(income.delete().where(income.c.month_year == month_year))
    return result.rowcount > 0


def create_expense(
    conn: Connection, month_year: str, draft: ExpenseDraft, today: date
) -> dict:
    row = conn.execute(
        insert(expenses)
        .values(
            month_year=month_year,
            name=draft.name,
            category=draft.category,
            amount=draft.amount,
            currency=draft.currency,
            status=draft.status,
            date_added=today,
        )
        .returning(*expenses.c)
    ).mappings().first()
    logger.info("Expense %s added to %s", row["id"], month_year)
    return dict(row)


def update_expense(
    conn: Connection, month_year: str, expense_id: int, patch: Mapping[str, Any]
) -> Optional[dict]:
    values = {key: value for key, value in patch.items() if value is not None}
    if "amount" in values:
        values["amount"] = parse_amount(values["amount"])
    for key, value in values.items():
        if isinstance(value, str) and not value.strip():
            raise BlankValue(key)
    if not _expense_exists(conn, month_year, expense_id):
        return None
    return apply_update(conn, EXPENSE, None, values, expense_id)


def delete_expense(conn: Connection, month_year: str, expense_id: int) -> bool:
    result = conn.execute(
        expenses.delete().where(
            expenses.c.id == expense_id, expenses.c.month_year == month_year
        )
    )
    return result.rowcount > 0


def _expense_exists(conn: Connection, month_year: str, expense_id: int) -> bool:
    match = conn.execute(
        select(expenses.c.id).where(
            expenses.c.id == expense_id, expenses.c.month_year == month_year
        )
    ).first()
    return bool(match)


def migrate_pending_expenses(conn: Connection, month_year: str) -> int:
    source_key = previous_month_key(month_year)
    pending_filter = (
        expenses.c.month_year == source_key,
        func.lower(expenses.c.status) == PENDING,
    )
    pending_ids = conn.execute(
        select(expenses.c.id).where(*pending_filter)
    ).scalars().all()
    if not pending_ids:
        logger.info("No pending expenses to carry over from %s", source_key)
        return 0
    conn.execute(
        update(expenses)
        .where(expenses.c.id.in_(pending_ids))
        .values(month_year=month_year)
    )
    logger.info(
        "Moved %d pending expenses from %s to %s", len(pending_ids), source_key, month_year
    )
    return len(pending_ids)


def plan_recurring_expenses(
    templates: Iterable[RecurringTemplate],
    existing_names: Iterable[str],
    month_year: str,
    today: date,
) -> List[dict]:
    seen: Set[str] = set(existing_names)
    planned: List[dict] = []
    for template in templates:
        if not template.active:
            continue
        if not template.is_complete():
            logger.warning("Recurring expense %s is incomplete, skipping", template.id)
            continue
        if template.title in seen:
            logger.info("Recurring expense '%s' already in %s", template.title, month_year)
            continue
        seen.add(template.title)
        planned.append(
            {
                "month_year": month_year,
                "name": template.title,
                "category": template.category,
                "amount": template.amount,
                "currency": template.currency,
                "status": PENDING,
                "date_added": today,
            }
        )
    return planned


def fetch_active_templates(conn: Connection) -> List[RecurringTemplate]:
    rows = conn.execute(
        select(recurring_expenses)
        .where(recurring_expenses.c.active.is_(True))
        .order_by(recurring_expenses.c.id.asc())
    ).mappings().all()
    return [
        RecurringTemplate(
            id=row["id"],
            title=row["title"],
            amount=row["amount"],
            category=row["category"],
            currency=row["currency"],
            due_day=row["due_day"],
            active=row["active"],
        )
        for row in rows
    ]


def materialize_recurring_expenses(store: RecordStore, today: date) -> int:
    month_year = current_month_key(today)
    logger.info("Materializing recurring expenses for %s", month_year)
    with store.begin() as conn:
        templates = fetch_active_templates(conn)
        existing_names = conn.execute(
            select(expenses.c.name).where(expenses.c.month_year == month_year)
        ).scalars().all()

    inserted = 0
    for values in plan_recurring_expenses(templates, existing_names, month_year, today):
        # One transaction per template: earlier inserts survive a later failure.
        with store.begin() as conn:
            already_there = conn.execute(
                select(expenses.c.id).where(
                    expenses.c.name == values["name"],
                    expenses.c.month_year == month_year,
                )
            ).first()
            if already_there:
                continue
            conn.execute(insert(expenses).values(**values))
        inserted += 1
        logger.info("Inserted recurring expense '%s'", values["name"])
    return inserted
