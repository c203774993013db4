"""
Finance routes: monthly income, one-off expenses and the two monthly
migration jobs.
"""

from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from personal_site.deps import get_store, get_today
from personal_site.expense_lifecycle import (
    DEFAULT_CURRENCY,
    PENDING,
    ExpenseDraft,
    create_expense,
    delete_expense,
    delete_income,
    fetch_month,
    materialize_recurring_expenses,
    migrate_pending_expenses,
    parse_amount,
    update_expense,
    upsert_income,
)
from personal_site.months import InvalidMonth, month_year_key, previous_month_key
from personal_site.store import RecordStore

router = APIRouter(prefix="/finance")


class IncomePayload(BaseModel):
    amount: Any = None
    currency: str | None = None

    @classmethod
    def validate_payload(cls, payload: "IncomePayload") -> "IncomePayload":
        if payload.amount in (None, ""):
            raise ValueError("Income amount required.")
        payload.amount = parse_amount(payload.amount)
        payload.currency = (payload.currency or DEFAULT_CURRENCY).strip().upper()
        return payload


class ExpensePayload(BaseModel):
    name: str | None = None
    category: str | None = None
    amount: Any = None
    currency: str | None = None
    status: str | None = None

    @classmethod
    def validate_payload(cls, payload: "ExpensePayload") -> "ExpensePayload":
        payload.name = (payload.name or "").strip()
        payload.category = (payload.category or "").strip()
        payload.currency = (payload.currency or "").strip().upper()
        if (
            not payload.name
            or not payload.category
            or not payload.currency
            or payload.amount in (None, "")
        ):
            raise ValueError("Missing required fields: name, category, amount and currency.")
        payload.amount = parse_amount(payload.amount)
        payload.status = (payload.status or "").strip() or PENDING
        return payload

    def to_draft(self) -> ExpenseDraft:
        return ExpenseDraft(
            name=self.name,
            category=self.category,
            amount=self.amount,
            currency=self.currency,
            status=self.status,
        )


def month_key_or_400(month: str, year: str) -> str:
    try:
        return month_year_key(month, year)
    except InvalidMonth as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/migrate-recurring-expenses")
def migrate_recurring_expenses(
    store: RecordStore = Depends(get_store),
    today: date = Depends(get_today),
) -> dict:
    inserted = materialize_recurring_expenses(store, today)
    return {"message": "Recurring expenses migrated.", "inserted": inserted}


@router.get("/{month}/{year}")
def read_month(month: str, year: str, store: RecordStore = Depends(get_store)) -> dict:
    key = month_key_or_400(month, year)
    with store.begin() as conn:
        return fetch_month(conn, key)


@router.put("/{month}/{year}/income")
def put_income(
    month: str,
    year: str,
    payload: IncomePayload,
    store: RecordStore = Depends(get_store),
) -> dict:
    key = month_key_or_400(month, year)
    try:
        payload = IncomePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    with store.begin() as conn:
        row, created = upsert_income(conn, key, payload.amount, payload.currency)
    action = "created" if created else "updated"
    return {"message": f"Monthly income {action} for {key}", "income": row}


@router.delete("/{month}/{year}/income")
def remove_income(month: str, year: str, store: RecordStore = Depends(get_store)) -> dict:
    key = month_key_or_400(month, year)
    with store.begin() as conn:
        if not delete_income(conn, key):
            raise HTTPException(status_code=404, detail=f"No income recorded for {key}.")
    return {"message": f"Monthly income for {key} deleted."}


@router.post("/{month}/{year}/expenses")
def add_expense(
    month: str,
    year: str,
    payload: ExpensePayload,
    store: RecordStore = Depends(get_store),
    today: date = Depends(get_today),
) -> dict:
    key = month_key_or_400(month, year)
    try:
        payload = ExpensePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    with store.begin() as conn:
        row = create_expense(conn, key, payload.to_draft(), today)
    return {"message": f"Expense added to {key}", "newExpense": row}


def _update_expense(
    month: str, year: str, expense_id: int, patch: Dict[str, Any], store: RecordStore
) -> dict:
    key = month_key_or_400(month, year)
    try:
        with store.begin() as conn:
            row = update_expense(conn, key, expense_id, patch)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if row is None:
        raise HTTPException(
            status_code=404, detail=f"Expense with ID {expense_id} not found for {key}."
        )
    return {"message": f"Expense with ID {expense_id} updated", "updatedExpense": row}


@router.put("/{month}/{year}/expenses/{expense_id}")
def put_expense(
    month: str,
    year: str,
    expense_id: int,
    patch: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
) -> dict:
    return _update_expense(month, year, expense_id, patch, store)


@router.put("/expenses/{month}/{year}/{expense_id}")
def put_expense_status(
    month: str,
    year: str,
    expense_id: int,
    patch: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
) -> dict:
    return _update_expense(month, year, expense_id, patch, store)


@router.delete("/{month}/{year}/expenses/{expense_id}")
def remove_expense(
    month: str,
    year: str,
    expense_id: int,
    store: RecordStore = Depends(get_store),
) -> dict:
    key = month_key_or_400(month, year)
    with store.begin() as conn:
        if not delete_expense(conn, key, expense_id):
            raise HTTPException(
                status_code=404, detail=f"Expense with ID {expense_id} not found for {key}."
            )
    return {"message": f"Expense with ID {expense_id} deleted."}


@router.post("/{month}/{year}/migrate-expenses")
def migrate_expenses(month: str, year: str, store: RecordStore = Depends(get_store)) -> dict:
    key = month_key_or_400(month, year)
    source_key = previous_month_key(key)
    with store.begin() as conn:
        migrated = migrate_pending_expenses(conn, key)
    if migrated == 0:
        return {"message": "No pending expenses to carry over.", "migrated": 0}
    return {
        "message": f"Pending expenses moved from {source_key} to {key}.",
        "migrated": migrated,
    }
