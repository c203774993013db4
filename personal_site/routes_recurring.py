from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import insert, select

from personal_site.deps import get_store
from personal_site.localized_fields import LocalizedEntity
from personal_site.partial_update import apply_update
from personal_site.store import RecordStore, recurring_expenses

router = APIRouter(prefix="/api/recurring-expenses")

RECURRING_EXPENSE = LocalizedEntity(
    name="recurring_expenses",
    table=recurring_expenses,
    invariant_fields=("title", "amount", "category", "currency", "due_day", "active"),
    label="Recurring expense",
)


class RecurringExpensePayload(BaseModel):
    title: str | None = None
    amount: Decimal | None = None
    category: str | None = None
    currency: str | None = None
    due_day: int | None = None
    active: bool | None = None

    @classmethod
    def validate_payload(
        cls, payload: "RecurringExpensePayload"
    ) -> "RecurringExpensePayload":
        if payload.title:
            payload.title = payload.title.strip()
        if payload.category:
            payload.category = payload.category.strip()
        if payload.currency:
            payload.currency = payload.currency.strip().upper()
        if payload.amount is not None and payload.amount <= 0:
            raise ValueError("Recurring expense amount must be greater than zero.")
        if payload.due_day is not None and not 1 <= payload.due_day <= 31:
            raise ValueError("Due day must be between 1 and 31.")
        return payload


@router.get("")
def list_recurring_expenses(store: RecordStore = Depends(get_store)) -> list[dict]:
    with store.begin() as conn:
        rows = conn.execute(
            select(recurring_expenses).order_by(recurring_expenses.c.id.asc())
        ).mappings().all()
    return [dict(row) for row in rows]


@router.post("", status_code=201)
def create_recurring_expense(
    payload: RecurringExpensePayload, store: RecordStore = Depends(get_store)
) -> dict:
    try:
        payload = RecurringExpensePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    values = payload.model_dump(exclude_none=True)
    with store.begin() as conn:
        row = conn.execute(
            insert(recurring_expenses).values(**values).returning(*recurring_expenses.c)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=500, detail="Failed to create recurring expense.")
    return {"message": "Recurring expense created.", "recurringExpense": dict(row)}


@router.put("/{recurring_id}")
def update_recurring_expense(
    recurring_id: int,
    payload: RecurringExpensePayload,
    store: RecordStore = Depends(get_store),
) -> dict:
    try:
        payload = RecurringExpensePayload.validate_payload(payload)
        with store.begin() as conn:
            row = apply_update(
                conn,
                RECURRING_EXPENSE,
                None,
                payload.model_dump(exclude_unset=True),
                recurring_id,
            )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if row is None:
        raise HTTPException(status_code=404, detail="Recurring expense not found.")
    return {
        "message": f"Recurring expense with ID {recurring_id} updated.",
        "updatedRecurringExpense": row,
    }


@router.delete("/{recurring_id}")
def delete_recurring_expense(
    recurring_id: int, store: RecordStore = Depends(get_store)
) -> dict:
    stmt = recurring_expenses.delete().where(recurring_expenses.c.id == recurring_id)
    with store.begin() as conn:
        result = conn.execute(stmt)
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Recurring expense not found.")
    return {"message": f"Recurring expense with ID {recurring_id} deleted."}
