import unittest
from datetime import date
from decimal import Decimal

from sqlalchemy import func, insert, select

from personal_site.expense_lifecycle import (
    ExpenseDraft,
    RecurringTemplate,
    create_expense,
    fetch_month,
    materialize_recurring_expenses,
    migrate_pending_expenses,
    plan_recurring_expenses,
    update_expense,
    upsert_income,
)
from personal_site.partial_update import BlankValue, EmptyUpdate, InvalidField
from personal_site.routes_finance import ExpensePayload
from personal_site.store import RecordStore, expenses, income, recurring_expenses


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = RecordStore.from_url("sqlite://")
        self.store.create_all()

    def tearDown(self) -> None:
        self.store.dispose()

    def add_expense(self, month_year: str, name: str, status: str = "pending") -> int:
        with self.store.begin() as conn:
            return conn.execute(
                insert(expenses)
                .values(
                    month_year=month_year,
                    name=name,
                    category="Home",
                    amount=10,
                    currency="EUR",
                    status=status,
                    date_added=date(2025, 1, 1),
                )
                .returning(expenses.c.id)
            ).scalar_one()

    def expenses_in(self, month_year: str) -> list:
        with self.store.begin() as conn:
            return conn.execute(
                select(expenses.c.name)
                .where(expenses.c.month_year == month_year)
                .order_by(expenses.c.name)
            ).scalars().all()


class ExpensePayloadTests(unittest.TestCase):
    def test_defaults_status_and_parses_amount(self) -> None:
        payload = ExpensePayload.validate_payload(
            ExpensePayload(name=" Rent ", category="Home", amount="850.50", currency="eur")
        )
        draft = payload.to_draft()

        self.assertEqual(draft.status, "pending")
        self.assertEqual(draft.amount, 850.5)
        self.assertEqual(draft.name, "Rent")
        self.assertEqual(draft.currency, "EUR")

    def test_missing_or_blank_fields_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ExpensePayload.validate_payload(ExpensePayload(name="Rent", amount=10, currency="EUR"))
        with self.assertRaises(ValueError):
            ExpensePayload.validate_payload(
                ExpensePayload(name="  ", category="Home", amount=10, currency="EUR")
            )

    def test_non_numeric_amount_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ExpensePayload.validate_payload(
                ExpensePayload(name="Rent", category="Home", amount="lots", currency="EUR")
            )


class IncomeTests(StoreTestCase):
    def test_upsert_keeps_one_row_per_month_with_latest_amount(self) -> None:
        with self.store.begin() as conn:
            _, created_first = upsert_income(conn, "2025-03", 1000, "EUR")
        with self.store.begin() as conn:
            row, created_second = upsert_income(conn, "2025-03", 1200, "EUR")

        self.assertTrue(created_first)
        self.assertFalse(created_second)
        self.assertEqual(row["amount"], Decimal("1200"))
        with self.store.begin() as conn:
            count = conn.execute(
                select(func.count()).select_from(income).where(income.c.month_year == "2025-03")
            ).scalar_one()
        self.assertEqual(count, 1)

    def test_month_without_income_reports_zero_eur(self) -> None:
        with self.store.begin() as conn:
            month = fetch_month(conn, "2025-04")

        self.assertEqual(month, {"income": {"amount": 0, "currency": "EUR"}, "expenses": []})


class ExpenseUpdateTests(StoreTestCase):
    def test_partial_update_changes_only_given_fields(self) -> None:
        with self.store.begin() as conn:
            created = create_expense(
                conn,
                "2025-03",
                ExpenseDraft(name="Gym", category="Health", amount=30, currency="EUR"),
                date(2025, 3, 2),
            )
        with self.store.begin() as conn:
            row = update_expense(conn, "2025-03", created["id"], {"status": "paid", "amount": "35"})

        self.assertEqual(row["status"], "paid")
        self.assertEqual(row["amount"], Decimal("35"))
        self.assertEqual(row["name"], "Gym")
        self.assertEqual(row["date_added"], date(2025, 3, 2))

    def test_update_is_scoped_to_month(self) -> None:
        expense_id = self.add_expense("2025-03", "Gym")
        with self.store.begin() as conn:
            self.assertIsNone(update_expense(conn, "2025-04", expense_id, {"status": "paid"}))

    def test_unknown_or_empty_patch_is_rejected(self) -> None:
        expense_id = self.add_expense("2025-03", "Gym")
        with self.assertRaises(InvalidField):
            with self.store.begin() as conn:
                update_expense(conn, "2025-03", expense_id, {"month_year": "2025-09"})
        with self.assertRaises(EmptyUpdate):
            with self.store.begin() as conn:
                update_expense(conn, "2025-03", expense_id, {"status": None})

    def test_blank_text_is_rejected_and_row_kept(self) -> None:
        expense_id = self.add_expense("2025-03", "Gym")
        for field_name in ("name", "category", "currency"):
            with self.assertRaises(BlankValue):
                with self.store.begin() as conn:
                    update_expense(conn, "2025-03", expense_id, {field_name: ""})

        self.assertEqual(self.expenses_in("2025-03"), ["Gym"])


class MigratePendingTests(StoreTestCase):
    def test_moves_only_pending_expenses_from_previous_month(self) -> None:
        self.add_expense("2024-12", "Rent", status="Pending")
        self.add_expense("2024-12", "Phone", status="paid")
        self.add_expense("2024-11", "Old", status="pending")

        with self.store.begin() as conn:
            moved = migrate_pending_expenses(conn, "2025-01")

        self.assertEqual(moved, 1)
        self.assertEqual(self.expenses_in("2025-01"), ["Rent"])
        self.assertEqual(self.expenses_in("2024-12"), ["Phone"])
        self.assertEqual(self.expenses_in("2024-11"), ["Old"])

    def test_second_run_finds_nothing_left(self) -> None:
        self.add_expense("2025-02", "Rent")
        with self.store.begin() as conn:
            self.assertEqual(migrate_pending_expenses(conn, "2025-03"), 1)
        with self.store.begin() as conn:
            self.assertEqual(migrate_pending_expenses(conn, "2025-03"), 0)
        self.assertEqual(self.expenses_in("2025-03"), ["Rent"])


class PlanRecurringTests(unittest.TestCase):
    def test_skips_incomplete_inactive_and_existing_templates(self) -> None:
        templates = [
            RecurringTemplate(1, "Netflix", Decimal("12.99"), "Subscriptions", "EUR"),
            RecurringTemplate(2, "Gym", None, "Health", "EUR"),
            RecurringTemplate(3, "Rent", Decimal("800"), "Home", "EUR"),
            RecurringTemplate(4, "Spotify", Decimal("9.99"), "Subscriptions", "EUR", active=False),
            RecurringTemplate(5, "Netflix", Decimal("12.99"), "Subscriptions", "EUR"),
        ]

        planned = plan_recurring_expenses(
            templates, existing_names=["Rent"], month_year="2025-05", today=date(2025, 5, 3)
        )

        self.assertEqual(
            planned,
            [
                {
                    "month_year": "2025-05",
                    "name": "Netflix",
                    "category": "Subscriptions",
                    "amount": Decimal("12.99"),
                    "currency": "EUR",
                    "status": "pending",
                    "date_added": date(2025, 5, 3),
                }
            ],
        )


class MaterializeRecurringTests(StoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        with self.store.begin() as conn:
            conn.execute(
                insert(recurring_expenses),
                [
                    {"title": "Rent", "amount": 800, "category": "Home", "currency": "EUR", "due_day": 1, "active": True},
                    {"title": "Internet", "amount": 30, "category": "Home", "currency": "EUR", "due_day": 10, "active": True},
                    {"title": "Old gym", "amount": 25, "category": "Health", "currency": "EUR", "due_day": 5, "active": False},
                    {"title": None, "amount": 5, "category": "Misc", "currency": "EUR", "due_day": 5, "active": True},
                ],
            )

    def test_second_run_in_same_month_inserts_nothing(self) -> None:
        today = date(2025, 6, 15)

        first = materialize_recurring_expenses(self.store, today)
        rows_after_first = self._june_rows()
        second = materialize_recurring_expenses(self.store, today)

        self.assertEqual(first, 2)
        self.assertEqual(second, 0)
        self.assertEqual(self._june_rows(), rows_after_first)
        self.assertEqual(sorted(row["name"] for row in rows_after_first), ["Internet", "Rent"])
        self.assertTrue(all(row["status"] == "pending" for row in rows_after_first))
        self.assertTrue(all(row["date_added"] == today for row in rows_after_first))

    def test_next_month_materializes_again(self) -> None:
        materialize_recurring_expenses(self.store, date(2025, 6, 15))

        self.assertEqual(materialize_recurring_expenses(self.store, date(2025, 7, 1)), 2)
        self.assertEqual(self.expenses_in("2025-07"), ["Internet", "Rent"])

    def _june_rows(self) -> list:
        with self.store.begin() as conn:
            return [
                dict(row)
                for row in conn.execute(
                    select(expenses).where(expenses.c.month_year == "2025-06").order_by(expenses.c.id)
                ).mappings()
            ]


if __name__ == "__main__":
    unittest.main()
