import unittest
from datetime import date

from personal_site.months import (
    InvalidMonth,
    current_month_key,
    month_bounds,
    month_year_key,
    parse_month,
    previous_month_key,
)


class MonthParsingTests(unittest.TestCase):
    def test_names_in_every_language_map_to_the_same_number(self) -> None:
        self.assertEqual(parse_month("marzo"), "03")
        self.assertEqual(parse_month("March"), "03")
        self.assertEqual(parse_month("DICIEMBRE"), "12")
        self.assertEqual(parse_month("dicembre"), "12")
        self.assertEqual(parse_month("agosto"), "08")
        self.assertEqual(parse_month("gennaio"), "01")

    def test_numeric_months_are_padded(self) -> None:
        self.assertEqual(parse_month("3"), "03")
        self.assertEqual(parse_month("11"), "11")

    def test_unknown_month_is_rejected(self) -> None:
        for value in ("smarch", "13", "0", ""):
            with self.assertRaises(InvalidMonth):
                parse_month(value)

    def test_month_year_key_validates_year(self) -> None:
        self.assertEqual(month_year_key("febrero", "2025"), "2025-02")
        with self.assertRaises(InvalidMonth):
            month_year_key("febrero", "25")


class MonthArithmeticTests(unittest.TestCase):
    def test_previous_month_rolls_back_the_year_in_january(self) -> None:
        self.assertEqual(previous_month_key("2025-01"), "2024-12")
        self.assertEqual(previous_month_key("2025-07"), "2025-06")

    def test_current_month_key(self) -> None:
        self.assertEqual(current_month_key(date(2024, 9, 30)), "2024-09")

    def test_month_bounds_handles_leap_years(self) -> None:
        self.assertEqual(month_bounds("2024-02"), (date(2024, 2, 1), date(2024, 2, 29)))


if __name__ == "__main__":
    unittest.main()
