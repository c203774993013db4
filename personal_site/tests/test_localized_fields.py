import unittest

from personal_site.localized_fields import (
    EDUCATION,
    EXPERIENCE,
    PROJECTS,
    InvalidLanguage,
    Language,
    dictionary_map,
    localized_select,
    missing_create_fields,
    parse_language,
    project_dictionary,
    project_row,
)


class ParseLanguageTests(unittest.TestCase):
    def test_accepts_supported_codes_case_insensitively(self) -> None:
        self.assertEqual(parse_language("es"), Language.ES)
        self.assertEqual(parse_language(" IT "), Language.IT)

    def test_rejects_unknown_codes(self) -> None:
        for value in ("fr", "", None, "english"):
            with self.assertRaises(InvalidLanguage):
                parse_language(value)


class ProjectionTests(unittest.TestCase):
    def test_project_row_keeps_only_requested_language(self) -> None:
        row = {
            "id": 4,
            "institution_en": "University",
            "institution_es": "Universidad",
            "degree_en": "BSc",
            "degree_es": "Grado",
            "duration": "2015-2019",
        }

        self.assertEqual(
            project_row(row, Language.ES),
            {"institution": "Universidad", "degree": "Grado"},
        )

    def test_dictionary_falls_back_to_english(self) -> None:
        rows = [
            {"key": "email", "en": "me@example.com", "es": None, "it": ""},
            {"key": "greeting", "en": "Hello", "es": "Hola", "it": "Ciao"},
        ]

        self.assertEqual(
            project_dictionary(rows, Language.ES),
            [
                {"key": "email", "text": "me@example.com"},
                {"key": "greeting", "text": "Hola"},
            ],
        )
        self.assertEqual(
            dictionary_map(rows, Language.IT),
            {"email": "me@example.com", "greeting": "Ciao"},
        )

    def test_localized_select_aliases_language_columns(self) -> None:
        stmt = localized_select(EDUCATION, Language.IT)

        self.assertEqual(
            [column.name for column in stmt.selected_columns],
            ["id", "institution", "degree", "duration"],
        )
        sql = str(stmt)
        self.assertIn("education.institution_it AS institution", sql)
        self.assertIn("education.degree_it AS degree", sql)
        self.assertNotIn("_en", sql)


class CreateValidationTests(unittest.TestCase):
    def test_all_language_variants_are_required(self) -> None:
        payload = {
            "company_en": "Acme",
            "company_es": "Acme",
            "company_it": "  ",
            "role_en": "Dev",
            "role_es": "Dev",
            "role_it": "Dev",
            "duration_en": "1y",
            "duration_es": "1a",
            "duration_it": "1a",
            "description_en": "x",
            "description_es": "x",
        }

        self.assertEqual(
            missing_create_fields(EXPERIENCE, payload),
            ["company_it", "description_it"],
        )

    def test_optional_invariant_fields_are_not_required(self) -> None:
        payload = {
            "name_en": "Site",
            "name_es": "Sitio",
            "name_it": "Sito",
            "description_en": "d",
            "description_es": "d",
            "description_it": "d",
            "technologies": "Python",
        }

        self.assertEqual(missing_create_fields(PROJECTS, payload), [])


if __name__ == "__main__":
    unittest.main()
