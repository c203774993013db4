from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import Select, Table, select

from personal_site.store import education, experience, languages, projects, skills


class InvalidLanguage(ValueError):
    """Raised when a language code is not one of the supported tags."""


class Language(str, Enum):
    EN = "en"
    ES = "es"
    IT = "it"


FALLBACK_LANGUAGE = Language.EN


def parse_language(value: str | Language | None) -> Language:
    if isinstance(value, Language):
        return value
    normalized = (value or "").strip().lower()
    try:
        return Language(normalized)
    except ValueError as exc:
        raise InvalidLanguage("Invalid language. Use 'en', 'es' or 'it'.") from exc


@dataclass(frozen=True)
class LocalizedEntity:
    name: str
    table: Table
    localized_fields: Tuple[str, ...] = ()
    invariant_fields: Tuple[str, ...] = ()
    required_invariant_fields: Tuple[str, ...] = ()
    key_column: str = "id"
    label: str = ""

    def localized_column(self, field_name: str, lang: Language) -> str:
        if field_name not in self.localized_fields:
            raise KeyError(field_name)
        return f"{field_name}_{lang.value}"


EXPERIENCE = LocalizedEntity(
    name="experience",
    table=experience,
    localized_fields=("company", "role", "duration", "description"),
    label="Experience",
)
EDUCATION = LocalizedEntity(
    name="education",
    table=education,
    localized_fields=("institution", "degree"),
    invariant_fields=("duration",),
    required_invariant_fields=("duration",),
    label="Education",
)
PROJECTS = LocalizedEntity(
    name="projects",
    table=projects,
    localized_fields=("name", "description"),
    invariant_fields=("technologies", "link"),
    required_invariant_fields=("technologies",),
    label="Project",
)
SKILLS = LocalizedEntity(
    name="skills",
    table=skills,
    localized_fields=("category",),
    invariant_fields=("skills",),
    required_invariant_fields=("skills",),
    label="Skill",
)
LANGUAGES = LocalizedEntity(
    name="languages",
    table=languages,
    localized_fields=("language", "level"),
    label="Language",
)

CV_ENTITIES: Tuple[LocalizedEntity, ...] = (EXPERIENCE, EDUCATION, PROJECTS, SKILLS, LANGUAGES)


def localized_select(entity: LocalizedEntity, lang: Language) -> Select:
    table = entity.table
    columns = [table.c[entity.key_column]]
    for field_name in entity.localized_fields:
        columns.append(table.c[entity.localized_column(field_name, lang)].label(field_name))
    for field_name in entity.invariant_fields:
        columns.append(table.c[field_name])
    return select(*columns).order_by(table.c[entity.key_column].asc())


def project_row(row: Mapping[str, Any], lang: Language) -> dict:
    """Keep only the ``<field>_<lang>`` keys of a row, with the suffix stripped.

    Listing queries alias columns in SQL through ``localized_select``; this is
    for rows already fetched with every language, such as an ``UPDATE ...
    RETURNING`` result. Invariant keys are dropped.
    """
    suffix = f"_{lang.value}"
    return {
        key[: -len(suffix)]: value
        for key, value in row.items()
        if key.endswith(suffix)
    }


def dictionary_text(row: Mapping[str, Any], lang: Language) -> Optional[str]:
    return row.get(lang.value) or row.get(FALLBACK_LANGUAGE.value)


def project_dictionary(rows: Iterable[Mapping[str, Any]], lang: Language) -> List[dict]:
    return [{"key": row["key"], "text": dictionary_text(row, lang)} for row in rows]


def dictionary_map(rows: Iterable[Mapping[str, Any]], lang: Language) -> dict:
    return {item["key"]: item["text"] for item in project_dictionary(rows, lang)}


def required_create_fields(entity: LocalizedEntity) -> List[str]:
    fields = [
        f"{field_name}_{lang.value}"
        for field_name in entity.localized_fields
        for lang in Language
    ]
    fields.extend(entity.required_invariant_fields)
    return fields


def missing_create_fields(entity: LocalizedEntity, payload: Mapping[str, Any]) -> List[str]:
    missing = []
    for field_name in required_create_fields(entity):
        value = payload.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field_name)
    return missing


def create_values(entity: LocalizedEntity, payload: Mapping[str, Any]) -> dict:
    values = {}
    for field_name in entity.localized_fields:
        for lang in Language:
            column_name = f"{field_name}_{lang.value}"
            values[column_name] = payload[column_name]
    for field_name in entity.invariant_fields:
        values[field_name] = payload.get(field_name) or None
    return values
