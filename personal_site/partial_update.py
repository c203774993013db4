from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import Update, select, update
from sqlalchemy.engine import Connection

from personal_site.localized_fields import Language, LocalizedEntity
from personal_site.store import dictionary


class InvalidField(ValueError):
    def __init__(self, field_name: str) -> None:
        super().__init__(f"Field '{field_name}' cannot be updated.")
        self.field_name = field_name


class EmptyUpdate(ValueError):
    def __init__(self) -> None:
        super().__init__("No valid fields provided to update.")


class BlankValue(ValueError):
    def __init__(self, field_name: str) -> None:
        super().__init__(f"Field '{field_name}' cannot be empty.")
        self.field_name = field_name


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_update_columns(
    entity: LocalizedEntity,
    lang: Optional[Language],
    patch: Mapping[str, Any],
) -> dict:
    if not patch:
        raise EmptyUpdate()
    values = {}
    for key, value in patch.items():
        if key in entity.invariant_fields:
            column_name = key
        elif key in entity.localized_fields and lang is not None:
            column_name = entity.localized_column(key, lang)
        else:
            raise InvalidField(key)
        # NOT NULL columns never take null or whitespace-only text.
        if not entity.table.c[column_name].nullable and _is_blank(value):
            raise BlankValue(key)
        values[column_name] = value
    if not values:
        raise EmptyUpdate()
    return values


def build_update(
    entity: LocalizedEntity,
    lang: Optional[Language],
    patch: Mapping[str, Any],
    key_value: Any,
) -> Update:
    table = entity.table
    values = resolve_update_columns(entity, lang, patch)
    return (
        update(table)
        .where(table.c[entity.key_column] == key_value)
        .values({table.c[column_name]: value for column_name, value in values.items()})
        .returning(*table.c)
    )


def fetch_row(conn: Connection, entity: LocalizedEntity, key_value: Any) -> Optional[dict]:
    table = entity.table
    row = conn.execute(
        select(table).where(table.c[entity.key_column] == key_value)
    ).mappings().first()
    return dict(row) if row else None


def apply_update(
    conn: Connection,
    entity: LocalizedEntity,
    lang: Optional[Language],
    patch: Mapping[str, Any],
    key_value: Any,
) -> Optional[dict]:
    if fetch_row(conn, entity, key_value) is None:
        return None
    stmt = build_update(entity, lang, patch, key_value)
    row = conn.execute(stmt).mappings().first()
    return dict(row) if row else None


def build_dictionary_updates(
    lang: Language,
    patch: Mapping[str, Any],
    allowed_keys: Iterable[str],
) -> List[Update]:
    allowed = set(allowed_keys)
    if not patch:
        raise EmptyUpdate()
    statements = []
    for key, value in patch.items():
        if key not in allowed:
            raise InvalidField(key)
        if value is None:
            continue
        statements.append(
            update(dictionary)
            .where(dictionary.c.key == key)
            .values({dictionary.c[lang.value]: value})
        )
    if not statements:
        raise EmptyUpdate()
    return statements
