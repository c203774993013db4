"""
CV routes: localized listing plus create / per-language update / delete for
every CV entity, and the dictionary-backed contact and profile texts.
"""

import logging
from datetime import date
from typing import Any, ClassVar, Dict, Type

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy import insert, select

from personal_site.deps import get_store, get_today, language_or_400
from personal_site.expense_lifecycle import fetch_month
from personal_site.localized_fields import (
    CV_ENTITIES,
    EDUCATION,
    EXPERIENCE,
    LANGUAGES,
    PROJECTS,
    SKILLS,
    LocalizedEntity,
    create_values,
    dictionary_map,
    localized_select,
    missing_create_fields,
)
from personal_site.months import current_month_key
from personal_site.partial_update import (
    BlankValue,
    EmptyUpdate,
    InvalidField,
    apply_update,
    build_dictionary_updates,
)
from personal_site.store import RecordStore, dictionary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cv")

CV_ENTITY_BY_NAME: Dict[str, LocalizedEntity] = {entity.name: entity for entity in CV_ENTITIES}
CONTACT_KEYS = ("email", "phone", "address")
PROFILE_KEY = "profile_description"


class CvEntryPayload(BaseModel):
    entity: ClassVar[LocalizedEntity]

    @classmethod
    def validate_payload(cls, payload: "CvEntryPayload") -> "CvEntryPayload":
        missing = missing_create_fields(cls.entity, payload.model_dump())
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}.")
        return payload


class ExperiencePayload(CvEntryPayload):
    entity: ClassVar[LocalizedEntity] = EXPERIENCE

    company_en: str | None = None
    company_es: str | None = None
    company_it: str | None = None
    role_en: str | None = None
    role_es: str | None = None
    role_it: str | None = None
    duration_en: str | None = None
    duration_es: str | None = None
    duration_it: str | None = None
    description_en: str | None = None
    description_es: str | None = None
    description_it: str | None = None


class EducationPayload(CvEntryPayload):
    entity: ClassVar[LocalizedEntity] = EDUCATION

    institution_en: str | None = None
    institution_es: str | None = None
    institution_it: str | None = None
    degree_en: str | None = None
    degree_es: str | None = None
    degree_it: str | None = None
    duration: str | None = None


class ProjectPayload(CvEntryPayload):
    entity: ClassVar[LocalizedEntity] = PROJECTS

    name_en: str | None = None
    name_es: str | None = None
    name_it: str | None = None
    description_en: str | None = None
    description_es: str | None = None
    description_it: str | None = None
    technologies: str | None = None
    link: str | None = None


class SkillPayload(CvEntryPayload):
    entity: ClassVar[LocalizedEntity] = SKILLS

    category_en: str | None = None
    category_es: str | None = None
    category_it: str | None = None
    skills: str | None = None


class LanguagePayload(CvEntryPayload):
    entity: ClassVar[LocalizedEntity] = LANGUAGES

    language_en: str | None = None
    language_es: str | None = None
    language_it: str | None = None
    level_en: str | None = None
    level_es: str | None = None
    level_it: str | None = None


CV_PAYLOADS: Dict[str, Type[CvEntryPayload]] = {
    payload.entity.name: payload
    for payload in (
        ExperiencePayload,
        EducationPayload,
        ProjectPayload,
        SkillPayload,
        LanguagePayload,
    )
}


def _entity_or_404(name: str) -> LocalizedEntity:
    entity = CV_ENTITY_BY_NAME.get(name)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Unknown CV section '{name}'.")
    return entity


@router.get("")
def read_cv(
    lang: str = Query("en"),
    store: RecordStore = Depends(get_store),
    today: date = Depends(get_today),
) -> dict:
    language = language_or_400(lang)
    payload: Dict[str, Any] = {}
    with store.begin() as conn:
        for entity in CV_ENTITIES:
            rows = conn.execute(localized_select(entity, language)).mappings().all()
            payload[entity.name] = [dict(row) for row in rows]
        dictionary_rows = conn.execute(select(dictionary)).mappings().all()
        finance = fetch_month(conn, current_month_key(today))
    payload["dictionary"] = dictionary_map(dictionary_rows, language)
    payload["finance"] = finance
    return payload


@router.put("/contact/{lang}")
def update_contact(
    lang: str,
    patch: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
) -> dict:
    language = language_or_400(lang)
    try:
        statements = build_dictionary_updates(language, patch, CONTACT_KEYS)
    except (InvalidField, EmptyUpdate) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with store.begin() as conn:
        for stmt in statements:
            conn.execute(stmt)
        rows = conn.execute(
            select(dictionary)
            .where(dictionary.c.key.in_(CONTACT_KEYS))
            .order_by(dictionary.c.key.asc())
        ).mappings().all()
    return {
        "message": f"Contact details updated in {language.value}",
        "updatedContact": [dict(row) for row in rows],
    }


@router.put("/profile/{lang}")
def update_profile(
    lang: str,
    patch: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
) -> dict:
    language = language_or_400(lang)
    try:
        statements = build_dictionary_updates(language, patch, (PROFILE_KEY,))
    except (InvalidField, EmptyUpdate) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with store.begin() as conn:
        exists = conn.execute(
            select(dictionary.c.key).where(dictionary.c.key == PROFILE_KEY)
        ).first()
        if not exists:
            raise HTTPException(status_code=404, detail="Profile description not found.")
        for stmt in statements:
            conn.execute(stmt)
        row = conn.execute(
            select(dictionary).where(dictionary.c.key == PROFILE_KEY)
        ).mappings().first()
    return {
        "message": f"Profile updated in {language.value}",
        "updatedProfile": dict(row),
    }


@router.post("/{entity_name}")
def create_entry(
    entity_name: str,
    body: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
) -> dict:
    entity = _entity_or_404(entity_name)
    payload_model = CV_PAYLOADS[entity.name]
    try:
        payload = payload_model.validate_payload(payload_model.model_validate(body))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    table = entity.table
    with store.begin() as conn:
        row = conn.execute(
            insert(table)
            .values(**create_values(entity, payload.model_dump()))
            .returning(*table.c)
        ).mappings().first()
    if not row:
        raise HTTPException(status_code=500, detail=f"Failed to create {entity.label.lower()}.")
    logger.info("Created %s %s", entity.name, row["id"])
    return {
        "message": f"{entity.label} added.",
        entity.label.lower(): dict(row),
    }


@router.put("/{entity_name}/{entry_id}/{lang}")
def update_entry(
    entity_name: str,
    entry_id: int,
    lang: str,
    patch: Dict[str, Any] = Body(...),
    store: RecordStore = Depends(get_store),
) -> dict:
    entity = _entity_or_404(entity_name)
    language = language_or_400(lang)
    try:
        with store.begin() as conn:
            row = apply_update(conn, entity, language, patch, entry_id)
    except (InvalidField, EmptyUpdate, BlankValue) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if row is None:
        raise HTTPException(
            status_code=404, detail=f"{entity.label} with ID {entry_id} not found."
        )
    return {
        "message": f"{entity.label} with ID {entry_id} updated in {language.value}",
        f"updated{entity.label}": row,
    }


@router.delete("/{entity_name}/{entry_id}")
def delete_entry(
    entity_name: str,
    entry_id: int,
    store: RecordStore = Depends(get_store),
) -> dict:
    entity = _entity_or_404(entity_name)
    table = entity.table
    with store.begin() as conn:
        result = conn.execute(table.delete().where(table.c[entity.key_column] == entry_id))
        if result.rowcount == 0:
            raise HTTPException(
                status_code=404, detail=f"{entity.label} with ID {entry_id} not found."
            )
    return {"message": f"{entity.label} with ID {entry_id} deleted."}
