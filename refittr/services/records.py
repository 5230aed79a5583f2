"""Shared write helpers used by both the dashboard pages and the JSON API.

Each ``apply_*`` function copies validated form data onto a model instance;
callers own the session (add/commit/rollback) so pages and API keep their own
error handling.
"""

from __future__ import annotations

from typing import Iterable, Optional

from refittr.extensions import db
from refittr.models import Builder, Development, HouseSchema, Room, Street
from refittr.utils.uploads import remove_from_bucket


LOGO_BUCKET = 'builder-logos'
SCHEMA_DOCUMENTS = (
    ('floor_plan_url', 'floor-plans'),
    ('exterior_photo_url', 'exterior-photos'),
    ('spec_sheet_url', 'spec-sheets'),
)


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def apply_builder_form(builder: Builder, form) -> Builder:
    builder.name = (form.name.data or '').strip()
    builder.notes = _clean(form.notes.data)
    return builder


def apply_schema_basics(schema: HouseSchema, data: dict) -> HouseSchema:
    """Copy the step-1 fields (from ``form.data`` or wizard state)."""

    schema.builder_id = data.get('builder_id')
    schema.model_name = (data.get('model_name') or '').strip()
    schema.bedrooms = data.get('bedrooms')
    schema.property_type = data.get('property_type')
    schema.year_from = data.get('year_from')
    schema.year_to = data.get('year_to')
    schema.notes = _clean(data.get('notes'))
    return schema


def basics_from_form(form) -> dict:
    return {
        'builder_id': form.builder_id.data,
        'model_name': (form.model_name.data or '').strip(),
        'bedrooms': form.bedrooms.data,
        'property_type': form.property_type.data,
        'year_from': form.year_from.data,
        'year_to': form.year_to.data,
        'notes': _clean(form.notes.data),
    }


def build_schema(basics: dict, documents: dict, street_ids: Iterable[str]) -> HouseSchema:
    """New schema with its street links attached; the caller commits once."""

    schema = apply_schema_basics(HouseSchema(verified=False), basics)
    for attr, _bucket in SCHEMA_DOCUMENTS:
        setattr(schema, attr, _clean(documents.get(attr)))

    ids = list(dict.fromkeys(street_ids or []))
    if ids:
        schema.streets = Street.query.filter(Street.id.in_(ids)).all()

    db.session.add(schema)
    return schema


def apply_room_form(room: Room, form) -> Room:
    room.house_schema_id = form.house_schema_id.data
    room.room_name = (form.room_name.data or '').strip()
    room.room_type = form.room_type.data or 'bedroom'
    room.floor_level = form.floor_level.data if form.floor_level.data is not None else 0
    room.length_cm = form.length_cm.data
    room.width_cm = form.width_cm.data
    room.height_cm = form.height_cm.data or Room.DEFAULT_HEIGHT_CM
    room.dimensions_need_verification = bool(form.dimensions_need_verification.data)
    # The reason only means something while the flag is set.
    room.verification_reason = (
        _clean(form.verification_reason.data) if room.dimensions_need_verification else None
    )
    room.notes = _clean(form.notes.data)
    room.recalculate_floor_area()
    return room


def apply_street_form(street: Street, form) -> Street:
    postcode = (form.postcode.data or '').strip().upper()
    street.street_name = (form.street_name.data or '').strip()
    street.postcode = postcode
    street.postcode_area = Street.derive_postcode_area(postcode)
    street.development_id = form.development_id.data or None
    return street


def apply_development_form(development: Development, form) -> Development:
    development.name = (form.name.data or '').strip()
    postcode_area = _clean(form.postcode_area.data)
    development.postcode_area = postcode_area.upper() if postcode_area else None
    development.development_type = form.development_type.data or None
    development.builder_id = form.builder_id.data or None
    development.year_built = form.year_built.data
    development.notes = _clean(form.notes.data)
    return development


def schema_files(schema: HouseSchema) -> list:
    """``(url, bucket)`` pairs for the documents a schema points at."""
    return [(getattr(schema, attr), bucket) for attr, bucket in SCHEMA_DOCUMENTS if getattr(schema, attr)]


def builder_files(builder: Builder) -> list:
    """The builder's logo plus every document of its schemas.

    Collected before the delete; the schemas go with the builder in the
    database and are unreachable afterwards.
    """
    files = [(builder.logo_url, LOGO_BUCKET)] if builder.logo_url else []
    for schema in builder.house_schemas:
        files.extend(schema_files(schema))
    return files


def remove_files(files: Iterable) -> None:
    """Best-effort removal; call only after the owning delete has committed."""
    for url, bucket in files:
        remove_from_bucket(url, bucket)
