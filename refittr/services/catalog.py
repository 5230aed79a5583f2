from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import asc, desc, func, or_

from refittr.extensions import db
from refittr.models import (
    Builder,
    Development,
    HouseSchema,
    Room,
    Street,
    house_schema_streets,
)


SCHEMA_SORT_COLUMNS = {
    'created_at': HouseSchema.created_at,
    'model_name': HouseSchema.model_name,
    'bedrooms': HouseSchema.bedrooms,
    'verified': HouseSchema.verified,
}
BEDROOM_FILTERS = ('all', '2', '3', '4', '5+')


@dataclass(frozen=True)
class SchemaFilters:
    q: str = ''
    builder_id: str = ''
    bedrooms: str = 'all'     # all, 2, 3, 4, 5+
    property_type: str = ''
    unverified: bool = False

    sort: str = 'created_at'
    direction: str = 'desc'

    @classmethod
    def from_args(cls, args) -> 'SchemaFilters':
        bedrooms = (args.get('bedrooms') or 'all').strip()
        if bedrooms not in BEDROOM_FILTERS:
            bedrooms = 'all'
        sort = args.get('sort') or 'created_at'
        if sort not in SCHEMA_SORT_COLUMNS:
            sort = 'created_at'
        direction = 'asc' if args.get('direction') == 'asc' else 'desc'
        return cls(
            q=(args.get('q') or '').strip(),
            builder_id=(args.get('builder') or '').strip(),
            bedrooms=bedrooms,
            property_type=(args.get('property_type') or '').strip(),
            unverified=args.get('unverified') in ('1', 'true', 'on'),
            sort=sort,
            direction=direction,
        )

    def as_args(self) -> dict:
        """Non-default filters, for building pagination/sort links."""
        args = {}
        if self.q:
            args['q'] = self.q
        if self.builder_id:
            args['builder'] = self.builder_id
        if self.bedrooms != 'all':
            args['bedrooms'] = self.bedrooms
        if self.property_type:
            args['property_type'] = self.property_type
        if self.unverified:
            args['unverified'] = '1'
        args['sort'] = self.sort
        args['direction'] = self.direction
        return args


def builders_with_schema_counts(search: str = ''):
    """Builders ordered by name, each paired with its schema count."""

    query = Builder.query
    if search:
        query = query.filter(Builder.name.ilike(f"%{search}%"))
    builders = query.order_by(Builder.name.asc()).all()

    counts = dict(
        db.session.query(HouseSchema.builder_id, func.count(HouseSchema.id))
        .group_by(HouseSchema.builder_id)
        .all()
    )
    return [(builder, int(counts.get(builder.id, 0) or 0)) for builder in builders]


def build_schemas_query(filters: SchemaFilters):
    """Filtered, sorted schema query. The list page paginates it; the API lists it whole."""

    query = HouseSchema.query.join(Builder, HouseSchema.builder_id == Builder.id)

    if filters.q:
        like = f"%{filters.q}%"
        query = query.filter(or_(HouseSchema.model_name.ilike(like), Builder.name.ilike(like)))

    if filters.builder_id:
        query = query.filter(HouseSchema.builder_id == filters.builder_id)

    if filters.bedrooms == '5+':
        query = query.filter(HouseSchema.bedrooms >= 5)
    elif filters.bedrooms != 'all':
        query = query.filter(HouseSchema.bedrooms == int(filters.bedrooms))

    if filters.property_type:
        query = query.filter(HouseSchema.property_type == filters.property_type)

    if filters.unverified:
        query = query.filter(HouseSchema.verified.is_(False))

    column = SCHEMA_SORT_COLUMNS[filters.sort]
    order = asc if filters.direction == 'asc' else desc
    return query.order_by(order(column), desc(HouseSchema.id))


def room_counts(schema_ids: Iterable[str]) -> dict:
    ids = list(schema_ids)
    if not ids:
        return {}
    return dict(
        db.session.query(Room.house_schema_id, func.count(Room.id))
        .filter(Room.house_schema_id.in_(ids))
        .group_by(Room.house_schema_id)
        .all()
    )


def street_counts(schema_ids: Iterable[str]) -> dict:
    ids = list(schema_ids)
    if not ids:
        return {}
    return dict(
        db.session.query(house_schema_streets.c.house_schema_id, func.count(house_schema_streets.c.street_id))
        .filter(house_schema_streets.c.house_schema_id.in_(ids))
        .group_by(house_schema_streets.c.house_schema_id)
        .all()
    )


def schemas_with_counts(schemas):
    """Pair each schema with ``(room_count, street_count)`` using two grouped queries."""

    ids = [schema.id for schema in schemas]
    rooms = room_counts(ids)
    streets = street_counts(ids)
    return [
        (schema, int(rooms.get(schema.id, 0) or 0), int(streets.get(schema.id, 0) or 0))
        for schema in schemas
    ]


def search_rooms(search: str = ''):
    """All rooms with their schema and builder, newest first."""

    query = (
        Room.query
        .join(HouseSchema, Room.house_schema_id == HouseSchema.id)
        .join(Builder, HouseSchema.builder_id == Builder.id)
    )
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Room.room_name.ilike(like),
                Room.room_type.ilike(like),
                HouseSchema.model_name.ilike(like),
                Builder.name.ilike(like),
            )
        )
    return query.order_by(Room.created_at.desc()).all()


def search_streets(search: str = '', limit: int | None = None):
    """Streets matching name, postcode or postcode area, ordered by name."""

    query = Street.query
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Street.street_name.ilike(like),
                Street.postcode.ilike(like),
                Street.postcode_area.ilike(like),
            )
        )
    query = query.order_by(Street.street_name.asc())
    if limit:
        query = query.limit(limit)
    return query.all()


def list_developments(search: str = ''):
    query = Development.query
    if search:
        query = query.filter(Development.name.ilike(f"%{search}%"))
    return query.order_by(Development.name.asc()).all()


def dashboard_stats() -> dict:
    """Headline counts for the dashboard home."""

    total_builders = db.session.query(func.count(Builder.id)).scalar() or 0
    total_schemas = db.session.query(func.count(HouseSchema.id)).scalar() or 0
    verified_schemas = (
        db.session.query(func.count(HouseSchema.id))
        .filter(HouseSchema.verified.is_(True))
        .scalar()
        or 0
    )
    total_rooms = db.session.query(func.count(Room.id)).scalar() or 0
    unverified_schemas = total_schemas - verified_schemas

    return {
        'totalBuilders': total_builders,
        'totalSchemas': total_schemas,
        'verifiedSchemas': verified_schemas,
        'totalRooms': total_rooms,
        'unverifiedSchemas': unverified_schemas,
        'verificationRate': round(verified_schemas / total_schemas * 100) if total_schemas else 0,
        'averageRoomsPerSchema': round(total_rooms / total_schemas, 1) if total_schemas else 0,
    }


def recent_activity(limit: int = 10) -> list:
    """Most recently updated schemas for the activity feed."""

    schemas = (
        HouseSchema.query
        .order_by(HouseSchema.updated_at.desc(), HouseSchema.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            'id': schema.id,
            'model_name': schema.model_name,
            'builder_name': schema.builder.name if schema.builder else 'Unknown Builder',
            'verified': bool(schema.verified),
            'updated_at': schema.updated_at.isoformat() if schema.updated_at else None,
        }
        for schema in schemas
    ]
