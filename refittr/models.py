"""
Database Models for the Refittr dashboard

Builders own house schemas, schemas own rooms and are linked to streets,
streets optionally belong to developments. Identifiers are UUID strings so
records can be referenced from the hosted database and storage paths alike.
"""

from datetime import datetime
from uuid import uuid4

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from refittr.extensions import db, login_manager


def _uuid() -> str:
    return str(uuid4())


def _iso(value):
    return value.isoformat() if value else None


house_schema_streets = db.Table(
    'house_schema_streets',
    db.Column('house_schema_id', db.String(36), db.ForeignKey('house_schemas.id', ondelete='CASCADE'), primary_key=True),
    db.Column('street_id', db.String(36), db.ForeignKey('streets.id', ondelete='CASCADE'), primary_key=True),
    db.Index('ix_house_schema_streets_street_id', 'street_id'),
)


@login_manager.user_loader
def load_user(user_id):
    """Load user by ID for Flask-Login"""
    if not user_id:
        return None
    try:
        return db.session.get(User, str(user_id))
    except Exception:
        db.session.rollback()
        return None


class User(UserMixin, db.Model):
    """Dashboard operator signing in with email and password"""

    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify a password against the stored hash. Never compares plaintext."""
        if not self.password_hash or not password:
            return False
        try:
            return check_password_hash(self.password_hash, password)
        except Exception:
            return False

    def __repr__(self):
        return f'<User {self.email}>'


class Builder(db.Model):
    """House-construction company defining one or more house schemas"""

    __tablename__ = 'builders'

    NAME_MAX_LENGTH = 100
    NOTES_MAX_LENGTH = 500

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(NAME_MAX_LENGTH), nullable=False, index=True)
    logo_url = db.Column(db.String(600))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    house_schemas = db.relationship(
        'HouseSchema',
        back_populates='builder',
        lazy='dynamic',
        passive_deletes=True,
    )

    def to_dict(self, schema_count=None):
        payload = {
            'id': self.id,
            'name': self.name,
            'logo_url': self.logo_url,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if schema_count is not None:
            payload['schema_count'] = int(schema_count)
        return payload

    def __repr__(self):
        return f'<Builder {self.name}>'


class HouseSchema(db.Model):
    """A builder's named house model with its documents, rooms and streets"""

    __tablename__ = 'house_schemas'

    PROPERTY_TYPES = ('Detached', 'Semi-detached', 'Terraced', 'Flat')
    MIN_BEDROOMS = 1
    MAX_BEDROOMS = 10
    MIN_YEAR = 1900
    MAX_YEAR = 2030

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    builder_id = db.Column(
        db.String(36),
        db.ForeignKey('builders.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    model_name = db.Column(db.String(100), nullable=False)
    bedrooms = db.Column(db.Integer, nullable=False)
    property_type = db.Column(db.String(20), nullable=False)
    year_from = db.Column(db.Integer)
    year_to = db.Column(db.Integer)
    floor_plan_url = db.Column(db.String(600))
    exterior_photo_url = db.Column(db.String(600))
    spec_sheet_url = db.Column(db.String(600))
    verified = db.Column(db.Boolean, nullable=False, default=False, index=True)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, index=True)

    builder = db.relationship('Builder', back_populates='house_schemas')
    rooms = db.relationship(
        'Room',
        back_populates='house_schema',
        lazy='dynamic',
        passive_deletes=True,
    )
    streets = db.relationship(
        'Street',
        secondary=house_schema_streets,
        back_populates='house_schemas',
        lazy='selectin',
        passive_deletes=True,
    )

    @property
    def year_range(self):
        if not self.year_from and not self.year_to:
            return 'N/A'
        if self.year_from and self.year_to and self.year_from != self.year_to:
            return f'{self.year_from}-{self.year_to}'
        if self.year_from and not self.year_to:
            return f'{self.year_from}+'
        if self.year_to and not self.year_from:
            return f'Up to {self.year_to}'
        return str(self.year_from or self.year_to)

    def to_dict(self, room_count=None, street_count=None, include_streets=False):
        payload = {
            'id': self.id,
            'builder_id': self.builder_id,
            'model_name': self.model_name,
            'bedrooms': self.bedrooms,
            'property_type': self.property_type,
            'year_from': self.year_from,
            'year_to': self.year_to,
            'floor_plan_url': self.floor_plan_url,
            'exterior_photo_url': self.exterior_photo_url,
            'spec_sheet_url': self.spec_sheet_url,
            'verified': bool(self.verified),
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'builder': {'id': self.builder.id, 'name': self.builder.name} if self.builder else None,
        }
        if room_count is not None:
            payload['room_count'] = int(room_count)
        if street_count is not None:
            payload['street_count'] = int(street_count)
        if include_streets:
            payload['streets'] = [{'street_id': street.id} for street in self.streets]
        return payload

    def __repr__(self):
        return f'<HouseSchema {self.model_name}>'


class Room(db.Model):
    """A dimensioned space within a house schema (dimensions in centimetres)"""

    __tablename__ = 'rooms'

    ROOM_TYPES = (
        ('bedroom', 'Bedroom'),
        ('bathroom', 'Bathroom'),
        ('living', 'Living Room'),
        ('dining', 'Dining Room'),
        ('kitchen', 'Kitchen'),
        ('kitchen/dining', 'Kitchen/Dining'),
        ('hallway', 'Hallway'),
        ('utility', 'Utility'),
        ('other', 'Other'),
    )
    DEFAULT_HEIGHT_CM = 240

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    house_schema_id = db.Column(
        db.String(36),
        db.ForeignKey('house_schemas.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    room_name = db.Column(db.String(100), nullable=False)
    room_type = db.Column(db.String(30), nullable=False, default='bedroom')
    floor_level = db.Column(db.Integer, nullable=False, default=0)
    length_cm = db.Column(db.Integer, nullable=False)
    width_cm = db.Column(db.Integer, nullable=False)
    height_cm = db.Column(db.Integer, nullable=False, default=DEFAULT_HEIGHT_CM)
    # Stored redundantly; recalculated whenever dimensions are written here.
    floor_area_sqm = db.Column(db.Float)
    dimensions_need_verification = db.Column(db.Boolean, nullable=False, default=False)
    verification_reason = db.Column(db.Text)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    house_schema = db.relationship('HouseSchema', back_populates='rooms')

    def recalculate_floor_area(self):
        if self.length_cm and self.width_cm:
            self.floor_area_sqm = round((self.length_cm / 100) * (self.width_cm / 100), 2)
        else:
            self.floor_area_sqm = None
        return self.floor_area_sqm

    @property
    def floor_area_display(self):
        if not self.length_cm or not self.width_cm:
            return ''
        return f'{(self.length_cm / 100) * (self.width_cm / 100):.2f}'

    @property
    def room_type_label(self):
        return dict(self.ROOM_TYPES).get(self.room_type, self.room_type)

    def to_dict(self, include_schema=False):
        payload = {
            'id': self.id,
            'house_schema_id': self.house_schema_id,
            'room_name': self.room_name,
            'room_type': self.room_type,
            'floor_level': self.floor_level,
            'length_cm': self.length_cm,
            'width_cm': self.width_cm,
            'height_cm': self.height_cm,
            'floor_area_sqm': self.floor_area_sqm,
            'dimensions_need_verification': bool(self.dimensions_need_verification),
            'verification_reason': self.verification_reason,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
        }
        if include_schema:
            schema = self.house_schema
            payload['house_schemas'] = {
                'id': schema.id,
                'model_name': schema.model_name,
                'builders': {'name': schema.builder.name} if schema.builder else None,
            } if schema else None
        return payload

    def __repr__(self):
        return f'<Room {self.room_name}>'


class Development(db.Model):
    """Named housing development grouping streets"""

    __tablename__ = 'developments'

    DEVELOPMENT_TYPES = (
        'Residential Estate',
        'Mixed Use',
        'Urban Regeneration',
        'Retirement Village',
        'Apartment Complex',
        'Other',
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(150), nullable=False, index=True)
    postcode_area = db.Column(db.String(10))
    development_type = db.Column(db.String(50))
    builder_id = db.Column(db.String(36), db.ForeignKey('builders.id', ondelete='SET NULL'), index=True)
    year_built = db.Column(db.Integer)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    builder = db.relationship('Builder')
    streets = db.relationship('Street', back_populates='development', lazy='dynamic', passive_deletes=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'postcode_area': self.postcode_area,
            'development_type': self.development_type,
            'builder_id': self.builder_id,
            'year_built': self.year_built,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Development {self.name}>'


class Street(db.Model):
    """A real-world street where a house schema was built"""

    __tablename__ = 'streets'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    street_name = db.Column(db.String(150), nullable=False, index=True)
    postcode = db.Column(db.String(10))
    postcode_area = db.Column(db.String(10), nullable=False, index=True)
    development_id = db.Column(db.String(36), db.ForeignKey('developments.id', ondelete='SET NULL'), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    development = db.relationship('Development', back_populates='streets')
    house_schemas = db.relationship(
        'HouseSchema',
        secondary=house_schema_streets,
        back_populates='streets',
        lazy='selectin',
        passive_deletes=True,
    )

    @staticmethod
    def derive_postcode_area(postcode):
        """Outward code of a UK postcode: first whitespace-separated token."""
        parts = (postcode or '').upper().split()
        return parts[0] if parts else ''

    def to_dict(self):
        return {
            'id': self.id,
            'street_name': self.street_name,
            'postcode': self.postcode,
            'postcode_area': self.postcode_area,
            'development_id': self.development_id,
            'created_at': _iso(self.created_at),
            'developments': {'name': self.development.name} if self.development else None,
        }

    def __repr__(self):
        return f'<Street {self.street_name}>'


class MailingListSubscriber(db.Model):
    """Launch mailing-list signup from the public site"""

    __tablename__ = 'mailing_list'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {'id': self.id, 'email': self.email, 'created_at': _iso(self.created_at)}

    def __repr__(self):
        return f'<MailingListSubscriber {self.email}>'
