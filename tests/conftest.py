"""Test configuration and fixtures."""

import io
from types import SimpleNamespace

import pytest

from refittr import create_app
from refittr.extensions import db as _db
from refittr.models import Builder, Development, HouseSchema, Room, Street, User
from refittr.utils.storage import StorageError


ADMIN_EMAIL = 'admin@refittr.test'
ADMIN_PASSWORD = 'correct-horse-battery'

PDF_BYTES = b'%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n'
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 56
JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 60
GIF_BYTES = b'GIF89a' + b'\x00' * 58
WEBP_BYTES = b'RIFF\x24\x00\x00\x00WEBPVP8 ' + b'\x00' * 48

SAMPLE_BYTES = {
    'pdf': PDF_BYTES,
    'png': PNG_BYTES,
    'jpg': JPEG_BYTES,
    'gif': GIF_BYTES,
    'webp': WEBP_BYTES,
}


class FakeStorage:
    """In-memory stand-in for the object storage client."""

    def __init__(self):
        self.objects = {}
        self.removed = []
        self.fail_uploads = False
        self.fail_removals = False

    def upload(self, bucket, path, data, content_type):
        if self.fail_uploads:
            raise StorageError('storage offline')
        self.objects[(bucket, path)] = (data, content_type)
        return f'https://storage.test/{bucket}/{path}'

    def remove(self, bucket, paths):
        if self.fail_removals:
            raise StorageError('storage offline')
        for path in paths:
            self.removed.append((bucket, path))
            self.objects.pop((bucket, path), None)


class RecordFactory:
    """Creates committed rows in their own app context and returns ids."""

    def __init__(self, app):
        self.app = app

    def _save(self, record):
        with self.app.app_context():
            _db.session.add(record)
            _db.session.commit()
            return record.id

    def builder(self, name='Barratt Homes', **fields):
        return self._save(Builder(name=name, **fields))

    def development(self, name='Meadow View', **fields):
        fields.setdefault('postcode_area', 'LS17')
        return self._save(Development(name=name, **fields))

    def street(self, street_name='Meadow Close', postcode='LS17 8AB', **fields):
        fields.setdefault('postcode_area', Street.derive_postcode_area(postcode))
        return self._save(Street(street_name=street_name, postcode=postcode, **fields))

    def schema(self, builder_id, model_name='The Hadley', bedrooms=3, street_ids=(), **fields):
        fields.setdefault('property_type', 'Semi-detached')
        fields.setdefault('floor_plan_url', 'https://storage.test/floor-plans/plan.pdf')
        fields.setdefault('exterior_photo_url', 'https://storage.test/exterior-photos/front.png')
        with self.app.app_context():
            schema = HouseSchema(builder_id=builder_id, model_name=model_name, bedrooms=bedrooms, **fields)
            if street_ids:
                schema.streets = Street.query.filter(Street.id.in_(list(street_ids))).all()
            _db.session.add(schema)
            _db.session.commit()
            return schema.id

    def room(self, schema_id, room_name='Kitchen', length_cm=380, width_cm=290, **fields):
        fields.setdefault('room_type', 'kitchen')
        with self.app.app_context():
            room = Room(house_schema_id=schema_id, room_name=room_name, length_cm=length_cm, width_cm=width_cm, **fields)
            room.recalculate_floor_area()
            _db.session.add(room)
            _db.session.commit()
            return room.id


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def app(storage, tmp_path):
    """Create application for testing."""

    app = create_app('testing', overrides={'UPLOAD_FOLDER': str(tmp_path / 'uploads')}, storage=storage)

    with app.app_context():
        _db.create_all()

    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Test client for making requests."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def factory(app):
    return RecordFactory(app)


@pytest.fixture
def admin_user(app):
    with app.app_context():
        user = User(email=ADMIN_EMAIL, is_active=True)
        user.set_password(ADMIN_PASSWORD)
        _db.session.add(user)
        _db.session.commit()
        return user.id


@pytest.fixture
def auth_client(client, admin_user):
    """Client signed in as the dashboard admin."""

    resp = client.post('/login', data={'email': ADMIN_EMAIL, 'password': ADMIN_PASSWORD})
    assert resp.status_code == 302
    return client


@pytest.fixture
def sample(factory):
    """A builder with one development, two streets, one schema and one room."""

    builder_id = factory.builder('Barratt Homes')
    development_id = factory.development('Meadow View', builder_id=builder_id)
    street_id = factory.street('Meadow Close', 'LS17 8AB', development_id=development_id)
    other_street_id = factory.street('Harvest Way', 'LS17 8AD')
    schema_id = factory.schema(builder_id, 'The Hadley', street_ids=[street_id])
    room_id = factory.room(schema_id, 'Kitchen')

    return SimpleNamespace(
        builder_id=builder_id,
        development_id=development_id,
        street_id=street_id,
        other_street_id=other_street_id,
        schema_id=schema_id,
        room_id=room_id,
    )


@pytest.fixture
def make_file():
    """Build a multipart file tuple: ``make_file('png', 'logo.png', size=...)``."""

    def _make(kind, filename, size=None):
        data = SAMPLE_BYTES[kind]
        if size is not None and size > len(data):
            data = data + b'\x00' * (size - len(data))
        return (io.BytesIO(data), filename)

    return _make
