"""
API Blueprint - JSON endpoints behind the dashboard

One REST handler per entity (builders, schemas, rooms, streets,
developments), a file-upload proxy to object storage, the public
mailing-list signup and two dashboard read endpoints.

Every route except ``POST /api/mailing-list`` requires a signed-in user;
the login manager answers 401 JSON for API paths. Input is validated with
the same WTForms classes the pages use.

Error shapes:
- 400 {"error": first message, "errors": {field: [messages]}}
- 404 {"error": "<Entity> not found"}
- 409 {"error": "This email is already subscribed"}
- 500 {"error": message}
"""

from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required

from refittr.extensions import db, limiter
from refittr.forms import (
    BuilderForm,
    DevelopmentForm,
    RoomForm,
    SchemaForm,
    StreetForm,
    first_error,
    formdata_from_json,
)
from refittr.models import Builder, Development, HouseSchema, Room, Street
from refittr.services import catalog
from refittr.services.catalog import SchemaFilters
from refittr.services.mailing_list import AlreadySubscribedError, InvalidEmailError, subscribe_email
from refittr.services.records import (
    LOGO_BUCKET,
    SCHEMA_DOCUMENTS,
    apply_builder_form,
    apply_development_form,
    apply_room_form,
    apply_schema_basics,
    apply_street_form,
    basics_from_form,
    build_schema,
    builder_files,
    remove_files,
    schema_files,
)
from refittr.utils.storage import StorageError
from refittr.utils.uploads import UploadValidationError, remove_from_bucket, upload_to_bucket


api_bp = Blueprint('api', __name__, url_prefix='/api')


def _error(message, status, **extra):
    payload = {'error': message}
    payload.update(extra)
    return jsonify(payload), status


def _server_error(action, exc):
    db.session.rollback()
    current_app.logger.error('Failed to %s: %s', action, exc, exc_info=True)
    return _error(str(exc) or f'Failed to {action}', 500)


def _json_body():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _bind(form_class, payload, record=None):
    """Validate a JSON payload with a form; PUT merges over the stored record."""

    existing = record.to_dict() if record is not None else None
    form = form_class(formdata=formdata_from_json(payload, existing), meta={'csrf': False})
    form.validate()
    return form


def _invalid(form):
    return _error(first_error(form), 400, errors=form.errors)


def _not_found(entity):
    return _error(f'{entity} not found', 404)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@api_bp.route('/builders', methods=['GET'])
@login_required
def list_builders():
    try:
        rows = catalog.builders_with_schema_counts(request.args.get('q', '').strip())
        return jsonify([builder.to_dict(schema_count=count) for builder, count in rows])
    except Exception as exc:
        return _server_error('fetch builders', exc)


@api_bp.route('/builders', methods=['POST'])
@login_required
def create_builder():
    form = _bind(BuilderForm, _json_body())
    if form.errors:
        return _invalid(form)

    try:
        builder = apply_builder_form(Builder(), form)
        builder.logo_url = (form.logo_url.data or '').strip() or None
        db.session.add(builder)
        db.session.commit()
    except Exception as exc:
        return _server_error('create builder', exc)

    current_app.logger.info('Builder %s created via API', builder.id)
    return jsonify(builder.to_dict(schema_count=0)), 201


@api_bp.route('/builders/<builder_id>', methods=['GET'])
@login_required
def get_builder(builder_id):
    builder = db.session.get(Builder, builder_id)
    if builder is None:
        return _not_found('Builder')
    return jsonify(builder.to_dict(schema_count=builder.house_schemas.count()))


@api_bp.route('/builders/<builder_id>', methods=['PUT'])
@login_required
def update_builder(builder_id):
    builder = db.session.get(Builder, builder_id)
    if builder is None:
        return _not_found('Builder')

    form = _bind(BuilderForm, _json_body(), builder)
    if form.errors:
        return _invalid(form)

    old_logo = builder.logo_url
    try:
        apply_builder_form(builder, form)
        builder.logo_url = (form.logo_url.data or '').strip() or None
        db.session.commit()
    except Exception as exc:
        return _server_error('update builder', exc)

    if old_logo and old_logo != builder.logo_url:
        remove_from_bucket(old_logo, LOGO_BUCKET)
    return jsonify(builder.to_dict())


@api_bp.route('/builders/<builder_id>', methods=['DELETE'])
@login_required
def delete_builder(builder_id):
    builder = db.session.get(Builder, builder_id)
    if builder is None:
        return _not_found('Builder')

    files = builder_files(builder)
    try:
        db.session.delete(builder)
        db.session.commit()
    except Exception as exc:
        return _server_error('delete builder', exc)

    remove_files(files)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# House schemas
# ---------------------------------------------------------------------------


def _street_ids(payload):
    ids = payload.get('street_ids')
    if ids is None:
        return None
    if not isinstance(ids, list):
        return []
    return [str(sid) for sid in ids if sid]


def _schema_payload(schema):
    rooms = catalog.room_counts([schema.id]).get(schema.id, 0)
    return schema.to_dict(room_count=rooms, street_count=len(schema.streets), include_streets=True)


@api_bp.route('/schemas', methods=['GET'])
@login_required
def list_schemas():
    try:
        schemas = catalog.build_schemas_query(SchemaFilters.from_args(request.args)).all()
        rows = catalog.schemas_with_counts(schemas)
        return jsonify([
            schema.to_dict(room_count=rooms, street_count=streets) for schema, rooms, streets in rows
        ])
    except Exception as exc:
        return _server_error('fetch house schemas', exc)


@api_bp.route('/schemas', methods=['POST'])
@login_required
def create_schema():
    payload = _json_body()
    form = _bind(SchemaForm, payload)
    if form.errors:
        return _invalid(form)

    documents = {attr: getattr(form, attr).data for attr, _bucket in SCHEMA_DOCUMENTS}
    try:
        schema = build_schema(basics_from_form(form), documents, _street_ids(payload) or [])
        schema.verified = bool(form.verified.data)
        db.session.commit()
    except Exception as exc:
        return _server_error('create house schema', exc)

    current_app.logger.info('House schema %s created via API', schema.id)
    return jsonify(_schema_payload(schema)), 201


@api_bp.route('/schemas/<schema_id>', methods=['GET'])
@login_required
def get_schema(schema_id):
    schema = db.session.get(HouseSchema, schema_id)
    if schema is None:
        return _not_found('House schema')
    return jsonify(_schema_payload(schema))


@api_bp.route('/schemas/<schema_id>', methods=['PUT'])
@login_required
def update_schema(schema_id):
    schema = db.session.get(HouseSchema, schema_id)
    if schema is None:
        return _not_found('House schema')

    payload = _json_body()
    form = _bind(SchemaForm, payload, schema)
    if form.errors:
        return _invalid(form)

    previous = {attr: getattr(schema, attr) for attr, _bucket in SCHEMA_DOCUMENTS}
    street_ids = _street_ids(payload)
    try:
        apply_schema_basics(schema, basics_from_form(form))
        schema.verified = bool(form.verified.data)
        for attr, _bucket in SCHEMA_DOCUMENTS:
            setattr(schema, attr, (getattr(form, attr).data or '').strip() or None)
        if street_ids is not None:
            schema.streets = Street.query.filter(Street.id.in_(street_ids)).all() if street_ids else []
        db.session.commit()
    except Exception as exc:
        return _server_error('update house schema', exc)

    for attr, bucket in SCHEMA_DOCUMENTS:
        if previous[attr] and previous[attr] != getattr(schema, attr):
            remove_from_bucket(previous[attr], bucket)
    return jsonify(_schema_payload(schema))


@api_bp.route('/schemas/<schema_id>', methods=['DELETE'])
@login_required
def delete_schema(schema_id):
    schema = db.session.get(HouseSchema, schema_id)
    if schema is None:
        return _not_found('House schema')

    files = schema_files(schema)
    try:
        db.session.delete(schema)
        db.session.commit()
    except Exception as exc:
        return _server_error('delete house schema', exc)

    remove_files(files)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------


@api_bp.route('/rooms', methods=['GET'])
@login_required
def list_rooms():
    try:
        rooms = catalog.search_rooms(request.args.get('q', '').strip())
        schema_id = request.args.get('schema_id')
        if schema_id:
            rooms = [room for room in rooms if room.house_schema_id == schema_id]
        return jsonify([room.to_dict(include_schema=True) for room in rooms])
    except Exception as exc:
        return _server_error('fetch rooms', exc)


@api_bp.route('/rooms', methods=['POST'])
@login_required
def create_room():
    form = _bind(RoomForm, _json_body())
    if form.errors:
        return _invalid(form)

    try:
        room = apply_room_form(Room(), form)
        db.session.add(room)
        db.session.commit()
    except Exception as exc:
        return _server_error('create room', exc)
    return jsonify(room.to_dict(include_schema=True)), 201


@api_bp.route('/rooms/<room_id>', methods=['GET'])
@login_required
def get_room(room_id):
    room = db.session.get(Room, room_id)
    if room is None:
        return _not_found('Room')
    return jsonify(room.to_dict(include_schema=True))


@api_bp.route('/rooms/<room_id>', methods=['PUT'])
@login_required
def update_room(room_id):
    room = db.session.get(Room, room_id)
    if room is None:
        return _not_found('Room')

    form = _bind(RoomForm, _json_body(), room)
    if form.errors:
        return _invalid(form)

    try:
        apply_room_form(room, form)
        db.session.commit()
    except Exception as exc:
        return _server_error('update room', exc)
    return jsonify(room.to_dict(include_schema=True))


@api_bp.route('/rooms/<room_id>', methods=['DELETE'])
@login_required
def delete_room(room_id):
    room = db.session.get(Room, room_id)
    if room is None:
        return _not_found('Room')

    try:
        db.session.delete(room)
        db.session.commit()
    except Exception as exc:
        return _server_error('delete room', exc)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Streets
# ---------------------------------------------------------------------------


@api_bp.route('/streets', methods=['GET'])
@login_required
def list_streets():
    try:
        limit = request.args.get('limit', type=int)
        streets = catalog.search_streets(request.args.get('q', '').strip(), limit=limit)
        return jsonify([street.to_dict() for street in streets])
    except Exception as exc:
        return _server_error('fetch streets', exc)


@api_bp.route('/streets', methods=['POST'])
@login_required
def create_street():
    form = _bind(StreetForm, _json_body())
    if form.errors:
        return _invalid(form)

    try:
        street = apply_street_form(Street(), form)
        db.session.add(street)
        db.session.commit()
    except Exception as exc:
        return _server_error('create street', exc)
    return jsonify(street.to_dict()), 201


@api_bp.route('/streets/<street_id>', methods=['GET'])
@login_required
def get_street(street_id):
    street = db.session.get(Street, street_id)
    if street is None:
        return _not_found('Street')
    return jsonify(street.to_dict())


@api_bp.route('/streets/<street_id>', methods=['PUT'])
@login_required
def update_street(street_id):
    street = db.session.get(Street, street_id)
    if street is None:
        return _not_found('Street')

    form = _bind(StreetForm, _json_body(), street)
    if form.errors:
        return _invalid(form)

    try:
        apply_street_form(street, form)
        db.session.commit()
    except Exception as exc:
        return _server_error('update street', exc)
    return jsonify(street.to_dict())


@api_bp.route('/streets/<street_id>', methods=['DELETE'])
@login_required
def delete_street(street_id):
    street = db.session.get(Street, street_id)
    if street is None:
        return _not_found('Street')

    try:
        db.session.delete(street)
        db.session.commit()
    except Exception as exc:
        return _server_error('delete street', exc)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Developments
# ---------------------------------------------------------------------------


@api_bp.route('/developments', methods=['GET'])
@login_required
def list_developments():
    try:
        developments = catalog.list_developments(request.args.get('q', '').strip())
        return jsonify([development.to_dict() for development in developments])
    except Exception as exc:
        return _server_error('fetch developments', exc)


@api_bp.route('/developments', methods=['POST'])
@login_required
def create_development():
    form = _bind(DevelopmentForm, _json_body())
    if form.errors:
        return _invalid(form)

    try:
        development = apply_development_form(Development(), form)
        db.session.add(development)
        db.session.commit()
    except Exception as exc:
        return _server_error('create development', exc)
    return jsonify(development.to_dict()), 201


@api_bp.route('/developments/<development_id>', methods=['GET'])
@login_required
def get_development(development_id):
    development = db.session.get(Development, development_id)
    if development is None:
        return _not_found('Development')
    return jsonify(development.to_dict())


@api_bp.route('/developments/<development_id>', methods=['PUT'])
@login_required
def update_development(development_id):
    development = db.session.get(Development, development_id)
    if development is None:
        return _not_found('Development')

    form = _bind(DevelopmentForm, _json_body(), development)
    if form.errors:
        return _invalid(form)

    try:
        apply_development_form(development, form)
        db.session.commit()
    except Exception as exc:
        return _server_error('update development', exc)
    return jsonify(development.to_dict())


@api_bp.route('/developments/<development_id>', methods=['DELETE'])
@login_required
def delete_development(development_id):
    development = db.session.get(Development, development_id)
    if development is None:
        return _not_found('Development')

    try:
        db.session.delete(development)
        db.session.commit()
    except Exception as exc:
        return _server_error('delete development', exc)
    return jsonify({'success': True})


# ---------------------------------------------------------------------------
# Upload, mailing list, dashboard
# ---------------------------------------------------------------------------


@api_bp.route('/upload', methods=['POST'])
@login_required
def upload():
    """Store ``file`` in ``bucket`` and return its public URL"""

    file = request.files.get('file')
    bucket = (request.form.get('bucket') or '').strip()

    if file is None or not file.filename:
        return _error('No file provided', 400)

    try:
        url = upload_to_bucket(file, bucket)
    except UploadValidationError as exc:
        return _error(str(exc), 400)
    except StorageError as exc:
        current_app.logger.error('Upload to %s failed: %s', bucket, exc, exc_info=True)
        return _error(str(exc) or 'Failed to upload file', 500)
    return jsonify({'url': url})


@api_bp.route('/mailing-list', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('SIGNUP_RATE_LIMIT', '5 per minute'))
def mailing_list():
    """Public launch signup"""

    payload = _json_body()
    try:
        subscriber = subscribe_email(payload.get('email'))
    except InvalidEmailError as exc:
        return _error(str(exc), 400)
    except AlreadySubscribedError as exc:
        return _error(str(exc), 409)
    except Exception as exc:
        current_app.logger.error('Mailing list signup failed: %s', exc, exc_info=True)
        return _error('Failed to subscribe. Please try again.', 500)

    return jsonify({'message': 'Successfully subscribed to mailing list', 'data': subscriber.to_dict()})


@api_bp.route('/dashboard/stats', methods=['GET'])
@login_required
def dashboard_stats():
    try:
        return jsonify(catalog.dashboard_stats())
    except Exception as exc:
        return _server_error('fetch dashboard stats', exc)


@api_bp.route('/dashboard/recent-activity', methods=['GET'])
@login_required
def recent_activity():
    try:
        limit = current_app.config.get('RECENT_ACTIVITY_LIMIT', 10)
        return jsonify(catalog.recent_activity(limit))
    except Exception as exc:
        return _server_error('fetch recent activity', exc)
