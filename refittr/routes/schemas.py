"""
House Schemas Blueprint

List/detail/edit/delete pages plus the four-step creation wizard:

1. Basics (builder, model, bedrooms, property type, years, notes)
2. Files (floor plan, exterior photo, optional spec sheet)
3. Streets (search, select, inline create of streets and developments)
4. Review and confirm

Wizard state lives in the signed session between steps; nothing is written
to the database until the review step is confirmed.
"""

from flask import Blueprint, render_template, request, flash, redirect, url_for, current_app, abort, session
from flask_login import login_required

from refittr.extensions import db
from refittr.forms import (
    DevelopmentForm,
    SchemaBasicsForm,
    SchemaEditForm,
    SchemaFilesForm,
    SchemaReviewForm,
    SchemaStreetsForm,
    StreetForm,
)
from refittr.models import Builder, Development, HouseSchema, Room, Street
from refittr.services import catalog
from refittr.services.catalog import BEDROOM_FILTERS, SCHEMA_SORT_COLUMNS, SchemaFilters
from refittr.services.records import (
    SCHEMA_DOCUMENTS,
    apply_development_form,
    apply_schema_basics,
    apply_street_form,
    basics_from_form,
    build_schema,
    remove_files,
    schema_files,
)
from refittr.utils.storage import StorageError
from refittr.utils.uploads import UploadValidationError, remove_from_bucket, upload_to_bucket


schemas_bp = Blueprint('schemas', __name__, url_prefix='/dashboard/schemas')

WIZARD_KEY = 'schema_wizard'
WIZARD_STEPS = ('Basics', 'Files', 'Streets', 'Review')

# form field -> (document attribute, bucket)
FILE_FIELDS = {
    'floor_plan': SCHEMA_DOCUMENTS[0],
    'exterior_photo': SCHEMA_DOCUMENTS[1],
    'spec_sheet': SCHEMA_DOCUMENTS[2],
}


@schemas_bp.before_request
@login_required
def require_login():
    return None


def _get_schema_or_404(schema_id):
    schema = db.session.get(HouseSchema, schema_id)
    if schema is None:
        abort(404)
    return schema


# ---------------------------------------------------------------------------
# List / detail / edit / delete
# ---------------------------------------------------------------------------


@schemas_bp.route('/', strict_slashes=False)
def index():
    """Filtered, sorted, paginated schema list"""

    filters = SchemaFilters.from_args(request.args)
    page = request.args.get('page', 1, type=int)
    per_page = current_app.config.get('SCHEMAS_PER_PAGE', 10)

    try:
        pagination = catalog.build_schemas_query(filters).paginate(page=page, per_page=per_page, error_out=False)
        rows = catalog.schemas_with_counts(pagination.items)
        builders = Builder.query.order_by(Builder.name.asc()).all()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to load house schemas: %s', exc, exc_info=True)
        flash('Unable to load house schemas right now. Please try again.', 'danger')
        pagination, rows, builders = None, [], []

    return render_template(
        'dashboard/schemas/list.html',
        rows=rows,
        pagination=pagination,
        filters=filters,
        builders=builders,
        property_types=HouseSchema.PROPERTY_TYPES,
        bedroom_filters=BEDROOM_FILTERS,
        sort_columns=list(SCHEMA_SORT_COLUMNS),
    )


@schemas_bp.route('/<schema_id>')
def detail(schema_id):
    """Schema details, documents, linked streets and rooms"""

    schema = _get_schema_or_404(schema_id)
    rooms = schema.rooms.order_by(Room.floor_level.asc(), Room.room_name.asc()).all()
    return render_template('dashboard/schemas/detail.html', schema=schema, rooms=rooms)


def _upload_documents(form, fields):
    """Upload every submitted file in ``fields``.

    Returns ``{document_attr: url}`` or None when any upload failed; field
    errors are attached to the form.
    """

    uploaded = {}
    failed = False
    for name in fields:
        field = getattr(form, name)
        if not field.data:
            continue
        attr, bucket = FILE_FIELDS[name]
        try:
            uploaded[attr] = upload_to_bucket(field.data, bucket)
        except UploadValidationError as exc:
            field.errors.append(str(exc))
            failed = True
        except StorageError as exc:
            current_app.logger.error('Upload to %s failed: %s', bucket, exc, exc_info=True)
            field.errors.append('Upload failed. Please try again.')
            failed = True

    if failed:
        # Keep storage tidy when only part of the batch made it.
        for attr, url in uploaded.items():
            remove_from_bucket(url, dict(SCHEMA_DOCUMENTS)[attr])
        return None
    return uploaded


@schemas_bp.route('/<schema_id>/edit', methods=['GET', 'POST'])
def edit(schema_id):
    """Single-page edit with optional document replacement"""

    schema = _get_schema_or_404(schema_id)
    form = SchemaEditForm(obj=schema)

    if form.validate_on_submit():
        uploaded = _upload_documents(form, FILE_FIELDS)
        if uploaded is not None:
            previous = {attr: getattr(schema, attr) for attr, _bucket in SCHEMA_DOCUMENTS}
            try:
                apply_schema_basics(schema, basics_from_form(form))
                schema.verified = bool(form.verified.data)
                for attr, url in uploaded.items():
                    setattr(schema, attr, url)
                if form.remove_spec_sheet.data and 'spec_sheet_url' not in uploaded:
                    schema.spec_sheet_url = None
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                current_app.logger.error('Failed to update schema %s: %s', schema_id, exc, exc_info=True)
                flash('Failed to update house schema. Please try again.', 'danger')
            else:
                for attr, bucket in SCHEMA_DOCUMENTS:
                    if previous[attr] and previous[attr] != getattr(schema, attr):
                        remove_from_bucket(previous[attr], bucket)
                flash(f'House schema "{schema.model_name}" has been updated.', 'success')
                return redirect(url_for('schemas.detail', schema_id=schema.id))

    return render_template('dashboard/schemas/edit.html', form=form, schema=schema)


@schemas_bp.route('/<schema_id>/delete', methods=['POST'])
def delete(schema_id):
    """Delete a schema; its rooms and street links go with it in the database"""

    schema = _get_schema_or_404(schema_id)
    name = schema.model_name
    files = schema_files(schema)
    try:
        db.session.delete(schema)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to delete schema %s: %s', schema_id, exc, exc_info=True)
        flash('Failed to delete house schema. Please try again.', 'danger')
    else:
        remove_files(files)
        flash(f'House schema "{name}" has been deleted.', 'success')
    return redirect(url_for('schemas.index'))


# ---------------------------------------------------------------------------
# Creation wizard
# ---------------------------------------------------------------------------


def _wizard_state() -> dict:
    state = session.get(WIZARD_KEY) or {}
    state.setdefault('basics', None)
    state.setdefault('documents', {})
    state.setdefault('street_ids', [])
    return state


def _save_wizard_state(state: dict) -> None:
    session[WIZARD_KEY] = state
    session.modified = True


def _render_step(template, step, status=200, **context):
    return render_template(
        f'dashboard/schemas/wizard/{template}',
        step=step,
        steps=WIZARD_STEPS,
        **context,
    ), status


@schemas_bp.route('/new', methods=['GET', 'POST'])
def wizard_basics():
    """Wizard step 1: basics"""

    state = _wizard_state()
    form = SchemaBasicsForm(data=state['basics'] or {})

    if form.validate_on_submit():
        state['basics'] = basics_from_form(form)
        _save_wizard_state(state)
        return redirect(url_for('schemas.wizard_files'))

    status = 400 if request.method == 'POST' else 200
    return _render_step('basics.html', 1, status=status, form=form)


@schemas_bp.route('/new/files', methods=['GET', 'POST'])
def wizard_files():
    """Wizard step 2: documents"""

    state = _wizard_state()
    if not state['basics']:
        flash('Please complete the basics first.', 'warning')
        return redirect(url_for('schemas.wizard_basics'))

    form = SchemaFilesForm()
    documents = state['documents']

    if form.validate_on_submit():
        if not form.floor_plan.data and not documents.get('floor_plan_url'):
            form.floor_plan.errors.append('Floor plan is required')
        if not form.exterior_photo.data and not documents.get('exterior_photo_url'):
            form.exterior_photo.errors.append('Exterior photo is required')

        if not form.floor_plan.errors and not form.exterior_photo.errors:
            uploaded = _upload_documents(form, FILE_FIELDS)
            if uploaded is not None:
                for attr, url in uploaded.items():
                    previous = documents.get(attr)
                    if previous:
                        remove_from_bucket(previous, dict(SCHEMA_DOCUMENTS)[attr])
                    documents[attr] = url
                state['documents'] = documents
                _save_wizard_state(state)
                return redirect(url_for('schemas.wizard_streets'))

    status = 400 if request.method == 'POST' else 200
    return _render_step('files.html', 2, status=status, form=form, documents=documents)


def _selected_streets(state):
    ids = state['street_ids']
    if not ids:
        return []
    streets = Street.query.filter(Street.id.in_(ids)).all()
    by_id = {street.id: street for street in streets}
    return [by_id[sid] for sid in ids if sid in by_id]


@schemas_bp.route('/new/streets', methods=['GET', 'POST'])
def wizard_streets():
    """Wizard step 3: link streets"""

    state = _wizard_state()
    if not state['basics']:
        return redirect(url_for('schemas.wizard_basics'))
    if not state['documents'].get('floor_plan_url') or not state['documents'].get('exterior_photo_url'):
        return redirect(url_for('schemas.wizard_files'))

    form = SchemaStreetsForm()
    search = request.args.get('q', '').strip()
    error = None
    status = 200

    if form.validate_on_submit():
        action = form.action.data
        street_id = form.street_id.data
        ids = list(state['street_ids'])

        if action == 'add' and street_id and street_id not in ids:
            if db.session.get(Street, street_id) is not None:
                ids.append(street_id)
        elif action == 'remove' and street_id in ids:
            ids.remove(street_id)
        elif action == 'continue':
            if ids:
                return redirect(url_for('schemas.wizard_review'))
            error = 'At least one street must be selected'
            status = 400

        state['street_ids'] = ids
        _save_wizard_state(state)
        if error is None:
            return redirect(url_for('schemas.wizard_streets', q=search or None))

    selected = _selected_streets(state)
    results = []
    if search:
        limit = current_app.config.get('STREET_SEARCH_LIMIT', 20)
        results = catalog.search_streets(search, limit=limit)

    return _render_step(
        'streets.html',
        3,
        status=status,
        form=form,
        search=search,
        results=results,
        selected=selected,
        selected_ids=set(state['street_ids']),
        error=error,
        street_form=StreetForm(prefix='street'),
        development_form=DevelopmentForm(prefix='development'),
    )


@schemas_bp.route('/new/streets/create-street', methods=['POST'])
def wizard_create_street():
    """Inline street creation; the new street is selected automatically"""

    state = _wizard_state()
    if not state['basics']:
        return redirect(url_for('schemas.wizard_basics'))

    form = StreetForm(prefix='street')
    if not form.validate_on_submit():
        for messages in form.errors.values():
            for message in messages:
                flash(message, 'danger')
        return redirect(url_for('schemas.wizard_streets'))

    try:
        street = apply_street_form(Street(), form)
        db.session.add(street)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to create street from wizard: %s', exc, exc_info=True)
        flash('Failed to create street. Please try again.', 'danger')
        return redirect(url_for('schemas.wizard_streets'))

    state['street_ids'] = list(state['street_ids']) + [street.id]
    _save_wizard_state(state)
    flash(f'Street "{street.street_name}" created and selected.', 'success')
    return redirect(url_for('schemas.wizard_streets'))


@schemas_bp.route('/new/streets/create-development', methods=['POST'])
def wizard_create_development():
    """Inline development creation for use by new streets"""

    form = DevelopmentForm(prefix='development')
    if not form.validate_on_submit():
        for messages in form.errors.values():
            for message in messages:
                flash(message, 'danger')
        return redirect(url_for('schemas.wizard_streets'))

    try:
        development = apply_development_form(Development(), form)
        db.session.add(development)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to create development from wizard: %s', exc, exc_info=True)
        flash('Failed to create development. Please try again.', 'danger')
    else:
        flash(f'Development "{development.name}" created.', 'success')
    return redirect(url_for('schemas.wizard_streets'))


@schemas_bp.route('/new/review', methods=['GET', 'POST'])
def wizard_review():
    """Wizard step 4: confirm and create"""

    state = _wizard_state()
    if not state['basics']:
        return redirect(url_for('schemas.wizard_basics'))
    if not state['documents'].get('floor_plan_url') or not state['documents'].get('exterior_photo_url'):
        return redirect(url_for('schemas.wizard_files'))
    # Streets can be deleted while the wizard is open; only live ones count.
    selected = _selected_streets(state)
    live_ids = [street.id for street in selected]
    if live_ids != state['street_ids']:
        state['street_ids'] = live_ids
        _save_wizard_state(state)
    if not live_ids:
        flash('At least one street must be selected', 'warning')
        return redirect(url_for('schemas.wizard_streets'))

    form = SchemaReviewForm()
    basics = state['basics']
    builder = db.session.get(Builder, basics.get('builder_id'))

    if form.validate_on_submit():
        try:
            schema = build_schema(basics, state['documents'], live_ids)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to create house schema: %s', exc, exc_info=True)
            flash('Failed to create house schema. Please try again.', 'danger')
        else:
            session.pop(WIZARD_KEY, None)
            current_app.logger.info('House schema %s created with %d streets', schema.id, len(selected))
            flash(f'House schema "{schema.model_name}" has been created.', 'success')
            return redirect(url_for('schemas.detail', schema_id=schema.id))

    status = 400 if request.method == 'POST' else 200
    return _render_step(
        'review.html',
        4,
        status=status,
        form=form,
        basics=basics,
        builder=builder,
        documents=state['documents'],
        selected=selected,
    )


@schemas_bp.route('/new/cancel', methods=['POST'])
def wizard_cancel():
    """Abandon the wizard; uploaded documents are removed best-effort"""

    state = session.pop(WIZARD_KEY, None) or {}
    buckets = dict(SCHEMA_DOCUMENTS)
    for attr, url in (state.get('documents') or {}).items():
        if url and attr in buckets:
            remove_from_bucket(url, buckets[attr])
    flash('House schema creation cancelled.', 'info')
    return redirect(url_for('schemas.index'))
