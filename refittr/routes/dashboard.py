"""
Dashboard Blueprint - Admin Pages

Server-rendered management screens for builders, rooms, streets and
developments plus the dashboard home. House schemas live in their own
blueprint (routes/schemas.py) because of the creation wizard.
"""

from flask import Blueprint, render_template, request, flash, redirect, url_for, current_app, abort
from flask_login import login_required

from refittr.extensions import db
from refittr.forms import BuilderForm, RoomForm, StreetForm, DevelopmentForm
from refittr.models import Builder, HouseSchema, Room, Street, Development
from refittr.services import catalog
from refittr.services.records import (
    LOGO_BUCKET,
    apply_builder_form,
    apply_development_form,
    apply_room_form,
    apply_street_form,
    builder_files,
    remove_files,
)
from refittr.utils.storage import StorageError
from refittr.utils.uploads import UploadValidationError, remove_from_bucket, upload_to_bucket


dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')


@dashboard_bp.before_request
@login_required
def require_login():
    """Every dashboard page needs a signed-in user."""
    return None


def _get_or_404(model, record_id):
    record = db.session.get(model, record_id)
    if record is None:
        abort(404)
    return record


@dashboard_bp.route('/', strict_slashes=False)
def home():
    """Dashboard home with statistics and recent activity"""

    try:
        stats = catalog.dashboard_stats()
        activity = catalog.recent_activity(current_app.config.get('RECENT_ACTIVITY_LIMIT', 10))
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to load dashboard stats: %s', exc, exc_info=True)
        flash('Unable to load dashboard statistics right now. Please try again.', 'danger')
        stats, activity = None, []

    return render_template('dashboard/home.html', stats=stats, activity=activity)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@dashboard_bp.route('/builders')
def builders():
    """List builders with schema counts"""

    search = request.args.get('q', '').strip()
    try:
        rows = catalog.builders_with_schema_counts(search)
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to load builders: %s', exc, exc_info=True)
        flash('Unable to load builders right now. Please try again.', 'danger')
        rows = []

    return render_template('dashboard/builders/list.html', rows=rows, search=search)


def _upload_logo(form):
    """Upload the submitted logo; returns its URL, None for no file, or False on error."""

    if not form.logo.data:
        return None
    try:
        return upload_to_bucket(form.logo.data, LOGO_BUCKET)
    except UploadValidationError as exc:
        form.logo.errors.append(str(exc))
    except StorageError as exc:
        current_app.logger.error('Logo upload failed: %s', exc, exc_info=True)
        flash('Failed to upload logo. Please try again.', 'danger')
    return False


@dashboard_bp.route('/builders/new', methods=['GET', 'POST'])
def new_builder():
    """Create a builder, uploading the logo before the record is written"""

    form = BuilderForm()

    if form.validate_on_submit():
        logo_url = _upload_logo(form)
        if logo_url is not False:
            try:
                builder = apply_builder_form(Builder(), form)
                builder.logo_url = logo_url
                db.session.add(builder)
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                current_app.logger.error('Failed to create builder: %s', exc, exc_info=True)
                flash('Failed to create builder. Please try again.', 'danger')
            else:
                current_app.logger.info('Builder %s created', builder.id)
                flash(f'Builder "{builder.name}" has been created.', 'success')
                return redirect(url_for('dashboard.builders'))

    return render_template('dashboard/builders/form.html', form=form, builder=None)


@dashboard_bp.route('/builders/<builder_id>', methods=['GET', 'POST'])
def builder_detail(builder_id):
    """View and edit a builder"""

    builder = _get_or_404(Builder, builder_id)
    form = BuilderForm(obj=builder)

    if form.validate_on_submit():
        new_logo = _upload_logo(form)
        if new_logo is not False:
            old_logo = builder.logo_url
            try:
                apply_builder_form(builder, form)
                if new_logo:
                    builder.logo_url = new_logo
                elif form.remove_logo.data:
                    builder.logo_url = None
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                current_app.logger.error('Failed to update builder %s: %s', builder_id, exc, exc_info=True)
                flash('Failed to update builder. Please try again.', 'danger')
            else:
                if old_logo and old_logo != builder.logo_url:
                    remove_from_bucket(old_logo, LOGO_BUCKET)
                flash(f'Builder "{builder.name}" has been updated.', 'success')
                return redirect(url_for('dashboard.builder_detail', builder_id=builder.id))

    schemas = builder.house_schemas.order_by(HouseSchema.model_name.asc()).all()
    return render_template('dashboard/builders/form.html', form=form, builder=builder, schemas=schemas)


@dashboard_bp.route('/builders/<builder_id>/delete', methods=['POST'])
def delete_builder(builder_id):
    """Delete a builder; its logo and schema documents are removed best-effort"""

    builder = _get_or_404(Builder, builder_id)
    name = builder.name
    files = builder_files(builder)
    try:
        db.session.delete(builder)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to delete builder %s: %s', builder_id, exc, exc_info=True)
        flash('Failed to delete builder. Please try again.', 'danger')
    else:
        remove_files(files)
        flash(f'Builder "{name}" has been deleted.', 'success')
    return redirect(url_for('dashboard.builders'))


# ---------------------------------------------------------------------------
# Rooms
# ---------------------------------------------------------------------------


def _render_rooms(form, editing=None, status=200):
    search = request.args.get('q', '').strip()
    try:
        rooms = catalog.search_rooms(search)
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to load rooms: %s', exc, exc_info=True)
        flash('Unable to load rooms right now. Please try again.', 'danger')
        rooms = []
    return render_template('dashboard/rooms.html', rooms=rooms, form=form, editing=editing, search=search), status


@dashboard_bp.route('/rooms', methods=['GET', 'POST'])
def rooms():
    """Room list with the add/edit form; ``?edit=<id>`` loads a room into it"""

    editing = None
    edit_id = request.args.get('edit')
    if request.method == 'GET' and edit_id:
        editing = db.session.get(Room, edit_id)
        if editing is None:
            flash('Room not found.', 'warning')

    form = RoomForm(obj=editing) if editing else RoomForm()
    if request.method == 'GET' and not editing and request.args.get('schema'):
        form.house_schema_id.data = request.args.get('schema')

    if form.validate_on_submit():
        try:
            room = apply_room_form(Room(), form)
            db.session.add(room)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to create room: %s', exc, exc_info=True)
            flash('Failed to save room. Please try again.', 'danger')
        else:
            flash(f'Room "{room.room_name}" has been added.', 'success')
            return redirect(url_for('dashboard.rooms'))
        return _render_rooms(form)

    if request.method == 'POST':
        return _render_rooms(form, status=400)
    return _render_rooms(form, editing)


@dashboard_bp.route('/rooms/<room_id>/edit', methods=['POST'])
def update_room(room_id):
    room = _get_or_404(Room, room_id)
    form = RoomForm()

    if not form.validate_on_submit():
        return _render_rooms(form, editing=room, status=400)

    try:
        apply_room_form(room, form)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to update room %s: %s', room_id, exc, exc_info=True)
        flash('Failed to save room. Please try again.', 'danger')
        return _render_rooms(form, editing=room)

    flash(f'Room "{room.room_name}" has been updated.', 'success')
    return redirect(url_for('dashboard.rooms'))


@dashboard_bp.route('/rooms/<room_id>/delete', methods=['POST'])
def delete_room(room_id):
    room = _get_or_404(Room, room_id)
    schema_id = room.house_schema_id
    try:
        db.session.delete(room)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to delete room %s: %s', room_id, exc, exc_info=True)
        flash('Failed to delete room. Please try again.', 'danger')
    else:
        flash('Room deleted.', 'success')
    if request.form.get('from_schema'):
        return redirect(url_for('schemas.detail', schema_id=schema_id))
    return redirect(url_for('dashboard.rooms'))


# ---------------------------------------------------------------------------
# Streets
# ---------------------------------------------------------------------------


@dashboard_bp.route('/streets', methods=['GET', 'POST'])
def streets():
    """Street list with the create form"""

    form = StreetForm()
    status = 200

    if form.validate_on_submit():
        try:
            street = apply_street_form(Street(), form)
            db.session.add(street)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to create street: %s', exc, exc_info=True)
            flash('Failed to create street. Please try again.', 'danger')
        else:
            flash(f'Street "{street.street_name}" has been added.', 'success')
            return redirect(url_for('dashboard.streets'))
    elif request.method == 'POST':
        status = 400

    search = request.args.get('q', '').strip()
    try:
        rows = catalog.search_streets(search)
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to load streets: %s', exc, exc_info=True)
        flash('Unable to load streets right now. Please try again.', 'danger')
        rows = []

    return render_template('dashboard/streets.html', streets=rows, form=form, search=search), status


@dashboard_bp.route('/streets/<street_id>/edit', methods=['GET', 'POST'])
def edit_street(street_id):
    street = _get_or_404(Street, street_id)
    form = StreetForm(obj=street)

    if form.validate_on_submit():
        try:
            apply_street_form(street, form)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to update street %s: %s', street_id, exc, exc_info=True)
            flash('Failed to update street. Please try again.', 'danger')
        else:
            flash(f'Street "{street.street_name}" has been updated.', 'success')
            return redirect(url_for('dashboard.streets'))

    return render_template('dashboard/edit_record.html', form=form, record=street, kind='Street',
                           back_url=url_for('dashboard.streets'))


@dashboard_bp.route('/streets/<street_id>/delete', methods=['POST'])
def delete_street(street_id):
    street = _get_or_404(Street, street_id)
    try:
        db.session.delete(street)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to delete street %s: %s', street_id, exc, exc_info=True)
        flash('Failed to delete street. Please try again.', 'danger')
    else:
        flash('Street deleted.', 'success')
    return redirect(url_for('dashboard.streets'))


# ---------------------------------------------------------------------------
# Developments
# ---------------------------------------------------------------------------


@dashboard_bp.route('/developments', methods=['GET', 'POST'])
def developments():
    """Development list with the create form"""

    form = DevelopmentForm()
    status = 200

    if form.validate_on_submit():
        try:
            development = apply_development_form(Development(), form)
            db.session.add(development)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to create development: %s', exc, exc_info=True)
            flash('Failed to create development. Please try again.', 'danger')
        else:
            flash(f'Development "{development.name}" has been added.', 'success')
            return redirect(url_for('dashboard.developments'))
    elif request.method == 'POST':
        status = 400

    search = request.args.get('q', '').strip()
    try:
        rows = catalog.list_developments(search)
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to load developments: %s', exc, exc_info=True)
        flash('Unable to load developments right now. Please try again.', 'danger')
        rows = []

    return render_template('dashboard/developments.html', developments=rows, form=form, search=search), status


@dashboard_bp.route('/developments/<development_id>/edit', methods=['GET', 'POST'])
def edit_development(development_id):
    development = _get_or_404(Development, development_id)
    form = DevelopmentForm(obj=development)

    if form.validate_on_submit():
        try:
            apply_development_form(development, form)
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to update development %s: %s', development_id, exc, exc_info=True)
            flash('Failed to update development. Please try again.', 'danger')
        else:
            flash(f'Development "{development.name}" has been updated.', 'success')
            return redirect(url_for('dashboard.developments'))

    return render_template('dashboard/edit_record.html', form=form, record=development, kind='Development',
                           back_url=url_for('dashboard.developments'))


@dashboard_bp.route('/developments/<development_id>/delete', methods=['POST'])
def delete_development(development_id):
    development = _get_or_404(Development, development_id)
    try:
        db.session.delete(development)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error('Failed to delete development %s: %s', development_id, exc, exc_info=True)
        flash('Failed to delete development. Please try again.', 'danger')
    else:
        flash('Development deleted.', 'success')
    return redirect(url_for('dashboard.developments'))
