"""
Main Blueprint - Public Routes

This blueprint handles the public marketing site:
- Homepage with the launch mailing-list form
- About page
- Locally stored uploads (development storage backend)
"""

from flask import Blueprint, render_template, request, flash, redirect, url_for, current_app, abort, send_file

from refittr.extensions import limiter
from refittr.forms import MailingListForm
from refittr.services.mailing_list import subscribe_email, InvalidEmailError, AlreadySubscribedError
from refittr.utils.storage import LocalStorage, StorageError, get_storage
from refittr.utils.uploads import BUCKET_RULES


main_bp = Blueprint('main', __name__)


VALUE_PROPS = (
    {
        'title': 'Intelligent Matching',
        'body': 'Fixtures are matched to homes by builder, model and room dimensions, not guesswork.',
    },
    {
        'title': 'Verified Schemas',
        'body': 'Every house schema is checked against real floor plans before it goes live.',
    },
    {
        'title': 'Waste Reduction',
        'body': 'Good kitchens, wardrobes and bathrooms find a second home instead of a skip.',
    },
    {
        'title': 'Cost Savings',
        'body': 'Buy quality second-hand fixtures for a fraction of the price of new.',
    },
    {
        'title': 'Perfect Fit',
        'body': 'Builders reuse the same layouts, so a fixture from one house fits its twin.',
    },
    {
        'title': 'Launching July 2026',
        'body': 'Join the mailing list to hear as soon as Refittr opens.',
    },
)


@main_bp.route('/')
def index():
    """Homepage"""
    return render_template('public/index.html', form=MailingListForm(), value_props=VALUE_PROPS)


@main_bp.route('/about')
def about():
    """About page"""
    return render_template('public/about.html')


@main_bp.route('/subscribe', methods=['POST'])
@limiter.limit(lambda: current_app.config.get('SIGNUP_RATE_LIMIT', '5 per minute'))
def subscribe():
    """Mailing-list signup from the homepage form"""

    form = MailingListForm()
    if not form.validate_on_submit():
        for messages in form.errors.values():
            for message in messages:
                flash(message, 'danger')
        return redirect(url_for('main.index', _anchor='signup'))

    try:
        subscribe_email(form.email.data)
    except InvalidEmailError as exc:
        flash(str(exc), 'danger')
    except AlreadySubscribedError as exc:
        flash(str(exc), 'info')
    except Exception as exc:
        current_app.logger.error('Mailing list signup failed: %s', exc, exc_info=True)
        flash('Failed to subscribe. Please try again.', 'danger')
    else:
        flash("Thanks! You're on the list. We'll notify you when we launch.", 'success')

    return redirect(url_for('main.index', _anchor='signup'))


@main_bp.route('/uploads/<bucket>/<path:filename>')
def uploaded_file(bucket, filename):
    """Serve files written by the local storage backend."""

    storage = get_storage()
    if bucket not in BUCKET_RULES or not isinstance(storage, LocalStorage):
        abort(404)

    try:
        path = storage.resolve(bucket, filename)
    except StorageError:
        abort(404)
    if not path.is_file():
        abort(404)

    return send_file(path, max_age=int(current_app.config.get('STORAGE_CACHE_CONTROL', 3600)))
