"""
Authentication Blueprint - Dashboard Sign-in

Email/password sign-in against the users table. Dashboard pages redirect to
the login form; API routes answer 401 JSON instead.
"""

from datetime import datetime
from urllib.parse import urlparse

from flask import Blueprint, render_template, redirect, url_for, flash, request, current_app, jsonify, session
from flask_login import login_user, logout_user, current_user

from refittr.extensions import db, limiter, login_manager
from refittr.forms import LoginForm
from refittr.models import User


auth_bp = Blueprint('auth', __name__)


@login_manager.unauthorized_handler
def unauthorized():
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Authentication required'}), 401
    flash(login_manager.login_message, login_manager.login_message_category)
    return redirect(url_for('auth.login', next=request.full_path if request.query_string else request.path))


@auth_bp.route('/login', methods=['GET', 'POST'])
@limiter.limit(lambda: current_app.config.get('LOGIN_RATE_LIMIT', '10 per minute'), methods=['POST'])
def login():
    """Dashboard sign-in"""

    if current_user.is_authenticated:
        return redirect(url_for('dashboard.home'))

    form = LoginForm()

    if form.validate_on_submit():
        email = (form.email.data or '').strip().lower()

        try:
            user = User.query.filter(db.func.lower(User.email) == email).first()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Login query failed: %s', exc, exc_info=True)
            flash('Database temporarily unavailable. Please try again shortly.', 'danger')
            return render_template('auth/login.html', form=form)

        if not user or not user.check_password(form.password.data):
            flash('Invalid email or password.', 'danger')
            return render_template('auth/login.html', form=form)

        if not user.is_active:
            flash('This account is disabled.', 'danger')
            return render_template('auth/login.html', form=form)

        try:
            login_user(user, remember=bool(form.remember_me.data))
            session.permanent = True
            user.last_login = datetime.utcnow()
            db.session.commit()
        except Exception as exc:
            db.session.rollback()
            current_app.logger.error('Failed to persist login for %s: %s', user.email, exc, exc_info=True)
            flash('We could not complete the login. Please try again.', 'danger')
            return render_template('auth/login.html', form=form)

        current_app.logger.info('User %s signed in', user.email)
        next_page = request.args.get('next')
        if not next_page or urlparse(next_page).netloc or not next_page.startswith('/'):
            next_page = url_for('dashboard.home')
        return redirect(next_page)

    return render_template('auth/login.html', form=form)


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    """Sign out and clear the session"""

    logout_user()
    session.clear()
    flash('You have been signed out.', 'info')
    return redirect(url_for('auth.login'))
