"""Launch mailing-list signups from the public site and the API."""

from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError

from refittr.extensions import db
from refittr.models import MailingListSubscriber


EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class InvalidEmailError(ValueError):
    pass


class AlreadySubscribedError(Exception):
    pass


def normalize_email(email) -> str:
    return str(email or '').strip().lower()


def subscribe_email(email) -> MailingListSubscriber:
    """Add ``email`` to the mailing list.

    Raises InvalidEmailError for malformed input and AlreadySubscribedError
    when the normalised address is already stored. Other database errors
    propagate after the session is rolled back.
    """

    normalized = normalize_email(email)
    if not normalized:
        raise InvalidEmailError('Email is required')
    if not EMAIL_RE.match(normalized):
        raise InvalidEmailError('Invalid email address')

    subscriber = MailingListSubscriber(email=normalized)
    try:
        db.session.add(subscriber)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise AlreadySubscribedError('This email is already subscribed') from exc
    except Exception:
        db.session.rollback()
        raise
    return subscriber
