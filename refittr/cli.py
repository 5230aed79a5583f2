import os

import click
from flask.cli import with_appcontext

from refittr.extensions import db
from refittr.models import User, Builder, HouseSchema, Room, Street, Development


@click.command('create-admin')
@click.option('--email', prompt=True, help='Dashboard sign-in email')
@click.option(
    '--password',
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help='Password (will not be echoed)'
)
@with_appcontext
def create_admin_command(email: str, password: str) -> None:
    """Create (or update) a dashboard user."""

    email = (email or '').strip().lower()
    if not email:
        raise click.ClickException('Email is required.')
    if len(password or '') < 8:
        raise click.ClickException('Password must be at least 8 characters.')

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, is_active=True)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created dashboard user '{user.email}'.")
        return

    user.is_active = True
    user.set_password(password)
    db.session.commit()
    click.echo(f"Updated dashboard user '{user.email}'.")


@click.command('reset-admin-password')
@click.option('--email', default=None, help='User email (defaults to ADMIN_EMAIL env var)')
@with_appcontext
def reset_admin_password_command(email: str) -> None:
    """Reset a user's password from ADMIN_PASSWORD or a prompt; creates the user if missing."""

    email = (email or os.getenv('ADMIN_EMAIL') or '').strip().lower()
    if not email:
        raise click.ClickException('Pass --email or set ADMIN_EMAIL.')

    password = os.getenv('ADMIN_PASSWORD')
    if not password:
        password = click.prompt('New password', hide_input=True, confirmation_prompt=True)

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, is_active=True)
        db.session.add(user)
        created = True
    else:
        created = False

    user.set_password(password)
    user.is_active = True
    db.session.commit()

    if created:
        click.echo(f"Created dashboard user '{user.email}'.")
    else:
        click.echo(f"Password updated for '{user.email}'.")


@click.command('init-db')
@with_appcontext
def init_db_command() -> None:
    """Create any missing tables (development; production uses `flask db upgrade`)."""
    db.create_all()
    click.echo('Database tables are in place.')


@click.command('seed-demo')
@with_appcontext
def seed_demo_command() -> None:
    """Seed a demo builder, development, streets, schema and rooms."""

    if Builder.query.filter_by(name='Barratt Homes').first():
        click.echo('Demo data already present.')
        return

    builder = Builder(name='Barratt Homes', notes='Demo builder')
    development = Development(
        name='Meadow View',
        postcode_area='LS17',
        development_type='Residential Estate',
        builder=builder,
        year_built=2018,
    )
    streets = [
        Street(street_name='Meadow Close', postcode='LS17 8AB', postcode_area='LS17', development=development),
        Street(street_name='Harvest Way', postcode='LS17 8AD', postcode_area='LS17', development=development),
    ]
    schema = HouseSchema(
        builder=builder,
        model_name='The Hadley',
        bedrooms=3,
        property_type='Semi-detached',
        year_from=2016,
        year_to=2020,
        verified=True,
        streets=streets,
    )
    rooms = [
        Room(house_schema=schema, room_name='Kitchen', room_type='kitchen', floor_level=0, length_cm=380, width_cm=290),
        Room(house_schema=schema, room_name='Master Bedroom', room_type='bedroom', floor_level=1, length_cm=410, width_cm=330),
        Room(
            house_schema=schema,
            room_name='Bathroom',
            room_type='bathroom',
            floor_level=1,
            length_cm=210,
            width_cm=190,
            dimensions_need_verification=True,
            verification_reason='Measured from brochure plan',
        ),
    ]
    for room in rooms:
        room.recalculate_floor_area()

    db.session.add_all([builder, development, schema, *streets, *rooms])
    db.session.commit()
    click.echo(f"Seeded demo data: {builder.name} / {schema.model_name} with {len(rooms)} rooms.")
