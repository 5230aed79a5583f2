"""Initial schema

Revision ID: 0000_initial
Revises:
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0000_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=False)

    op.create_table(
        'builders',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('logo_url', sa.String(length=600)),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_builders_name', 'builders', ['name'], unique=False)

    op.create_table(
        'house_schemas',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('builder_id', sa.String(length=36), sa.ForeignKey('builders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('model_name', sa.String(length=100), nullable=False),
        sa.Column('bedrooms', sa.Integer(), nullable=False),
        sa.Column('property_type', sa.String(length=20), nullable=False),
        sa.Column('year_from', sa.Integer()),
        sa.Column('year_to', sa.Integer()),

        # Documents (public storage URLs)
        sa.Column('floor_plan_url', sa.String(length=600)),
        sa.Column('exterior_photo_url', sa.String(length=600)),
        sa.Column('spec_sheet_url', sa.String(length=600)),

        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_house_schemas_builder_id', 'house_schemas', ['builder_id'], unique=False)
    op.create_index('ix_house_schemas_verified', 'house_schemas', ['verified'], unique=False)
    op.create_index('ix_house_schemas_created_at', 'house_schemas', ['created_at'], unique=False)
    op.create_index('ix_house_schemas_updated_at', 'house_schemas', ['updated_at'], unique=False)

    op.create_table(
        'rooms',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('house_schema_id', sa.String(length=36), sa.ForeignKey('house_schemas.id', ondelete='CASCADE'), nullable=False),
        sa.Column('room_name', sa.String(length=100), nullable=False),
        sa.Column('room_type', sa.String(length=30), nullable=False),
        sa.Column('floor_level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('length_cm', sa.Integer(), nullable=False),
        sa.Column('width_cm', sa.Integer(), nullable=False),
        sa.Column('height_cm', sa.Integer(), nullable=False, server_default='240'),
        sa.Column('floor_area_sqm', sa.Float()),
        sa.Column('dimensions_need_verification', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_reason', sa.Text()),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_rooms_house_schema_id', 'rooms', ['house_schema_id'], unique=False)
    op.create_index('ix_rooms_created_at', 'rooms', ['created_at'], unique=False)

    op.create_table(
        'developments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('postcode_area', sa.String(length=10)),
        sa.Column('development_type', sa.String(length=50)),
        sa.Column('builder_id', sa.String(length=36), sa.ForeignKey('builders.id', ondelete='SET NULL')),
        sa.Column('year_built', sa.Integer()),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_developments_name', 'developments', ['name'], unique=False)
    op.create_index('ix_developments_builder_id', 'developments', ['builder_id'], unique=False)

    op.create_table(
        'streets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('street_name', sa.String(length=150), nullable=False),
        sa.Column('postcode', sa.String(length=10)),
        sa.Column('postcode_area', sa.String(length=10), nullable=False),
        sa.Column('development_id', sa.String(length=36), sa.ForeignKey('developments.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_streets_street_name', 'streets', ['street_name'], unique=False)
    op.create_index('ix_streets_postcode_area', 'streets', ['postcode_area'], unique=False)
    op.create_index('ix_streets_development_id', 'streets', ['development_id'], unique=False)

    op.create_table(
        'house_schema_streets',
        sa.Column('house_schema_id', sa.String(length=36), sa.ForeignKey('house_schemas.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('street_id', sa.String(length=36), sa.ForeignKey('streets.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index('ix_house_schema_streets_street_id', 'house_schema_streets', ['street_id'], unique=False)

    op.create_table(
        'mailing_list',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('email', name='uq_mailing_list_email'),
    )


def downgrade():
    op.drop_table('mailing_list')
    op.drop_index('ix_house_schema_streets_street_id', table_name='house_schema_streets')
    op.drop_table('house_schema_streets')
    op.drop_index('ix_streets_development_id', table_name='streets')
    op.drop_index('ix_streets_postcode_area', table_name='streets')
    op.drop_index('ix_streets_street_name', table_name='streets')
    op.drop_table('streets')
    op.drop_index('ix_developments_builder_id', table_name='developments')
    op.drop_index('ix_developments_name', table_name='developments')
    op.drop_table('developments')
    op.drop_index('ix_rooms_created_at', table_name='rooms')
    op.drop_index('ix_rooms_house_schema_id', table_name='rooms')
    op.drop_table('rooms')
    op.drop_index('ix_house_schemas_updated_at', table_name='house_schemas')
    op.drop_index('ix_house_schemas_created_at', table_name='house_schemas')
    op.drop_index('ix_house_schemas_verified', table_name='house_schemas')
    op.drop_index('ix_house_schemas_builder_id', table_name='house_schemas')
    op.drop_table('house_schemas')
    op.drop_index('ix_builders_name', table_name='builders')
    op.drop_table('builders')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
