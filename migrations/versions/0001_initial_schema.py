"""Initial schema: users, profiles, catalog, sessions, assessments, billing, support and notifications.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-16
"""
from typing import Sequence, Union

from alembic import op

from tutor_hub_backend.database.models import Base

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Created by later revisions
LATER_TABLES = {"homework", "homework_attachments", "materials", "material_subject", "course_material"}


def _tables():
    return [table for table in Base.metadata.sorted_tables if table.name not in LATER_TABLES]


def upgrade() -> None:
    """Creates the tables declared by the ORM models at this revision."""
    Base.metadata.create_all(bind=op.get_bind(), tables=_tables())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind(), tables=_tables())
