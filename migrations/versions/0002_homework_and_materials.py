"""Homework with attachments, and teaching materials linked to subjects and courses.

Revision ID: 0002_homework_and_materials
Revises: 0001_initial_schema
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002_homework_and_materials"
down_revision: Union[str, None] = "0001_initial_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MATERIAL_TYPES = (
    "document", "pdf", "spreadsheet", "presentation", "video",
    "audio", "image", "link", "archive", "other",
)


def upgrade() -> None:
    op.create_table(
        "homework",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("children_id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.Uuid(), nullable=True),
        sa.Column("teacher_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_score", sa.Integer(), nullable=True),
        sa.Column("achieved_score", sa.Integer(), nullable=True),
        sa.Column("teacher_feedback", sa.Text(), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["children_id"], ["children.id"], ondelete="CASCADE", name="homework_children_id_fkey"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="SET NULL", name="homework_subject_id_fkey"),
        sa.ForeignKeyConstraint(["teacher_id"], ["users.id"], ondelete="SET NULL", name="homework_teacher_id_fkey"),
        sa.PrimaryKeyConstraint("id", name="homework_pkey"),
        sa.CheckConstraint(
            "achieved_score IS NULL OR max_score IS NULL OR achieved_score <= max_score",
            name="homework_score_check",
        ),
    )
    op.create_index("idx_homework_child_due", "homework", ["children_id", "due_date"])

    op.create_table(
        "homework_attachments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("homework_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(length=100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["homework_id"], ["homework.id"], ondelete="CASCADE", name="homework_attachments_homework_id_fkey"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE", name="homework_attachments_user_id_fkey"),
        sa.PrimaryKeyConstraint("id", name="homework_attachments_pkey"),
    )

    op.create_table(
        "materials",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("teacher_profile_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "type",
            sa.Enum(*MATERIAL_TYPES, name="material_type", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column("file_path", sa.Text(), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_type", sa.String(length=100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("external_url", sa.String(length=500), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("is_featured", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["teacher_profile_id"], ["teacher_profiles.id"], ondelete="CASCADE", name="materials_teacher_profile_id_fkey"
        ),
        sa.PrimaryKeyConstraint("id", name="materials_pkey"),
        sa.CheckConstraint(
            "(type = 'link' AND external_url IS NOT NULL) OR (type <> 'link' AND file_path IS NOT NULL)",
            name="materials_source_check",
        ),
    )
    op.create_index("idx_materials_teacher_profile_id", "materials", ["teacher_profile_id"])

    op.create_table(
        "material_subject",
        sa.Column("material_id", sa.Uuid(), sa.ForeignKey("materials.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("subject_id", sa.Uuid(), sa.ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "course_material",
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("material_id", sa.Uuid(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE", name="course_material_course_id_fkey"),
        sa.ForeignKeyConstraint(["material_id"], ["materials.id"], ondelete="CASCADE", name="course_material_material_id_fkey"),
        sa.PrimaryKeyConstraint("course_id", "material_id", name="course_material_pkey"),
    )


def downgrade() -> None:
    op.drop_table("course_material")
    op.drop_table("material_subject")
    op.drop_index("idx_materials_teacher_profile_id", table_name="materials")
    op.drop_table("materials")
    op.drop_table("homework_attachments")
    op.drop_index("idx_homework_child_due", table_name="homework")
    op.drop_table("homework")
