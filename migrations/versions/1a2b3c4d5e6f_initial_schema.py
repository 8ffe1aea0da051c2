"""initial_schema

Creates the users, students, lessons, progress and AI lesson-plan tables
from tutorhub/db/schema.sql.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 09:12:40.318842

"""
from typing import Sequence, Union
from pathlib import Path

from alembic import op
import sqlalchemy as sa


revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the full schema.

    schema.sql uses CREATE ... IF NOT EXISTS, so it is safe to run
    against an existing database.
    """
    schema_path = Path(__file__).resolve().parents[2] / "tutorhub" / "db" / "schema.sql"
    schema_sql = schema_path.read_text()
    # op.execute runs one statement at a time
    for statement in schema_sql.split(";"):
        lines = [
            line for line in statement.splitlines()
            if line.strip() and not line.strip().startswith("--")
        ]
        cleaned = "\n".join(lines).strip()
        if cleaned:
            op.execute(sa.text(cleaned))


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    tables = [
        "ai_lesson_plans",
        "ai_generation_history",
        "progress",
        "lessons",
        "students",
        "users",
    ]
    for table in tables:
        op.drop_table(table)
