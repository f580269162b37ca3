"""contract schema and default catalog

Revision ID: 3b7e1c0d9a21
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op
from musicschool.models.catalog import (
    DEFAULT_CATEGORIES,
    DEFAULT_DISCOUNTS,
    DEFAULT_VARIANTS,
)

# revision identifiers, used by Alembic.
revision: str = "3b7e1c0d9a21"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def upgrade() -> None:
    op.create_table(
        "teachers",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("profile_id", sa.String(255), nullable=True, unique=True),
    )
    op.create_table(
        "students",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "teacher_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("teachers.id"),
            nullable=True,
        ),
    )

    categories = op.create_table(
        "contract_categories",
        _uuid_pk(),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
    )
    variants = op.create_table(
        "contract_variants",
        _uuid_pk(),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contract_categories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("total_lessons", sa.Integer, nullable=True),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("one_time_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("duration_months", sa.Integer, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    discounts = op.create_table(
        "contract_discounts",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "contracts",
        _uuid_pk(),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("students.id"),
            nullable=False,
        ),
        sa.Column(
            "teacher_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("teachers.id"),
            nullable=True,
        ),
        sa.Column(
            "contract_variant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contract_variants.id"),
            nullable=True,
        ),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        sa.Column("total_lessons", sa.Integer, nullable=False),
        sa.Column("attendance_count", sa.String(32), nullable=False, server_default="0/0"),
        sa.Column(
            "attendance_dates",
            postgresql.ARRAY(sa.Date),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "discount_ids",
            postgresql.ARRAY(postgresql.UUID(as_uuid=True)),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("custom_discount_percent", sa.Numeric(5, 2), nullable=True),
        sa.Column("final_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("payment_type", sa.String(16), nullable=True),
        sa.Column("created_at", sa.Integer, nullable=False),
        sa.Column("updated_at", sa.Integer, nullable=False),
        sa.Column("completed_at", sa.Integer, nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.CheckConstraint(
            "type IN ('ten_class_card', 'half_year', 'monthly', 'workshop')",
            name="contracts_type_check",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'completed')", name="contracts_status_check"
        ),
    )
    op.create_index("idx_contracts_status", "contracts", ["status"])

    op.create_table(
        "lessons",
        _uuid_pk(),
        sa.Column(
            "contract_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contracts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("lesson_number", sa.Integer, nullable=False),
        sa.Column("date", sa.Date, nullable=True),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("contract_id", "lesson_number", name="unique_contract_lesson"),
        sa.CheckConstraint("lesson_number >= 1", name="lessons_lesson_number_check"),
    )
    op.create_index("idx_lessons_contract_id", "lessons", ["contract_id"])

    op.create_table(
        "notifications",
        _uuid_pk(),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column(
            "contract_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contracts.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("students.id"),
            nullable=True,
        ),
        sa.Column(
            "teacher_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("teachers.id"),
            nullable=True,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.Integer, nullable=False),
        sa.Column("updated_at", sa.Integer, nullable=False),
    )
    op.create_index(
        "idx_notifications_contract_type", "notifications", ["contract_id", "type"]
    )

    op.create_table(
        "contract_operation_log",
        _uuid_pk(),
        sa.Column(
            "contract_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("contracts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("operation_type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("details", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.Integer, nullable=False),
        sa.Column("created_by", sa.String(255), nullable=True),
    )

    op.bulk_insert(
        categories,
        [{"id": c.id, "name": c.name, "display_name": c.display_name} for c in DEFAULT_CATEGORIES],
    )
    op.bulk_insert(
        variants,
        [
            {
                "id": v.id,
                "category_id": v.category_id,
                "name": v.name,
                "total_lessons": v.total_lessons,
                "monthly_price": v.monthly_price,
                "one_time_price": v.one_time_price,
                "duration_months": v.duration_months,
                "is_active": v.is_active,
            }
            for v in DEFAULT_VARIANTS
        ],
    )
    op.bulk_insert(
        discounts,
        [
            {
                "id": d.id,
                "name": d.name,
                "discount_percent": d.discount_percent,
                "is_active": d.is_active,
            }
            for d in DEFAULT_DISCOUNTS
        ],
    )


def downgrade() -> None:
    op.drop_table("contract_operation_log")
    op.drop_index("idx_notifications_contract_type", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_lessons_contract_id", table_name="lessons")
    op.drop_table("lessons")
    op.drop_index("idx_contracts_status", table_name="contracts")
    op.drop_table("contracts")
    op.drop_table("contract_discounts")
    op.drop_table("contract_variants")
    op.drop_table("contract_categories")
    op.drop_table("students")
    op.drop_table("teachers")
