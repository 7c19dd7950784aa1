"""001 – Initial schema: users, leave_requests, audit_trail, enums.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000+02:00
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["user", "admin"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    # btree_gist: equality on user_id inside the overlap exclusion constraint
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            email             VARCHAR(255) NOT NULL UNIQUE,
            first_name        VARCHAR(100),
            last_name         VARCHAR(100),
            role              user_role NOT NULL DEFAULT 'user',
            position          VARCHAR(150),
            conges_enabled    BOOLEAN NOT NULL DEFAULT TRUE,
            conges_total_days INTEGER NOT NULL DEFAULT 0
                              CHECK (conges_total_days BETWEEN 0 AND 3650),
            leave_version     INTEGER NOT NULL DEFAULT 0,
            arrival_date      DATE,
            departure_date    DATE,
            is_active         BOOLEAN NOT NULL DEFAULT TRUE,
            created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_users_role ON users(role) WHERE is_active")

    # ── 2. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            start_date   DATE NOT NULL,
            end_date     DATE NOT NULL,
            reason       VARCHAR(500),
            status       leave_status NOT NULL DEFAULT 'pending',
            approver_id  UUID REFERENCES users(id) ON DELETE SET NULL,
            decision_at  TIMESTAMPTZ,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_request_range CHECK (start_date <= end_date),
            CONSTRAINT ex_leave_requests_no_overlap EXCLUDE USING gist (
                user_id WITH =,
                daterange(start_date, end_date, '[]') WITH &&
            ) WHERE (status IN ('pending', 'approved'))
        )
    """)
    op.execute(
        "CREATE INDEX ix_leave_requests_user_status "
        "ON leave_requests(user_id, status)"
    )
    op.execute(
        "CREATE INDEX ix_leave_requests_dates "
        "ON leave_requests(start_date, end_date)"
    )

    # ── 3. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id     UUID REFERENCES users(id),
            action       VARCHAR(50) NOT NULL,
            entity_type  VARCHAR(50) NOT NULL,
            entity_id    UUID NOT NULL,
            old_values   JSONB,
            new_values   JSONB,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute(
        "CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)"
    )
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for t in ["audit_trail", "leave_requests", "users"]:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "btree_gist"')
    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
