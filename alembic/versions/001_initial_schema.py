"""001 – Initial schema: leave tables, indexes, enums, seed leave types.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["employee", "manager", "admin"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    ("notification_type", ["info", "action_required", "approval", "alert"]),
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

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code        VARCHAR(20)  NOT NULL UNIQUE,
            full_name            VARCHAR(200) NOT NULL,
            email                VARCHAR(255) NOT NULL UNIQUE,
            role                 user_role NOT NULL DEFAULT 'employee',
            reporting_manager_id UUID REFERENCES employees(id),
            is_active            BOOLEAN DEFAULT TRUE,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_employees_manager ON employees(reporting_manager_id)")

    # ── 2. leave_types ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_types (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            code                VARCHAR(10)  NOT NULL UNIQUE,
            name                VARCHAR(100) NOT NULL,
            description         TEXT,
            is_paid             BOOLEAN DEFAULT TRUE,
            max_days_per_year   INTEGER NOT NULL,
            advance_notice_days INTEGER DEFAULT 0,
            requires_attachment BOOLEAN DEFAULT FALSE,
            is_active           BOOLEAN DEFAULT TRUE,
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_type_max_days CHECK (max_days_per_year >= 1),
            CONSTRAINT ck_leave_type_notice   CHECK (advance_notice_days >= 0)
        )
    """)

    # ── 3. leave_balances ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_balances (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id   UUID NOT NULL REFERENCES employees(id),
            leave_type_id UUID NOT NULL REFERENCES leave_types(id),
            year          INTEGER NOT NULL,
            consumed_days INTEGER NOT NULL DEFAULT 0,
            updated_at    TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_balance UNIQUE (employee_id, leave_type_id, year),
            CONSTRAINT ck_leave_balance_non_negative CHECK (consumed_days >= 0)
        )
    """)

    # ── 4. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id),
            leave_type_id    UUID NOT NULL REFERENCES leave_types(id),
            start_date       DATE NOT NULL,
            end_date         DATE NOT NULL,
            total_days       INTEGER NOT NULL,
            reason           TEXT NOT NULL,
            attachment_ref   VARCHAR(500),
            status           leave_status NOT NULL DEFAULT 'pending',
            rejection_reason TEXT,
            reviewed_by      UUID REFERENCES employees(id),
            reviewed_at      TIMESTAMPTZ,
            reviewer_remarks TEXT,
            cancelled_at     TIMESTAMPTZ,
            submission_key   VARCHAR(100),
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_leave_request_range CHECK (start_date <= end_date),
            CONSTRAINT ck_leave_request_rejection_reason
                CHECK ((status = 'rejected') = (rejection_reason IS NOT NULL)),
            CONSTRAINT uq_leave_request_submission_key
                UNIQUE (employee_id, submission_key)
        )
    """)
    op.execute("""
        CREATE INDEX idx_leave_req_emp_dates
            ON leave_requests(employee_id, start_date, end_date)
    """)
    op.execute("CREATE INDEX idx_leave_req_status ON leave_requests(status)")

    # ── 5. notifications ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE notifications (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            recipient_id UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            type         notification_type DEFAULT 'info',
            kind         VARCHAR(50)  NOT NULL,
            title        VARCHAR(200) NOT NULL,
            message      TEXT NOT NULL,
            action_url   VARCHAR(500),
            entity_type  VARCHAR(50),
            entity_id    UUID,
            is_read      BOOLEAN DEFAULT FALSE,
            created_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX idx_notif_recipient_read
            ON notifications(recipient_id, is_read)
    """)

    # ── 6. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID REFERENCES employees(id),
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX ix_audit_trail_entity
            ON audit_trail(entity_type, entity_id)
    """)
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")

    # ══════════════════════════════════════════════════════════════════════
    # SEED DATA
    # ══════════════════════════════════════════════════════════════════════

    # Leave types
    op.execute("""
        INSERT INTO leave_types
            (code, name, description, is_paid, max_days_per_year,
             advance_notice_days, requires_attachment)
        VALUES
            ('CL', 'Casual Leave',    'For personal/urgent work',               TRUE,  12, 0, FALSE),
            ('PL', 'Privilege Leave', 'Earned/privilege leave',                 TRUE,  15, 7, FALSE),
            ('SL', 'Sick Leave',      'Medical leave; certificate required',    TRUE,  12, 0, TRUE),
            ('ML', 'Maternity Leave', 'Maternity leave as per policy',          TRUE, 182, 30, TRUE),
            ('UL', 'Unpaid Leave',    'Leave without pay',                      FALSE, 30, 0, FALSE)
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "notifications",
        "leave_requests",
        "leave_balances",
        "leave_types",
        "employees",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop enum types
    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
