# pyright: reportAttributeAccessIssue=false, reportUndefinedVariable=false
"""Add oauth_states and linked_identities

Revision ID: 3f1c2a7d9b10
Revises:
Create Date: 2026-10-19 09:00:12.418305

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c2a7d9b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

oauth_provider = sa.Enum("TWITTER", name="oauthprovider")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "oauth_states",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("state", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("code_verifier", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("provider", oauth_provider, nullable=False),
        sa.Column("user_id", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("is_login", sa.Boolean(), nullable=False),
        sa.Column("origin", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_oauth_states_id"), "oauth_states", ["id"], unique=False)
    op.create_index(op.f("ix_oauth_states_state"), "oauth_states", ["state"], unique=True)
    op.create_index(op.f("ix_oauth_states_provider"), "oauth_states", ["provider"], unique=False)
    op.create_index(op.f("ix_oauth_states_user_id"), "oauth_states", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_oauth_states_expires_at"), "oauth_states", ["expires_at"], unique=False
    )

    op.create_table(
        "linked_identities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("user_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("provider", oauth_provider, nullable=False),
        sa.Column("provider_user_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("provider_username", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("profile_image_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("access_token", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("refresh_token", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "provider", name="uq_linked_identity_user_provider"),
    )
    op.create_index(op.f("ix_linked_identities_id"), "linked_identities", ["id"], unique=False)
    op.create_index(
        op.f("ix_linked_identities_user_id"), "linked_identities", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_linked_identities_provider_user_id"),
        "linked_identities",
        ["provider_user_id"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("linked_identities")
    op.drop_table("oauth_states")
    oauth_provider.drop(op.get_bind(), checkfirst=True)
