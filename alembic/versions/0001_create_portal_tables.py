"""create portal identity, session, enrollment, wallet and passkey tables"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "0001_create_portal_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "portal_users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("verified_at_ms", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("user_id", name="pk_portal_users"),
        sa.UniqueConstraint("email", name="uq_portal_users_email"),
    )

    op.create_table(
        "portal_sessions",
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("token_hash", sa.String(), nullable=False),
        sa.Column("expires_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("session_id", name="pk_portal_sessions"),
        sa.UniqueConstraint("token_hash", name="uq_portal_sessions_token_hash"),
    )
    op.create_index("ix_portal_sessions_user_id", "portal_sessions", ["user_id"])

    op.create_table(
        "portal_email_verifications",
        sa.Column("token_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("token_hash", sa.String(), nullable=False),
        sa.Column("expires_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("consumed_at_ms", sa.BigInteger(), nullable=True),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("token_id", name="pk_portal_email_verifications"),
        sa.UniqueConstraint("token_hash", name="uq_portal_email_verifications_token_hash"),
    )
    op.create_index(
        "ix_portal_email_verifications_user_id", "portal_email_verifications", ["user_id"]
    )

    op.create_table(
        "portal_oauth_links",
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("provider_subject", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("email_snapshot", sa.String(), nullable=True),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("provider", "provider_subject", name="pk_portal_oauth_links"),
    )
    op.create_index("ix_portal_oauth_links_user_id", "portal_oauth_links", ["user_id"])

    op.create_table(
        "portal_oauth_states",
        sa.Column("state_id", sa.String(), nullable=False),
        sa.Column("provider", sa.String(), nullable=False),
        sa.Column("redirect_uri", sa.String(), nullable=False),
        sa.Column("expires_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("state_id", name="pk_portal_oauth_states"),
    )

    op.create_table(
        "portal_node_enrollments",
        sa.Column("node_id", sa.String(), nullable=False),
        sa.Column("node_kind", sa.String(), nullable=False),
        sa.Column("owner_user_id", sa.String(), nullable=False),
        sa.Column("owner_email", sa.String(), nullable=False),
        sa.Column("registration_token_hash", sa.String(), nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("node_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_seen_ms", sa.BigInteger(), nullable=True),
        sa.Column("last_ip", sa.String(), nullable=True),
        sa.Column("last_country_code", sa.String(), nullable=True),
        sa.Column("last_vpn_detected", sa.Boolean(), nullable=True),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("updated_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("node_id", name="pk_portal_node_enrollments"),
    )
    op.create_index(
        "ix_portal_node_enrollments_owner_user_id", "portal_node_enrollments", ["owner_user_id"]
    )

    op.create_table(
        "portal_wallet_onboarding",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("account_id", sa.String(), nullable=False),
        sa.Column("network", sa.String(), nullable=False),
        sa.Column("seed_phrase_hash", sa.String(), nullable=False),
        sa.Column("encrypted_private_key_ref", sa.String(), nullable=False),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("acknowledged_at_ms", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("user_id", name="pk_portal_wallet_onboarding"),
    )

    op.create_table(
        "portal_passkey_credentials",
        sa.Column("credential_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("webauthn_user_id", sa.String(), nullable=False),
        sa.Column("public_key_b64url", sa.String(), nullable=False),
        sa.Column("counter", sa.BigInteger(), nullable=False),
        sa.Column("device_type", sa.String(), nullable=False),
        sa.Column("backed_up", sa.Boolean(), nullable=False),
        sa.Column("transports_json", sa.JSON().with_variant(JSONB(), "postgresql"), nullable=True),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("last_used_at_ms", sa.BigInteger(), nullable=True),
        sa.PrimaryKeyConstraint("credential_id", name="pk_portal_passkey_credentials"),
    )
    op.create_index(
        "ix_portal_passkey_credentials_user_id", "portal_passkey_credentials", ["user_id"]
    )

    op.create_table(
        "portal_passkey_challenges",
        sa.Column("challenge_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("challenge", sa.String(), nullable=False),
        sa.Column("flow_type", sa.String(), nullable=False),
        sa.Column("expires_at_ms", sa.BigInteger(), nullable=False),
        sa.Column("created_at_ms", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("challenge_id", name="pk_portal_passkey_challenges"),
    )


def downgrade() -> None:
    op.drop_table("portal_passkey_challenges")
    op.drop_index("ix_portal_passkey_credentials_user_id", table_name="portal_passkey_credentials")
    op.drop_table("portal_passkey_credentials")
    op.drop_table("portal_wallet_onboarding")
    op.drop_index("ix_portal_node_enrollments_owner_user_id", table_name="portal_node_enrollments")
    op.drop_table("portal_node_enrollments")
    op.drop_table("portal_oauth_states")
    op.drop_index("ix_portal_oauth_links_user_id", table_name="portal_oauth_links")
    op.drop_table("portal_oauth_links")
    op.drop_index(
        "ix_portal_email_verifications_user_id", table_name="portal_email_verifications"
    )
    op.drop_table("portal_email_verifications")
    op.drop_index("ix_portal_sessions_user_id", table_name="portal_sessions")
    op.drop_table("portal_sessions")
    op.drop_table("portal_users")
