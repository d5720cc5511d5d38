from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "2025_06_10_create_marketplace_tables"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "integra_properties",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("location", sa.Text, nullable=False),
        sa.Column("price", sa.Numeric(20, 6), nullable=False),
        sa.Column("total_shares", sa.Integer, nullable=False),
        sa.Column("available_shares", sa.Integer, nullable=False),
        sa.Column("image", sa.Text),
        sa.Column("images", JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("tags", JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("roi", sa.Numeric(8, 2), server_default="0"),
        sa.Column("property_type", sa.String(32)),
        sa.Column("owner_address", sa.String(42), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("monthly_income", sa.Numeric(20, 6)),
        sa.Column("total_area", sa.Float),
        sa.Column("bedrooms", sa.Integer),
        sa.Column("bathrooms", sa.Integer),
        sa.Column("year_built", sa.Integer),
        sa.Column("amenities", JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("coordinates", JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("available_shares >= 0", name="integra_properties_available_shares_check"),
    )
    op.create_index("integra_properties_owner_idx", "integra_properties", ["owner_address"])

    op.create_table(
        "integra_users",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("wallet_address", sa.String(42), nullable=False, unique=True),
        sa.Column("email", sa.Text),
        sa.Column("display_name", sa.Text),
        sa.Column("status", sa.String(16), server_default="pending"),
        sa.Column("role", sa.String(16), server_default="user"),
        sa.Column("total_investments", sa.Numeric(20, 6), server_default="0"),
        sa.Column("properties_owned", sa.Integer, server_default="0"),
        sa.Column("join_date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_active", sa.DateTime(timezone=True)),
        sa.Column("kyc_status", sa.String(16), server_default="pending"),
        sa.Column("profile_image", sa.Text),
        sa.Column("bio", sa.Text),
        sa.Column("location", sa.Text),
        sa.Column("investment_preferences", JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("social_links", JSONB, server_default=sa.text("'{}'::jsonb")),
        sa.Column("notifications", JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "integra_property_ownerships",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("user_wallet_address", sa.String(42), nullable=False),
        sa.Column(
            "property_id",
            sa.Text,
            sa.ForeignKey("integra_properties.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("shares_owned", sa.Integer, nullable=False),
        sa.Column("purchase_price", sa.Numeric(20, 2), nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_wallet_address", "property_id", name="integra_ownership_wallet_property_key"),
    )

    # available_shares follows the change in shares_owned; the API never writes it on investment.
    op.execute("""
        CREATE OR REPLACE FUNCTION integra_apply_share_purchase() RETURNS trigger AS $$
        DECLARE
            delta integer;
        BEGIN
            IF TG_OP = 'INSERT' THEN
                delta := NEW.shares_owned;
            ELSE
                delta := NEW.shares_owned - OLD.shares_owned;
            END IF;
            IF delta <> 0 THEN
                UPDATE integra_properties
                   SET available_shares = available_shares - delta,
                       updated_at = now()
                 WHERE id = NEW.property_id;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER integra_ownership_shares_trigger
        AFTER INSERT OR UPDATE OF shares_owned ON integra_property_ownerships
        FOR EACH ROW EXECUTE FUNCTION integra_apply_share_purchase();
    """)

def downgrade():
    op.execute("DROP TRIGGER IF EXISTS integra_ownership_shares_trigger ON integra_property_ownerships")
    op.execute("DROP FUNCTION IF EXISTS integra_apply_share_purchase()")
    op.drop_table("integra_property_ownerships")
    op.drop_table("integra_users")
    op.drop_index("integra_properties_owner_idx", "integra_properties")
    op.drop_table("integra_properties")
