from alembic import op

# revision identifiers, used by Alembic.
revision = '2025_06_18_user_investment_totals'
down_revision = '2025_06_10_create_marketplace_tables'
branch_labels = None
depends_on = None


def upgrade():
    # Keep integra_users.total_investments / properties_owned in step with the ownership rows.
    op.execute("""
        CREATE OR REPLACE FUNCTION integra_refresh_user_totals() RETURNS trigger AS $$
        BEGIN
            UPDATE integra_users u
               SET total_investments = t.invested,
                   properties_owned = t.owned,
                   updated_at = now()
              FROM (
                    SELECT COALESCE(SUM(purchase_price), 0) AS invested,
                           COUNT(*) FILTER (WHERE shares_owned > 0) AS owned
                      FROM integra_property_ownerships
                     WHERE user_wallet_address = NEW.user_wallet_address
                   ) t
             WHERE u.wallet_address = NEW.user_wallet_address;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER integra_ownership_user_totals_trigger
        AFTER INSERT OR UPDATE ON integra_property_ownerships
        FOR EACH ROW EXECUTE FUNCTION integra_refresh_user_totals();
    """)


def downgrade():
    op.execute("DROP TRIGGER IF EXISTS integra_ownership_user_totals_trigger ON integra_property_ownerships")
    op.execute("DROP FUNCTION IF EXISTS integra_refresh_user_totals()")
