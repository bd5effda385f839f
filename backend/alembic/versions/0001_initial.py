from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("gender", sa.String(), nullable=False, server_default="Other"),
        sa.Column("level", sa.String(), nullable=False, server_default="Beginner"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(), nullable=False, server_default="Free"),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("shuttle_count", sa.Float(), nullable=False, server_default="0"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "court_session",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("game_use_ids", _json(), nullable=False),
        sa.Column("total_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(), nullable=False, server_default="THB"),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("present_player_ids", _json(), nullable=False),
        sa.Column("payment_status", _json(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "game_use",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("shuttle_session_id", sa.Integer(), nullable=False),
        sa.Column("shuttles_used", sa.Float(), nullable=False, server_default="1"),
        sa.Column("player_ids", _json(), nullable=False),
        sa.Column("player_gender_mix", sa.String(), nullable=False, server_default=""),
        sa.Column("avg_level", sa.Float(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("score1", sa.String(), nullable=True),
        sa.Column("score2", sa.String(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "setting",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("currency", sa.String(), nullable=False, server_default="THB"),
        sa.Column("court_fee", sa.Float(), nullable=False, server_default="70"),
        sa.Column("shuttle_price", sa.Float(), nullable=False, server_default="25"),
        sa.Column(
            "enable_auto_select", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
    )


def downgrade():
    op.drop_table("setting")
    op.drop_table("game_use")
    op.drop_table("court_session")
    op.drop_table("player")
