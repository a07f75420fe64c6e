"""baseline: create all tables

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _entity_columns():
    """Columns every generated entity table shares."""
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("world_seed_id", sa.Integer(), sa.ForeignKey("world_seeds.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tier", sa.String(20), nullable=False, server_default="supporting"),
        sa.Column("subtype", sa.String(100), nullable=True),
        sa.Column("player_override", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    ]


def _discovery_columns():
    return [
        sa.Column("is_discovered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discovered_at", sa.DateTime(), nullable=True),
        sa.Column("exploration_level", sa.String(30), nullable=False, server_default="unknown"),
    ]


def upgrade() -> None:
    # ─── Source tables ───────────────────────────────────────────────

    op.create_table(
        "campaigns",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("campaign_id", sa.Integer(), sa.ForeignKey("campaigns.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("race", sa.String(100), nullable=True),
        sa.Column("character_class", sa.String(100), nullable=True),
        sa.Column("backstory", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    # ─── World seed + job state ──────────────────────────────────────

    op.create_table(
        "world_seeds",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("campaign_id", sa.Integer(), sa.ForeignKey("campaigns.id"), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("tone", sa.String(20), nullable=True),
        sa.Column("scale", sa.String(20), nullable=True),
        sa.Column("themes", sa.JSON(), nullable=True),
        sa.Column("core_tensions", sa.JSON(), nullable=True),
        sa.Column("world_sketch", sa.Text(), nullable=True),
        sa.Column("cosmology", sa.JSON(), nullable=True),
        sa.Column("world_history", sa.JSON(), nullable=True),
        sa.Column("generation_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("current_phase", sa.String(30), nullable=True),
        sa.Column("generation_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("coherence_score", sa.Integer(), nullable=True),
        sa.Column("coherence_report", sa.JSON(), nullable=True),
    )
    op.create_index("ix_world_seeds_generation_status", "world_seeds", ["generation_status"])
    op.create_index("ix_world_seeds_created_at", "world_seeds", ["created_at"])

    # ─── Generated entities ──────────────────────────────────────────

    op.create_table(
        "deities",
        *_entity_columns(),
        *_discovery_columns(),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("disposition", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("symbol", sa.String(255), nullable=True),
    )

    op.create_table(
        "factions",
        *_entity_columns(),
        *_discovery_columns(),
        sa.Column("public_image", sa.Text(), nullable=True),
        sa.Column("secret_nature", sa.Text(), nullable=True),
        sa.Column("philosophy", sa.Text(), nullable=True),
        sa.Column("goals", sa.JSON(), nullable=True),
        sa.Column("methods", sa.JSON(), nullable=True),
        sa.Column("resources", sa.JSON(), nullable=True),
        sa.Column("symbol", sa.String(255), nullable=True),
        sa.Column("motto", sa.String(255), nullable=True),
        sa.Column("influence", sa.Integer(), nullable=True),
        sa.Column("headquarters", sa.String(255), nullable=True),
        sa.Column("tension_stances", sa.JSON(), nullable=True),
        sa.Column("allies", sa.JSON(), nullable=True),
        sa.Column("enemies", sa.JSON(), nullable=True),
        sa.Column("patron_deity", sa.String(255), nullable=True),
    )

    op.create_table(
        "npcs",
        *_entity_columns(),
        *_discovery_columns(),
        sa.Column("faction_id", sa.Integer(), sa.ForeignKey("factions.id"), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("race", sa.String(100), nullable=True),
        sa.Column("appearance", sa.Text(), nullable=True),
        sa.Column("personality", sa.JSON(), nullable=True),
        sa.Column("speaking_style", sa.Text(), nullable=True),
        sa.Column("public_goal", sa.Text(), nullable=True),
        sa.Column("private_goal", sa.Text(), nullable=True),
        sa.Column("secret_goal", sa.Text(), nullable=True),
        sa.Column("hidden_identity", sa.Text(), nullable=True),
        sa.Column("tension_roles", sa.JSON(), nullable=True),
        sa.Column("primary_location", sa.String(255), nullable=True),
        sa.Column("relationships", sa.JSON(), nullable=True),
    )

    op.create_table(
        "locations",
        *_entity_columns(),
        *_discovery_columns(),
        sa.Column("controlling_faction_id", sa.Integer(), sa.ForeignKey("factions.id"), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("atmosphere", sa.Text(), nullable=True),
        sa.Column("sensory_details", sa.JSON(), nullable=True),
        sa.Column("region", sa.String(255), nullable=True),
        sa.Column("terrain", sa.String(255), nullable=True),
        sa.Column("climate", sa.String(255), nullable=True),
        sa.Column("population", sa.String(255), nullable=True),
        sa.Column("connected_to", sa.JSON(), nullable=True),
        sa.Column("hidden_secrets", sa.JSON(), nullable=True),
    )

    op.create_table(
        "conflicts",
        *_entity_columns(),
        *_discovery_columns(),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("root_tension", sa.String(255), nullable=True),
        sa.Column("participants", sa.JSON(), nullable=True),
        sa.Column("stakes", sa.Text(), nullable=True),
        sa.Column("public_narrative", sa.Text(), nullable=True),
        sa.Column("true_nature", sa.Text(), nullable=True),
        sa.Column("current_state", sa.String(100), nullable=True),
        sa.Column("possible_outcomes", sa.JSON(), nullable=True),
    )

    op.create_table(
        "secrets",
        *_entity_columns(),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("hints", sa.JSON(), nullable=True),
        sa.Column("known_by", sa.JSON(), nullable=True),
        sa.Column("related_factions", sa.JSON(), nullable=True),
        sa.Column("related_locations", sa.JSON(), nullable=True),
        sa.Column("discovery_conditions", sa.Text(), nullable=True),
        sa.Column("reveal_impact", sa.Text(), nullable=True),
        sa.Column("is_revealed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revealed_at", sa.DateTime(), nullable=True),
    )

    for table in ("deities", "factions", "npcs", "locations", "conflicts", "secrets"):
        op.create_index(f"ix_{table}_world_seed_id", table, ["world_seed_id"])

    # ─── Graph + audit trail ─────────────────────────────────────────

    op.create_table(
        "relationships",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("world_seed_id", sa.Integer(), sa.ForeignKey("world_seeds.id"), nullable=False),
        sa.Column("source_type", sa.String(20), nullable=False),
        sa.Column("source_id", sa.Integer(), nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("relationship_type", sa.String(30), nullable=False),
        sa.Column("strength", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_discovered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discovered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_rel_source", "relationships", ["world_seed_id", "source_type", "source_id"])
    op.create_index("idx_rel_target", "relationships", ["world_seed_id", "target_type", "target_id"])

    op.create_table(
        "generation_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("world_seed_id", sa.Integer(), sa.ForeignKey("world_seeds.id"), nullable=False),
        sa.Column("phase", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=True),
        sa.Column("response", sa.Text(), nullable=True),
        sa.Column("parsed_data", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_generation_logs_world_seed_id", "generation_logs", ["world_seed_id"])


def downgrade() -> None:
    op.drop_table("generation_logs")
    op.drop_table("relationships")
    op.drop_table("secrets")
    op.drop_table("conflicts")
    op.drop_table("locations")
    op.drop_table("npcs")
    op.drop_table("factions")
    op.drop_table("deities")
    op.drop_table("world_seeds")
    op.drop_table("characters")
    op.drop_table("campaigns")
