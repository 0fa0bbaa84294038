"""Initial schema for deployments, metric snapshots, milestones, and resolutions.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Tracked deployments
    op.create_table(
        "deployments",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("project", sa.String(128), nullable=False),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("tweet_text", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("contract_address", sa.String(42), nullable=True),
        sa.Column("category", sa.String(32), nullable=True),
        sa.Column("defillama_slug", sa.String(128), nullable=True),
        sa.Column("contract_verified", sa.Boolean(), nullable=False),
        sa.Column("inserted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_deployments_contract", "deployments", ["contract_address"])
    op.create_index("idx_deployments_created", "deployments", ["created_at"])

    # Per-project snapshots (append-only)
    op.create_table(
        "project_metrics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("deployment_id", sa.String(64), nullable=False),
        sa.Column("tvl_usd", sa.Float(), nullable=True),
        sa.Column("tx_count", sa.BigInteger(), nullable=True),
        sa.Column("tx_count_delta", sa.BigInteger(), nullable=True),
        sa.Column("balance_wei", sa.String(80), nullable=True),
        sa.Column("balance_eth", sa.Float(), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("classification", sa.String(16), nullable=True),
        sa.Column("snapshot_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["deployment_id"], ["deployments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_project_metrics_deployment_snapshot",
        "project_metrics",
        ["deployment_id", "snapshot_at"],
    )
    op.create_index("idx_project_metrics_snapshot", "project_metrics", ["snapshot_at"])

    # Chain-wide snapshots (append-only)
    op.create_table(
        "ecosystem_metrics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("total_tvl", sa.Float(), nullable=True),
        sa.Column("total_addresses", sa.BigInteger(), nullable=True),
        sa.Column("total_txs", sa.BigInteger(), nullable=True),
        sa.Column("txs_24h", sa.BigInteger(), nullable=True),
        sa.Column("avg_gas_price", sa.String(64), nullable=True),
        sa.Column("avg_block_time", sa.Float(), nullable=True),
        sa.Column("deployment_count", sa.Integer(), nullable=True),
        sa.Column("snapshot_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_ecosystem_metrics_snapshot", "ecosystem_metrics", ["snapshot_at"])

    # Milestones
    op.create_table(
        "milestones",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("subject", sa.String(128), nullable=True),
        sa.Column("metric", sa.String(32), nullable=False),
        sa.Column("threshold", sa.Float(), nullable=False),
        sa.Column("actual_value", sa.Float(), nullable=False),
        sa.Column("alerted", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_milestones_alerted", "milestones", ["alerted"])
    op.create_index(
        "idx_milestones_tuple", "milestones", ["type", "metric", "threshold", "subject"]
    )

    # Address resolution audit log
    op.create_table(
        "address_resolutions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("deployment_id", sa.String(64), nullable=False),
        sa.Column("method", sa.String(32), nullable=False),
        sa.Column("query", sa.String(256), nullable=True),
        sa.Column("result_address", sa.String(42), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempted_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["deployment_id"], ["deployments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_address_resolutions_deployment", "address_resolutions", ["deployment_id"]
    )


def downgrade() -> None:
    op.drop_index("idx_address_resolutions_deployment", table_name="address_resolutions")
    op.drop_table("address_resolutions")
    op.drop_index("idx_milestones_tuple", table_name="milestones")
    op.drop_index("idx_milestones_alerted", table_name="milestones")
    op.drop_table("milestones")
    op.drop_index("idx_ecosystem_metrics_snapshot", table_name="ecosystem_metrics")
    op.drop_table("ecosystem_metrics")
    op.drop_index("idx_project_metrics_snapshot", table_name="project_metrics")
    op.drop_index("idx_project_metrics_deployment_snapshot", table_name="project_metrics")
    op.drop_table("project_metrics")
    op.drop_index("idx_deployments_created", table_name="deployments")
    op.drop_index("idx_deployments_contract", table_name="deployments")
    op.drop_table("deployments")
