"""lot_stock : trace du blocage manuel

Revision ID: 0002_blocage_lot
Revises: 0001_moteur_stock_initial
Create Date: 2026-10-20 10:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_blocage_lot"
down_revision = "0001_moteur_stock_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("lot_stock") as batch:
        batch.add_column(sa.Column("motif_verrouillage", sa.String(length=500), nullable=True))
        batch.add_column(sa.Column("verrouille_par_id", sa.Uuid(), nullable=True))
        batch.add_column(sa.Column("verrouille_le", sa.DateTime(timezone=True), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("lot_stock") as batch:
        batch.drop_column("verrouille_le")
        batch.drop_column("verrouille_par_id")
        batch.drop_column("motif_verrouillage")
