"""moteur de stock : schéma initial

Revision ID: 0001_moteur_stock_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_moteur_stock_initial"
down_revision = None
branch_labels = None
depends_on = None


TypeJSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _colonnes_horodatage() -> list[sa.Column]:
    return [
        sa.Column("cree_le", sa.DateTime(timezone=True), nullable=False),
        sa.Column("mis_a_jour_le", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "utilisateur",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("nom_affiche", sa.String(length=200), nullable=False),
        sa.Column("actif", sa.Boolean(), nullable=False),
        *_colonnes_horodatage(),
    )
    op.create_index("ix_utilisateur_email", "utilisateur", ["email"], unique=True)

    op.create_table(
        "profil_rendement",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("nom", sa.String(length=200), nullable=False),
        sa.Column("ratio_rendement_base", sa.Float(), nullable=False),
        *_colonnes_horodatage(),
        sa.UniqueConstraint("nom", name="uq_profil_rendement_nom"),
        sa.CheckConstraint(
            "ratio_rendement_base > 0 AND ratio_rendement_base <= 1",
            name="ck_profil_rendement_ratio_base",
        ),
    )

    op.create_table(
        "rendement_procede",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("profil_rendement_id", sa.Uuid(), nullable=False),
        sa.Column("type_procede", sa.String(length=50), nullable=False),
        sa.Column("ordre", sa.Integer(), nullable=False),
        sa.Column("perte_humidite", sa.Float(), nullable=True),
        sa.Column("absorption_huile", sa.Float(), nullable=True),
        sa.Column("ratio_rendement", sa.Float(), nullable=True),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["profil_rendement_id"], ["profil_rendement.id"]),
        sa.UniqueConstraint("profil_rendement_id", "type_procede", name="uq_rendement_procede_profil_type"),
    )

    op.create_table(
        "ingredient",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("nom", sa.String(length=200), nullable=False),
        sa.Column("unite", sa.String(length=50), nullable=False),
        sa.Column("stock_actuel", sa.Float(), nullable=False),
        sa.Column("profil_rendement_id", sa.Uuid(), nullable=True),
        sa.Column("actif", sa.Boolean(), nullable=False),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["profil_rendement_id"], ["profil_rendement.id"]),
        sa.UniqueConstraint("nom", name="uq_ingredient_nom"),
        sa.UniqueConstraint("profil_rendement_id", name="uq_ingredient_profil_rendement_id"),
    )

    op.create_table(
        "recette",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("nom", sa.String(length=200), nullable=False),
        *_colonnes_horodatage(),
        sa.UniqueConstraint("nom", name="uq_recette_nom"),
    )

    op.create_table(
        "ligne_recette",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("recette_id", sa.Uuid(), nullable=False),
        sa.Column("ingredient_id", sa.Uuid(), nullable=False),
        sa.Column("ordre", sa.Integer(), nullable=False),
        sa.Column("quantite", sa.Float(), nullable=False),
        sa.Column("unite", sa.String(length=50), nullable=True),
        sa.Column("chaine_procedes", TypeJSON, nullable=True),
        sa.Column("pourcentage_perte", sa.Float(), nullable=False),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["recette_id"], ["recette.id"]),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredient.id"]),
        sa.UniqueConstraint("recette_id", "ingredient_id", name="uq_ligne_recette_recette_ingredient"),
        sa.CheckConstraint("pourcentage_perte >= 0", name="ck_ligne_recette_pourcentage_perte"),
    )
    op.create_index("ix_ligne_recette_recette_id", "ligne_recette", ["recette_id"], unique=False)
    op.create_index("ix_ligne_recette_ingredient_id", "ligne_recette", ["ingredient_id"], unique=False)

    op.create_table(
        "menu",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("nom", sa.String(length=200), nullable=False),
        sa.Column("prix", sa.Float(), nullable=False),
        sa.Column("recette_id", sa.Uuid(), nullable=True),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["recette_id"], ["recette.id"]),
    )
    op.create_index("ix_menu_recette_id", "menu", ["recette_id"], unique=False)

    op.create_table(
        "ligne_commande",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("menu_id", sa.Uuid(), nullable=True),
        sa.Column("quantite", sa.Float(), nullable=False),
        sa.Column("statut", sa.String(length=50), nullable=False),
        sa.Column("statut_modifie_le", sa.DateTime(timezone=True), nullable=True),
        sa.Column("debut_preparation_le", sa.DateTime(timezone=True), nullable=True),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["menu_id"], ["menu.id"]),
    )

    op.create_table(
        "ticket_cuisine",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("numero", sa.String(length=50), nullable=True),
        sa.Column("ligne_commande_id", sa.Uuid(), nullable=True),
        sa.Column("statut", sa.String(length=50), nullable=False),
        sa.Column("inventaire_verrouille", sa.Boolean(), nullable=False),
        sa.Column("chef_assigne_id", sa.Uuid(), nullable=True),
        sa.Column("demarre_le", sa.DateTime(timezone=True), nullable=True),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["ligne_commande_id"], ["ligne_commande.id"]),
        sa.ForeignKeyConstraint(["chef_assigne_id"], ["utilisateur.id"]),
    )
    op.create_index("ix_ticket_cuisine_statut", "ticket_cuisine", ["statut"], unique=False)

    op.create_table(
        "evenement_ticket",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("ticket_id", sa.Uuid(), nullable=False),
        sa.Column("type_evenement", sa.String(length=50), nullable=False),
        sa.Column("statut_precedent", sa.String(length=50), nullable=True),
        sa.Column("statut_nouveau", sa.String(length=50), nullable=True),
        sa.Column("acteur_id", sa.Uuid(), nullable=True),
        sa.Column("motif", sa.String(length=500), nullable=True),
        sa.Column("metadonnees", TypeJSON, nullable=True),
        sa.Column("horodatage", sa.DateTime(timezone=True), nullable=False),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["ticket_id"], ["ticket_cuisine.id"]),
        sa.ForeignKeyConstraint(["acteur_id"], ["utilisateur.id"]),
    )
    op.create_index("ix_evenement_ticket_ticket_id", "evenement_ticket", ["ticket_id"], unique=False)

    op.create_table(
        "lot_stock",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("ingredient_id", sa.Uuid(), nullable=False),
        sa.Column("numero_lot", sa.String(length=120), nullable=False),
        sa.Column("quantite_brute_entree", sa.Float(), nullable=False),
        sa.Column("quantite_nette_disponible", sa.Float(), nullable=False),
        sa.Column("quantite_utilisee", sa.Float(), nullable=False),
        sa.Column("quantite_perdue", sa.Float(), nullable=False),
        sa.Column("cout_unitaire", sa.Float(), nullable=False),
        sa.Column("recu_le", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_peremption", sa.Date(), nullable=True),
        sa.Column("statut", sa.String(length=50), nullable=False),
        sa.Column("verrouille", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredient.id"]),
        sa.CheckConstraint("quantite_nette_disponible >= 0", name="ck_lot_stock_net_positif"),
    )
    op.create_index("ix_lot_stock_ingredient_id", "lot_stock", ["ingredient_id"], unique=False)
    op.create_index("ix_lot_stock_date_peremption", "lot_stock", ["date_peremption"], unique=False)

    op.create_table(
        "mouvement_stock",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("type_mouvement", sa.String(length=50), nullable=False),
        sa.Column("horodatage", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ingredient_id", sa.Uuid(), nullable=False),
        sa.Column("lot_id", sa.Uuid(), nullable=True),
        sa.Column("ticket_id", sa.Uuid(), nullable=True),
        sa.Column("mouvement_origine_id", sa.Uuid(), nullable=True),
        sa.Column("quantite", sa.Float(), nullable=False),
        sa.Column("unite", sa.String(length=50), nullable=False),
        sa.Column("quantite_brute", sa.Float(), nullable=False),
        sa.Column("quantite_nette", sa.Float(), nullable=False),
        sa.Column("facteur_perte", sa.Float(), nullable=False),
        sa.Column("cout_unitaire", sa.Float(), nullable=False),
        sa.Column("cout_total", sa.Float(), nullable=False),
        sa.Column("motif", sa.String(length=500), nullable=True),
        sa.Column("code_motif", sa.String(length=50), nullable=True),
        sa.Column("operateur_id", sa.Uuid(), nullable=True),
        *_colonnes_horodatage(),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredient.id"]),
        sa.ForeignKeyConstraint(["lot_id"], ["lot_stock.id"]),
        sa.ForeignKeyConstraint(["ticket_id"], ["ticket_cuisine.id"]),
        sa.ForeignKeyConstraint(["mouvement_origine_id"], ["mouvement_stock.id"]),
        sa.ForeignKeyConstraint(["operateur_id"], ["utilisateur.id"]),
        sa.UniqueConstraint("mouvement_origine_id", name="uq_mouvement_stock_mouvement_origine_id"),
    )
    op.create_index("ix_mouvement_stock_horodatage", "mouvement_stock", ["horodatage"], unique=False)
    op.create_index("ix_mouvement_stock_type", "mouvement_stock", ["type_mouvement"], unique=False)
    op.create_index("ix_mouvement_stock_lot_id", "mouvement_stock", ["lot_id"], unique=False)
    op.create_index("ix_mouvement_stock_ticket_id", "mouvement_stock", ["ticket_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_mouvement_stock_ticket_id", table_name="mouvement_stock")
    op.drop_index("ix_mouvement_stock_lot_id", table_name="mouvement_stock")
    op.drop_index("ix_mouvement_stock_type", table_name="mouvement_stock")
    op.drop_index("ix_mouvement_stock_horodatage", table_name="mouvement_stock")
    op.drop_table("mouvement_stock")

    op.drop_index("ix_lot_stock_date_peremption", table_name="lot_stock")
    op.drop_index("ix_lot_stock_ingredient_id", table_name="lot_stock")
    op.drop_table("lot_stock")

    op.drop_index("ix_evenement_ticket_ticket_id", table_name="evenement_ticket")
    op.drop_table("evenement_ticket")

    op.drop_index("ix_ticket_cuisine_statut", table_name="ticket_cuisine")
    op.drop_table("ticket_cuisine")

    op.drop_table("ligne_commande")

    op.drop_index("ix_menu_recette_id", table_name="menu")
    op.drop_table("menu")

    op.drop_index("ix_ligne_recette_ingredient_id", table_name="ligne_recette")
    op.drop_index("ix_ligne_recette_recette_id", table_name="ligne_recette")
    op.drop_table("ligne_recette")

    op.drop_table("recette")
    op.drop_table("ingredient")
    op.drop_table("rendement_procede")
    op.drop_table("profil_rendement")

    op.drop_index("ix_utilisateur_email", table_name="utilisateur")
    op.drop_table("utilisateur")
