from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.domaine.enums.types import CodeMotifMouvement, StatutLot, TypeMouvementStock, UniteMesure
from app.domaine.modeles.base import ModeleHorodate, colonne_enum, maintenant_utc


class LotStock(ModeleHorodate):
    """
    Lot physique d’un ingrédient.

    Invariant de conservation :
        quantite_brute_entree = quantite_nette_disponible + quantite_utilisee + quantite_perdue

    - Créé à la réception, jamais supprimé (seulement épuisé).
    - Décrémenté au démarrage d’un ticket, ré-incrémenté à la libération.
    - Mise au rebut : le net disponible passe en quantité perdue.
    - `version` : compteur optimiste (UPDATE ... WHERE version = ?).
    """

    __tablename__ = "lot_stock"
    __table_args__ = (
        CheckConstraint("quantite_nette_disponible >= 0", name="ck_lot_stock_net_positif"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    ingredient_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ingredient.id"),
        nullable=False,
    )

    numero_lot: Mapped[str] = mapped_column(String(120), nullable=False)

    quantite_brute_entree: Mapped[float] = mapped_column(nullable=False)
    quantite_nette_disponible: Mapped[float] = mapped_column(nullable=False)
    quantite_utilisee: Mapped[float] = mapped_column(nullable=False, default=0.0)
    quantite_perdue: Mapped[float] = mapped_column(nullable=False, default=0.0)

    cout_unitaire: Mapped[float] = mapped_column(
        nullable=False,
        default=0.0,
        comment="Coût par unité de l’ingrédient",
    )

    recu_le: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=maintenant_utc,
    )

    date_peremption: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Date limite de consommation",
    )

    statut: Mapped[StatutLot] = mapped_column(
        colonne_enum(StatutLot, "statut_lot"),
        nullable=False,
        default=StatutLot.DISPONIBLE,
    )

    verrouille: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Blocage manuel : exclu de la sélection FEFO/FIFO",
    )
    motif_verrouillage: Mapped[str | None] = mapped_column(String(500), nullable=True)
    verrouille_par_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        nullable=True,
        comment="Opérateur ayant posé le blocage (trace, non contraint)",
    )
    verrouille_le: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    ingredient = relationship("Ingredient")

    __mapper_args__ = {"version_id_col": version}


class MouvementStock(ModeleHorodate):
    """
    Mouvement de stock immuable.

    RÈGLE D’OR :
    - AUCUNE modification de lot sans MouvementStock.
    - Les mouvements ne sont jamais modifiés ni supprimés.
    - Un RETOUR référence l’UTILISATION_RECETTE qu’il compense (au plus un retour par mouvement).
    """

    __tablename__ = "mouvement_stock"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    type_mouvement: Mapped[TypeMouvementStock] = mapped_column(
        colonne_enum(TypeMouvementStock, "type_mouvement_stock"),
        nullable=False,
    )

    horodatage: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=maintenant_utc,
    )

    ingredient_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ingredient.id"),
        nullable=False,
    )

    lot_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("lot_stock.id"),
        nullable=True,
    )

    ticket_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("ticket_cuisine.id"),
        nullable=True,
    )

    mouvement_origine_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("mouvement_stock.id"),
        nullable=True,
        unique=True,
        comment="Mouvement compensé par ce retour",
    )

    quantite: Mapped[float] = mapped_column(
        nullable=False,
        comment="Quantité absolue du mouvement (toujours positive)",
    )

    unite: Mapped[UniteMesure] = mapped_column(
        colonne_enum(UniteMesure, "unite_mesure"),
        nullable=False,
    )

    quantite_brute: Mapped[float] = mapped_column(nullable=False, default=0.0)
    quantite_nette: Mapped[float] = mapped_column(nullable=False, default=0.0)

    facteur_perte: Mapped[float] = mapped_column(
        nullable=False,
        default=0.0,
        comment="1 - multiplicateur de rendement",
    )

    cout_unitaire: Mapped[float] = mapped_column(nullable=False, default=0.0)
    cout_total: Mapped[float] = mapped_column(nullable=False, default=0.0)

    motif: Mapped[str | None] = mapped_column(String(500), nullable=True)

    code_motif: Mapped[CodeMotifMouvement | None] = mapped_column(
        colonne_enum(CodeMotifMouvement, "code_motif_mouvement"),
        nullable=True,
    )

    operateur_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("utilisateur.id"),
        nullable=True,
    )

    ingredient = relationship("Ingredient")
    lot = relationship("LotStock")


Index("ix_lot_stock_ingredient_id", LotStock.ingredient_id)
Index("ix_lot_stock_date_peremption", LotStock.date_peremption)
Index("ix_mouvement_stock_horodatage", MouvementStock.horodatage)
Index("ix_mouvement_stock_type", MouvementStock.type_mouvement)
Index("ix_mouvement_stock_lot_id", MouvementStock.lot_id)
Index("ix_mouvement_stock_ticket_id", MouvementStock.ticket_id)
