from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.domaine.enums.types import TypeProcede, UniteMesure
from app.domaine.modeles.base import ModeleHorodate, TypeJSON, colonne_enum


class Utilisateur(ModeleHorodate):
    """Membre du personnel (chef, manager) : acteur des tickets et opérateur des mouvements."""

    __tablename__ = "utilisateur"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
    nom_affiche: Mapped[str] = mapped_column(String(200), nullable=False)
    actif: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ProfilRendement(ModeleHorodate):
    """
    Profil de rendement d’un ingrédient.

    - `ratio_rendement_base` : conversion brut -> net avant tout procédé (0 < r <= 1)
    - `procedes` : pertes / gains par type de procédé

    Lecture seule pendant une consommation.
    """

    __tablename__ = "profil_rendement"
    __table_args__ = (
        CheckConstraint(
            "ratio_rendement_base > 0 AND ratio_rendement_base <= 1",
            name="ck_profil_rendement_ratio_base",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    nom: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    ratio_rendement_base: Mapped[float] = mapped_column(
        nullable=False,
        default=1.0,
        comment="Part du brut conservée avant tout procédé",
    )

    procedes: Mapped[list["RendementProcede"]] = relationship(
        "RendementProcede",
        back_populates="profil_rendement",
        order_by="RendementProcede.ordre",
    )


class RendementProcede(ModeleHorodate):
    """Effet d’un procédé (nettoyage, friture, ...) sur le rendement."""

    __tablename__ = "rendement_procede"
    __table_args__ = (
        UniqueConstraint(
            "profil_rendement_id",
            "type_procede",
            name="uq_rendement_procede_profil_type",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    profil_rendement_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("profil_rendement.id"),
        nullable=False,
    )
    profil_rendement: Mapped[ProfilRendement] = relationship(back_populates="procedes")

    type_procede: Mapped[TypeProcede] = mapped_column(
        colonne_enum(TypeProcede, "type_procede"),
        nullable=False,
    )

    ordre: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    perte_humidite: Mapped[float | None] = mapped_column(
        nullable=True,
        comment="Fraction de masse perdue (eau)",
    )
    absorption_huile: Mapped[float | None] = mapped_column(
        nullable=True,
        comment="Fraction de masse ajoutée (huile)",
    )
    ratio_rendement: Mapped[float | None] = mapped_column(
        nullable=True,
        comment="Multiplicateur direct, appliqué en dernier",
    )


class Ingredient(ModeleHorodate):
    """
    Ingrédient de base utilisé dans les recettes.

    `stock_actuel` est un cache dénormalisé de la somme des lots :
    il n’est modifié que par la réception, le démarrage des tickets et la libération.
    """

    __tablename__ = "ingredient"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    nom: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    unite: Mapped[UniteMesure] = mapped_column(
        colonne_enum(UniteMesure, "unite_mesure"),
        nullable=False,
        default=UniteMesure.KG,
        comment="Unité canonique du stock",
    )

    stock_actuel: Mapped[float] = mapped_column(nullable=False, default=0.0)

    profil_rendement_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profil_rendement.id"),
        nullable=True,
        unique=True,
    )
    profil_rendement: Mapped[ProfilRendement | None] = relationship()

    actif: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Recette(ModeleHorodate):
    __tablename__ = "recette"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    nom: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    lignes: Mapped[list["LigneRecette"]] = relationship(
        "LigneRecette",
        back_populates="recette",
        order_by="LigneRecette.ordre",
    )


class LigneRecette(ModeleHorodate):
    """
    Ligne de composition d’une recette (quantité NETTE attendue par portion).
    """

    __tablename__ = "ligne_recette"
    __table_args__ = (
        UniqueConstraint(
            "recette_id",
            "ingredient_id",
            name="uq_ligne_recette_recette_ingredient",
        ),
        CheckConstraint("pourcentage_perte >= 0", name="ck_ligne_recette_pourcentage_perte"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    recette_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("recette.id"),
        nullable=False,
    )
    recette: Mapped[Recette] = relationship(back_populates="lignes")

    ingredient_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ingredient.id"),
        nullable=False,
    )
    ingredient: Mapped[Ingredient] = relationship()

    ordre: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Ordre de déclaration dans la recette",
    )

    quantite: Mapped[float] = mapped_column(
        nullable=False,
        comment="Quantité nette nécessaire pour une portion",
    )

    unite: Mapped[UniteMesure | None] = mapped_column(
        colonne_enum(UniteMesure, "unite_mesure"),
        nullable=True,
        comment="Unité de la ligne (défaut : unité de l’ingrédient)",
    )

    chaine_procedes: Mapped[list[str] | None] = mapped_column(
        TypeJSON,
        nullable=True,
        comment="Procédés appliqués, dans l’ordre (défaut : configuration)",
    )

    pourcentage_perte: Mapped[float] = mapped_column(
        nullable=False,
        default=0.0,
        comment="Marge de perte ajoutée au brut (%)",
    )


class Menu(ModeleHorodate):
    """Produit vendable ; référence la recette à consommer en cuisine."""

    __tablename__ = "menu"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    nom: Mapped[str] = mapped_column(String(200), nullable=False)

    prix: Mapped[float] = mapped_column(nullable=False, default=0.0)

    recette_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("recette.id"),
        nullable=True,
    )
    recette: Mapped[Recette | None] = relationship()


Index("ix_menu_recette_id", Menu.recette_id)
Index("ix_ligne_recette_recette_id", LigneRecette.recette_id)
Index("ix_ligne_recette_ingredient_id", LigneRecette.ingredient_id)
