from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.domaine.enums.types import StatutLigneCommande, StatutTicket, TypeEvenementTicket
from app.domaine.modeles.base import ModeleHorodate, TypeJSON, colonne_enum, maintenant_utc


class LigneCommande(ModeleHorodate):
    """
    Ligne de commande (quantité d’un menu commandé).

    Gérée par le cycle commande ; le moteur de stock lit la quantité et passe
    la ligne EN_COURS au démarrage du ticket.
    """

    __tablename__ = "ligne_commande"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    menu_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("menu.id"),
        nullable=True,
    )
    menu = relationship("Menu")

    quantite: Mapped[float] = mapped_column(nullable=False, default=1.0)

    statut: Mapped[StatutLigneCommande] = mapped_column(
        colonne_enum(StatutLigneCommande, "statut_ligne_commande"),
        nullable=False,
        default=StatutLigneCommande.EN_ATTENTE,
    )

    statut_modifie_le: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    debut_preparation_le: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class TicketCuisine(ModeleHorodate):
    """
    Ticket cuisine.

    `inventaire_verrouille` empêche la double déduction :
    - passe à True une seule fois, au démarrage
    - repasse à False à la libération du stock (sans changer le statut)
    """

    __tablename__ = "ticket_cuisine"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    numero: Mapped[str | None] = mapped_column(String(50), nullable=True)

    ligne_commande_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("ligne_commande.id"),
        nullable=True,
    )
    ligne_commande: Mapped[LigneCommande | None] = relationship()

    statut: Mapped[StatutTicket] = mapped_column(
        colonne_enum(StatutTicket, "statut_ticket"),
        nullable=False,
        default=StatutTicket.EN_ATTENTE,
    )

    inventaire_verrouille: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    chef_assigne_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("utilisateur.id"),
        nullable=True,
    )

    demarre_le: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class EvenementTicket(ModeleHorodate):
    """Historique d’un ticket (append-only)."""

    __tablename__ = "evenement_ticket"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    ticket_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("ticket_cuisine.id"),
        nullable=False,
    )

    type_evenement: Mapped[TypeEvenementTicket] = mapped_column(
        colonne_enum(TypeEvenementTicket, "type_evenement_ticket"),
        nullable=False,
    )

    statut_precedent: Mapped[StatutTicket | None] = mapped_column(
        colonne_enum(StatutTicket, "statut_ticket"),
        nullable=True,
    )
    statut_nouveau: Mapped[StatutTicket | None] = mapped_column(
        colonne_enum(StatutTicket, "statut_ticket"),
        nullable=True,
    )

    acteur_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("utilisateur.id"),
        nullable=True,
    )

    motif: Mapped[str | None] = mapped_column(String(500), nullable=True)

    metadonnees: Mapped[dict[str, Any] | None] = mapped_column(TypeJSON, nullable=True)

    horodatage: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=maintenant_utc,
    )


Index("ix_ticket_cuisine_statut", TicketCuisine.statut)
Index("ix_evenement_ticket_ticket_id", EvenementTicket.ticket_id)
