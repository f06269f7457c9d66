from __future__ import annotations

"""Schémas API - Tickets cuisine.

Le résultat de démarrage suit toujours la même forme (succès ou échec) :
`{succes, ticket, mouvements_inventaire, lots_consommes, erreur}`.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class RequeteDemarrageTicket(BaseModel):
    chef_id: UUID | None = None


class RequeteTransitionTicket(BaseModel):
    motif: str | None = None
    operateur_id: UUID | None = None


class TicketCuisineSchema(BaseModel):
    id: UUID
    numero: str | None = None
    statut: str
    inventaire_verrouille: bool
    chef_assigne_id: UUID | None = None
    demarre_le: datetime | None = None


class MouvementInventaireSchema(BaseModel):
    id: UUID
    type_mouvement: str
    ingredient_id: UUID
    lot_id: UUID | None = None
    quantite: float
    unite: str
    quantite_brute: float | None = None
    quantite_nette: float | None = None
    cout_total: float | None = None


class LotConsommeSchema(BaseModel):
    lot_id: UUID
    ingredient_id: UUID
    quantite_brute: float
    quantite_nette: float
    cout: float


class ErreurSchema(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class ReponseDemarrageTicket(BaseModel):
    succes: bool
    ticket: TicketCuisineSchema | None = None
    mouvements_inventaire: list[MouvementInventaireSchema] = Field(default_factory=list)
    lots_consommes: list[LotConsommeSchema] = Field(default_factory=list)
    erreur: ErreurSchema | None = None


class ReponseLiberationStock(BaseModel):
    ticket_id: UUID
    mouvements_liberes: int
    quantite_restauree: float
    mouvements_retour: list[UUID]


class ReponseTransitionTicket(BaseModel):
    ticket: TicketCuisineSchema
    statut_precedent: str
    liberation: ReponseLiberationStock | None = None
