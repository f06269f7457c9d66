from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domaine.enums.types import StatutLigneCommande, StatutTicket, TypeEvenementTicket
from app.domaine.modeles.base import maintenant_utc
from app.domaine.modeles.cuisine import EvenementTicket, LigneCommande, TicketCuisine
from app.domaine.services.liberer_stock import ResultatLiberation, ServiceLiberationStock

logger = logging.getLogger(__name__)


class ErreurCycleTicket(Exception):
    """Erreur générique de transition de ticket."""


class TicketIntrouvablePourTransition(ErreurCycleTicket):
    pass


class TransitionInterdite(ErreurCycleTicket):
    pass


# Statuts depuis lesquels la transition est refusée.
_STATUTS_INTERDITS = {
    StatutTicket.ANNULE: {StatutTicket.ANNULE, StatutTicket.PRET},
    StatutTicket.ECHOUE: {StatutTicket.ECHOUE, StatutTicket.ANNULE, StatutTicket.PRET},
}

_EVENEMENTS = {
    StatutTicket.ANNULE: TypeEvenementTicket.ANNULE,
    StatutTicket.ECHOUE: TypeEvenementTicket.ECHOUE,
}


@dataclass(frozen=True)
class ResultatTransitionTicket:
    ticket: TicketCuisine
    statut_precedent: StatutTicket
    liberation: ResultatLiberation | None


class ServiceCycleTicket:
    """Annulation / échec d’un ticket.

    C’est ici que vit la garde "libération au plus une fois" : le stock n’est libéré
    que si `inventaire_verrouille` est vrai, et le verrou est levé par la libération.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._liberation = ServiceLiberationStock(session)

    async def annuler(
        self,
        *,
        ticket_id: UUID,
        motif: str | None = None,
        operateur_id: UUID | None = None,
    ) -> ResultatTransitionTicket:
        return await self._terminer(
            ticket_id=ticket_id,
            statut_cible=StatutTicket.ANNULE,
            motif=motif or "Ticket annulé",
            operateur_id=operateur_id,
        )

    async def echouer(
        self,
        *,
        ticket_id: UUID,
        motif: str | None = None,
        operateur_id: UUID | None = None,
    ) -> ResultatTransitionTicket:
        return await self._terminer(
            ticket_id=ticket_id,
            statut_cible=StatutTicket.ECHOUE,
            motif=motif or "Ticket en échec",
            operateur_id=operateur_id,
        )

    async def _terminer(
        self,
        *,
        ticket_id: UUID,
        statut_cible: StatutTicket,
        motif: str,
        operateur_id: UUID | None,
    ) -> ResultatTransitionTicket:
        async with self._session.begin():
            ticket = await self._charger_ticket(ticket_id)
            statut_precedent = ticket.statut
            if statut_precedent in _STATUTS_INTERDITS[statut_cible]:
                raise TransitionInterdite(
                    f"Transition impossible vers {statut_cible.value} depuis le statut {statut_precedent.value}."
                )
            stock_verrouille = ticket.inventaire_verrouille

        liberation = None
        if stock_verrouille:
            liberation = await self._liberation.liberer(ticket_id=ticket_id, motif=motif, operateur_id=operateur_id)

        async with self._session.begin():
            ticket = await self._charger_ticket(ticket_id)
            ticket.statut = statut_cible
            ticket.inventaire_verrouille = False

            if statut_cible == StatutTicket.ANNULE and ticket.ligne_commande_id is not None:
                ligne = await self._session.get(LigneCommande, ticket.ligne_commande_id)
                if ligne is not None:
                    ligne.statut = StatutLigneCommande.ANNULEE
                    ligne.statut_modifie_le = maintenant_utc()

            self._session.add(
                EvenementTicket(
                    ticket_id=ticket_id,
                    type_evenement=_EVENEMENTS[statut_cible],
                    statut_precedent=statut_precedent,
                    statut_nouveau=statut_cible,
                    acteur_id=operateur_id,
                    motif=motif,
                )
            )

        logger.info(
            "ticket_transition_ok ticket_id=%s de=%s vers=%s stock_libere=%s",
            ticket_id,
            statut_precedent.value,
            statut_cible.value,
            liberation is not None,
        )

        return ResultatTransitionTicket(ticket=ticket, statut_precedent=statut_precedent, liberation=liberation)

    async def _charger_ticket(self, ticket_id: UUID) -> TicketCuisine:
        ticket = await self._session.get(TicketCuisine, ticket_id, with_for_update=True, populate_existing=True)
        if ticket is None:
            raise TicketIntrouvablePourTransition("Ticket cuisine introuvable.")
        return ticket
