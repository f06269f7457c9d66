from __future__ import annotations

"""Libération du stock d’un ticket (annulation / échec).

Compense chaque mouvement UTILISATION_RECETTE du ticket :
- lot : net disponible += quantité brute, quantité utilisée -= quantité (plancher 0), statut DISPONIBLE
- ingrédient : stock_actuel += quantité
- nouveau mouvement RETOUR (code TICKET_CANCEL) qui référence le mouvement compensé

Reprise sur erreur :
- chaque mouvement est restauré dans SA propre transaction, avec son RETOUR
- `mouvement_origine_id` est unique : un mouvement déjà compensé est ignoré à la relance
- en cas d’erreur, on s’arrête et on indique les mouvements restés non restaurés
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.domaine.enums.types import (
    CodeMotifMouvement,
    StatutLot,
    TypeEvenementTicket,
    TypeMouvementStock,
)
from app.domaine.modeles.cuisine import EvenementTicket, TicketCuisine
from app.domaine.modeles.referentiel import Ingredient
from app.domaine.modeles.stock_tracabilite import LotStock, MouvementStock

logger = logging.getLogger(__name__)


class ErreurLiberationStock(Exception):
    """Erreur générique de libération de stock."""


class TicketIntrouvablePourLiberation(ErreurLiberationStock):
    pass


class LiberationIncomplete(ErreurLiberationStock):
    """La libération s’est arrêtée en cours de route.

    Les mouvements de `mouvements_restaures` sont définitivement compensés ;
    ceux de `mouvements_non_restaures` le seront à la prochaine libération.
    """

    def __init__(
        self,
        message: str,
        *,
        mouvements_restaures: list[UUID],
        mouvements_non_restaures: list[UUID],
    ) -> None:
        super().__init__(message)
        self.mouvements_restaures = mouvements_restaures
        self.mouvements_non_restaures = mouvements_non_restaures


@dataclass(frozen=True)
class ResultatLiberation:
    ticket_id: UUID
    mouvements_liberes: int
    quantite_restauree: float
    mouvements_retour: list[UUID] = field(default_factory=list)
    # True : le verrou était déjà levé (libération concurrente), aucun événement écrit.
    deja_libere: bool = False


class ServiceLiberationStock:
    """Restaure le stock consommé par un ticket.

    Contrat appelant : ne libérer qu’une fois par cycle de vie du ticket
    (garde `inventaire_verrouille`, voir `ServiceCycleTicket`). Une relance après
    `LiberationIncomplete` ne recrédite jamais un mouvement déjà compensé.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def liberer(
        self,
        *,
        ticket_id: UUID,
        motif: str,
        operateur_id: UUID | None = None,
    ) -> ResultatLiberation:
        logger.info("liberation_stock_debut ticket_id=%s motif=%s", ticket_id, motif)

        async with self._session.begin():
            ticket = await self._session.get(TicketCuisine, ticket_id)
            if ticket is None:
                raise TicketIntrouvablePourLiberation("Ticket cuisine introuvable.")
            mouvements_ids = await self._mouvements_a_compenser(ticket_id)

        logger.info("liberation_stock_mouvements ticket_id=%s nb=%s", ticket_id, len(mouvements_ids))

        restaures: list[UUID] = []
        retours: list[UUID] = []
        quantite_totale = 0.0

        for index, mouvement_id in enumerate(mouvements_ids):
            try:
                async with self._session.begin():
                    retour = await self._compenser(mouvement_id, motif=motif, operateur_id=operateur_id)
            except Exception as e:
                non_restaures = mouvements_ids[index:]
                logger.exception(
                    "liberation_stock_interrompue ticket_id=%s mouvement_id=%s restaures=%s restants=%s",
                    ticket_id,
                    mouvement_id,
                    len(restaures),
                    len(non_restaures),
                )
                raise LiberationIncomplete(
                    f"Libération interrompue au mouvement {mouvement_id} : {e}",
                    mouvements_restaures=restaures,
                    mouvements_non_restaures=non_restaures,
                ) from e

            if retour is None:
                # Compensé entre-temps par une libération concurrente.
                continue

            restaures.append(mouvement_id)
            retours.append(retour.id)
            quantite_totale += float(retour.quantite)

        async with self._session.begin():
            ticket = await self._session.get(TicketCuisine, ticket_id, with_for_update=True, populate_existing=True)
            if ticket is None:
                raise TicketIntrouvablePourLiberation("Ticket cuisine introuvable.")

            # Relu sous verrou : une libération concurrente a pu lever le verrou entre-temps.
            deja_libere = not ticket.inventaire_verrouille
            if not deja_libere:
                compenses_total = await self._nb_mouvements_compenses(ticket_id)
                ticket.inventaire_verrouille = False
                self._session.add(
                    EvenementTicket(
                        ticket_id=ticket_id,
                        type_evenement=TypeEvenementTicket.STOCK_LIBERE,
                        acteur_id=operateur_id,
                        motif=motif,
                        metadonnees={
                            "mouvements_liberes": len(restaures),
                            "mouvements_deja_compenses": compenses_total - len(restaures),
                            "mouvements_compenses_total": compenses_total,
                        },
                    )
                )

        logger.info(
            "liberation_stock_ok ticket_id=%s mouvements_liberes=%s quantite=%.3f motif=%s deja_libere=%s",
            ticket_id,
            len(restaures),
            quantite_totale,
            motif,
            deja_libere,
        )

        return ResultatLiberation(
            ticket_id=ticket_id,
            mouvements_liberes=len(restaures),
            quantite_restauree=quantite_totale,
            mouvements_retour=retours,
            deja_libere=deja_libere,
        )

    async def _nb_mouvements_compenses(self, ticket_id: UUID) -> int:
        resultat = await self._session.execute(
            select(func.count(MouvementStock.id)).where(
                MouvementStock.ticket_id == ticket_id,
                MouvementStock.type_mouvement == TypeMouvementStock.RETOUR,
                MouvementStock.mouvement_origine_id.is_not(None),
            )
        )
        return int(resultat.scalar_one())

    async def _mouvements_a_compenser(self, ticket_id: UUID) -> list[UUID]:
        retour = aliased(MouvementStock)
        resultat = await self._session.execute(
            select(MouvementStock.id)
            .outerjoin(retour, retour.mouvement_origine_id == MouvementStock.id)
            .where(
                MouvementStock.ticket_id == ticket_id,
                MouvementStock.type_mouvement == TypeMouvementStock.UTILISATION_RECETTE,
                retour.id.is_(None),
            )
            .order_by(MouvementStock.horodatage.asc(), MouvementStock.id.asc())
        )
        return list(resultat.scalars().all())

    async def _compenser(
        self,
        mouvement_id: UUID,
        *,
        motif: str,
        operateur_id: UUID | None,
    ) -> MouvementStock | None:
        mouvement = await self._session.get(MouvementStock, mouvement_id)
        if mouvement is None:
            raise ErreurLiberationStock(f"Mouvement {mouvement_id} introuvable.")

        deja = await self._session.execute(
            select(MouvementStock.id).where(MouvementStock.mouvement_origine_id == mouvement_id)
        )
        if deja.scalar_one_or_none() is not None:
            return None

        quantite = float(mouvement.quantite_brute or mouvement.quantite)

        if mouvement.lot_id is not None:
            lot = await self._session.get(LotStock, mouvement.lot_id, with_for_update=True, populate_existing=True)
            if lot is not None:
                lot.quantite_nette_disponible = float(lot.quantite_nette_disponible) + quantite
                lot.quantite_utilisee = max(0.0, float(lot.quantite_utilisee or 0.0) - quantite)
                lot.statut = StatutLot.DISPONIBLE

        ingredient = await self._session.get(
            Ingredient,
            mouvement.ingredient_id,
            with_for_update=True,
            populate_existing=True,
        )
        if ingredient is not None:
            ingredient.stock_actuel = float(ingredient.stock_actuel or 0.0) + quantite

        retour = MouvementStock(
            type_mouvement=TypeMouvementStock.RETOUR,
            ingredient_id=mouvement.ingredient_id,
            lot_id=mouvement.lot_id,
            ticket_id=mouvement.ticket_id,
            mouvement_origine_id=mouvement.id,
            quantite=quantite,
            unite=mouvement.unite,
            quantite_brute=quantite,
            quantite_nette=float(mouvement.quantite_nette or 0.0),
            facteur_perte=float(mouvement.facteur_perte or 0.0),
            cout_unitaire=float(mouvement.cout_unitaire or 0.0),
            cout_total=quantite * float(mouvement.cout_unitaire or 0.0),
            motif=motif,
            code_motif=CodeMotifMouvement.ANNULATION_TICKET,
            operateur_id=operateur_id,
        )
        self._session.add(retour)
        await self._session.flush()

        logger.debug(
            "liberation_stock_mouvement mouvement_id=%s lot_id=%s quantite=%.3f",
            mouvement.id,
            mouvement.lot_id,
            quantite,
        )
        return retour
