from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.transactions import executer_transaction
from app.domaine.enums.types import CodeMotifMouvement, StatutLot, TypeMouvementStock
from app.domaine.modeles.base import maintenant_utc
from app.domaine.modeles.referentiel import Ingredient
from app.domaine.modeles.stock_tracabilite import LotStock, MouvementStock

logger = logging.getLogger(__name__)


class ErreurReceptionLot(Exception):
    """Erreur générique de réception."""


class IngredientIntrouvable(ErreurReceptionLot):
    pass


class DonneesInvalidesReception(ErreurReceptionLot):
    pass


@dataclass(frozen=True)
class ResultatReceptionLot:
    lot: LotStock
    mouvement: MouvementStock


class ServiceReceptionLot:
    """Réception d’un lot de marchandise.

    - net disponible = brut * ratio de rendement de base de l’ingrédient
    - la différence est comptée en perte dès la réception
    - stock_actuel de l’ingrédient += net
    - un mouvement RECEPTION trace l’entrée
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def receptionner(
        self,
        *,
        ingredient_id: UUID,
        quantite_brute: float,
        cout_unitaire: float,
        date_peremption: date | None = None,
        numero_lot: str | None = None,
        recu_le: datetime | None = None,
        operateur_id: UUID | None = None,
    ) -> ResultatReceptionLot:
        if quantite_brute is None or float(quantite_brute) <= 0:
            raise DonneesInvalidesReception("La quantité brute reçue doit être > 0.")
        if cout_unitaire is None or float(cout_unitaire) < 0:
            raise DonneesInvalidesReception("Le coût unitaire doit être >= 0.")

        return await executer_transaction(
            self._session,
            action=lambda: self._receptionner(
                ingredient_id=ingredient_id,
                quantite_brute=float(quantite_brute),
                cout_unitaire=float(cout_unitaire),
                date_peremption=date_peremption,
                numero_lot=numero_lot,
                recu_le=recu_le,
                operateur_id=operateur_id,
            ),
        )

    async def _receptionner(
        self,
        *,
        ingredient_id: UUID,
        quantite_brute: float,
        cout_unitaire: float,
        date_peremption: date | None,
        numero_lot: str | None,
        recu_le: datetime | None,
        operateur_id: UUID | None,
    ) -> ResultatReceptionLot:
        resultat = await self._session.execute(
            select(Ingredient)
            .where(Ingredient.id == ingredient_id)
            .options(selectinload(Ingredient.profil_rendement))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        ingredient = resultat.scalar_one_or_none()
        if ingredient is None:
            raise IngredientIntrouvable("Ingrédient introuvable.")

        ratio = 1.0
        if ingredient.profil_rendement is not None:
            ratio = float(ingredient.profil_rendement.ratio_rendement_base or 1.0)

        quantite_nette = quantite_brute * ratio
        # perte = brut - net : garantit brut = net + utilisé (0) + perdu
        quantite_perdue = quantite_brute - quantite_nette

        lot = LotStock(
            id=uuid4(),
            ingredient_id=ingredient.id,
            numero_lot=numero_lot or f"B{uuid4().hex[:10].upper()}",
            quantite_brute_entree=quantite_brute,
            quantite_nette_disponible=quantite_nette,
            quantite_utilisee=0.0,
            quantite_perdue=quantite_perdue,
            cout_unitaire=cout_unitaire,
            recu_le=recu_le or maintenant_utc(),
            date_peremption=date_peremption,
            statut=StatutLot.DISPONIBLE,
            verrouille=False,
        )
        self._session.add(lot)

        ingredient.stock_actuel = float(ingredient.stock_actuel or 0.0) + quantite_nette

        mouvement = MouvementStock(
            type_mouvement=TypeMouvementStock.RECEPTION,
            ingredient_id=ingredient.id,
            lot_id=lot.id,
            quantite=quantite_nette,
            unite=ingredient.unite,
            quantite_brute=quantite_brute,
            quantite_nette=quantite_nette,
            facteur_perte=1.0 - ratio,
            cout_unitaire=cout_unitaire,
            cout_total=quantite_brute * cout_unitaire,
            motif="Réception marchandise",
            code_motif=CodeMotifMouvement.RECEPTION_MARCHANDISE,
            operateur_id=operateur_id,
        )
        self._session.add(mouvement)
        await self._session.flush()

        logger.info(
            "reception_lot_ok lot_id=%s ingredient=%s brut=%.3f net=%.3f ratio=%.3f",
            lot.id,
            ingredient.nom,
            quantite_brute,
            quantite_nette,
            ratio,
        )

        return ResultatReceptionLot(lot=lot, mouvement=mouvement)
