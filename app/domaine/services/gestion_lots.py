from __future__ import annotations

"""Gestion manuelle d’un lot : blocage, déblocage, mise au rebut.

Un lot bloqué reste en stock mais sort de la sélection FEFO/FIFO.
La mise au rebut fait passer tout ou partie du net disponible en perte :
l’invariant brut = net + utilisé + perdu est conservé.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.transactions import executer_transaction
from app.domaine.enums.types import (
    CodeMotifMouvement,
    RaisonMiseAuRebut,
    StatutLot,
    TypeMouvementStock,
    UniteMesure,
)
from app.domaine.modeles.base import maintenant_utc
from app.domaine.modeles.referentiel import Ingredient
from app.domaine.modeles.stock_tracabilite import LotStock, MouvementStock
from app.domaine.services.selecteur_lots import TOLERANCE_QUANTITE

logger = logging.getLogger(__name__)


class ErreurGestionLot(Exception):
    """Erreur générique de gestion de lot."""


class LotIntrouvable(ErreurGestionLot):
    pass


class LotDejaVerrouille(ErreurGestionLot):
    pass


class LotNonVerrouille(ErreurGestionLot):
    pass


class LotVerrouille(ErreurGestionLot):
    """Le lot est bloqué : aucune sortie de stock possible."""


class LotEpuise(ErreurGestionLot):
    pass


class DonneesInvalidesGestionLot(ErreurGestionLot):
    pass


@dataclass(frozen=True)
class ResultatMiseAuRebut:
    lot: LotStock
    mouvement: MouvementStock
    quantite: float
    cout: float
    rebut_complet: bool


class ServiceGestionLot:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def verrouiller(
        self,
        *,
        lot_id: UUID,
        motif: str | None = None,
        operateur_id: UUID | None = None,
    ) -> LotStock:
        async def _action() -> LotStock:
            lot = await self._charger_lot_pour_maj(lot_id)
            if lot.verrouille:
                raise LotDejaVerrouille("Le lot est déjà bloqué.")

            lot.verrouille = True
            lot.motif_verrouillage = motif
            lot.verrouille_par_id = operateur_id
            lot.verrouille_le = maintenant_utc()
            await self._session.flush()
            return lot

        lot = await executer_transaction(self._session, action=_action)
        logger.info("lot_bloque lot_id=%s numero=%s motif=%s", lot.id, lot.numero_lot, motif)
        return lot

    async def deverrouiller(self, *, lot_id: UUID) -> LotStock:
        async def _action() -> LotStock:
            lot = await self._charger_lot_pour_maj(lot_id)
            if not lot.verrouille:
                raise LotNonVerrouille("Le lot n’est pas bloqué.")

            lot.verrouille = False
            lot.motif_verrouillage = None
            lot.verrouille_par_id = None
            lot.verrouille_le = None
            await self._session.flush()
            return lot

        lot = await executer_transaction(self._session, action=_action)
        logger.info("lot_debloque lot_id=%s numero=%s", lot.id, lot.numero_lot)
        return lot

    async def mettre_au_rebut(
        self,
        *,
        lot_id: UUID,
        raison: RaisonMiseAuRebut | str,
        quantite: float | None = None,
        note: str | None = None,
        operateur_id: UUID | None = None,
    ) -> ResultatMiseAuRebut:
        """Sort `quantite` (tout le net disponible par défaut) du lot en perte."""

        try:
            raison = RaisonMiseAuRebut(raison)
        except ValueError as e:
            raise DonneesInvalidesGestionLot(f"Raison de mise au rebut inconnue : {raison}.") from e
        if quantite is not None and float(quantite) <= 0:
            raise DonneesInvalidesGestionLot("La quantité mise au rebut doit être > 0.")

        resultat = await executer_transaction(
            self._session,
            action=lambda: self._mettre_au_rebut(
                lot_id=lot_id,
                raison=raison,
                quantite=float(quantite) if quantite is not None else None,
                note=note,
                operateur_id=operateur_id,
            ),
        )

        logger.warning(
            "lot_mis_au_rebut lot_id=%s numero=%s raison=%s quantite=%.3f cout=%.2f complet=%s",
            resultat.lot.id,
            resultat.lot.numero_lot,
            raison.value,
            resultat.quantite,
            resultat.cout,
            resultat.rebut_complet,
        )
        return resultat

    async def _mettre_au_rebut(
        self,
        *,
        lot_id: UUID,
        raison: RaisonMiseAuRebut,
        quantite: float | None,
        note: str | None,
        operateur_id: UUID | None,
    ) -> ResultatMiseAuRebut:
        # Même ordre de verrous que le démarrage d’un ticket : ingrédient puis lot.
        lot = await self._session.get(LotStock, lot_id)
        if lot is None:
            raise LotIntrouvable("Lot introuvable.")
        ingredient = await self._session.get(
            Ingredient,
            lot.ingredient_id,
            with_for_update=True,
            populate_existing=True,
        )
        lot = await self._charger_lot_pour_maj(lot_id)

        if lot.verrouille:
            raise LotVerrouille("Le lot est bloqué : déblocage requis avant mise au rebut.")

        disponible = float(lot.quantite_nette_disponible or 0.0)
        if disponible < TOLERANCE_QUANTITE:
            raise LotEpuise("Le lot n’a plus de stock disponible.")

        a_sortir = disponible if quantite is None else min(quantite, disponible)
        rebut_complet = disponible - a_sortir < TOLERANCE_QUANTITE
        # Reliquat sous la tolérance : sorti aussi, le lot passe à 0.
        sorti = disponible if rebut_complet else a_sortir

        lot.quantite_nette_disponible = disponible - sorti
        lot.quantite_perdue = float(lot.quantite_perdue or 0.0) + sorti
        if rebut_complet:
            lot.statut = StatutLot.EPUISE

        if ingredient is not None:
            ingredient.stock_actuel = max(0.0, float(ingredient.stock_actuel or 0.0) - sorti)

        cout_unitaire = float(lot.cout_unitaire or 0.0)
        mouvement = MouvementStock(
            type_mouvement=TypeMouvementStock.MISE_AU_REBUT,
            ingredient_id=lot.ingredient_id,
            lot_id=lot.id,
            quantite=sorti,
            unite=(ingredient.unite if ingredient is not None else None) or UniteMesure.KG,
            quantite_brute=sorti,
            quantite_nette=0.0,
            facteur_perte=1.0,
            cout_unitaire=cout_unitaire,
            cout_total=sorti * cout_unitaire,
            motif=f"{raison.value} : {note}" if note else raison.value,
            code_motif=CodeMotifMouvement.MISE_AU_REBUT,
            operateur_id=operateur_id,
        )
        self._session.add(mouvement)
        await self._session.flush()

        return ResultatMiseAuRebut(
            lot=lot,
            mouvement=mouvement,
            quantite=sorti,
            cout=sorti * cout_unitaire,
            rebut_complet=rebut_complet,
        )

    async def _charger_lot_pour_maj(self, lot_id: UUID) -> LotStock:
        lot = await self._session.get(LotStock, lot_id, with_for_update=True, populate_existing=True)
        if lot is None:
            raise LotIntrouvable("Lot introuvable.")
        return lot
