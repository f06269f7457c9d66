from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domaine.enums.types import StatutLot
from app.domaine.modeles.stock_tracabilite import LotStock

# Tolérance flottante commune :
# - un lot est ÉPUISÉ dès que son net disponible passe sous ce seuil
# - une demande est SATISFAITE dès que le reste à prélever passe sous ce seuil
TOLERANCE_QUANTITE = 1e-3

STATUTS_EXCLUS = frozenset({StatutLot.EPUISE, StatutLot.EXPIRE})


@dataclass(frozen=True)
class Prelevement:
    lot: LotStock
    quantite: float


@dataclass(frozen=True)
class PlanPrelevement:
    prelevements: list[Prelevement]
    demande: float
    reste: float

    @property
    def preleve(self) -> float:
        return self.demande - self.reste

    @property
    def satisfait(self) -> bool:
        return self.reste <= TOLERANCE_QUANTITE


def est_eligible(lot: LotStock) -> bool:
    return (
        float(lot.quantite_nette_disponible or 0.0) > 0
        and lot.statut not in STATUTS_EXCLUS
        and not lot.verrouille
    )


def _instant_utc(valeur: datetime) -> datetime:
    # SQLite renvoie des datetimes naïfs : on les considère UTC.
    if valeur.tzinfo is None:
        return valeur.replace(tzinfo=timezone.utc)
    return valeur


def cle_fefo(lot: LotStock) -> tuple[bool, date, datetime, str]:
    """Clé de tri FEFO puis FIFO.

    1) date de péremption croissante, lots sans date à la fin
    2) date de réception croissante
    3) id (départage stable)
    """

    sans_peremption = lot.date_peremption is None
    return (
        sans_peremption,
        lot.date_peremption or date.max,
        _instant_utc(lot.recu_le),
        str(lot.id),
    )


def ordonner_lots_eligibles(lots: Iterable[LotStock]) -> list[LotStock]:
    """Filtre les lots consommables et les trie FEFO/FIFO (déterministe)."""

    return sorted((lot for lot in lots if est_eligible(lot)), key=cle_fefo)


def planifier_prelevements(lots: Sequence[LotStock], quantite: float) -> PlanPrelevement:
    """Répartit `quantite` sur `lots` (déjà ordonnés) sans rien modifier."""

    reste = float(quantite)
    prelevements: list[Prelevement] = []

    for lot in lots:
        if reste <= TOLERANCE_QUANTITE:
            break

        disponible = float(lot.quantite_nette_disponible or 0.0)
        if disponible <= 0:
            continue

        a_prendre = min(disponible, reste)
        prelevements.append(Prelevement(lot=lot, quantite=a_prendre))
        reste -= a_prendre

    return PlanPrelevement(prelevements=prelevements, demande=float(quantite), reste=max(reste, 0.0))


class SelecteurLots:
    """
    Sélection des lots d’un ingrédient (FEFO puis FIFO).

    - Lit la base via AsyncSession
    - `verrouiller=True` : SELECT ... FOR UPDATE (à utiliser dans une transaction)
    - Ne modifie rien
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def selectionner(self, ingredient_id: UUID, *, verrouiller: bool = False) -> list[LotStock]:
        requete = (
            select(LotStock)
            .where(
                LotStock.ingredient_id == ingredient_id,
                LotStock.quantite_nette_disponible > 0,
                LotStock.statut.not_in(list(STATUTS_EXCLUS)),
                LotStock.verrouille.is_(False),
            )
            .order_by(
                # False (0) avant True (1) => lots datés d’abord, sans date à la fin
                LotStock.date_peremption.is_(None).asc(),
                LotStock.date_peremption.asc(),
                LotStock.recu_le.asc(),
                LotStock.id.asc(),
            )
        )
        if verrouiller:
            # populate_existing : les objets déjà en session sont rafraîchis avec la ligne verrouillée.
            requete = requete.with_for_update().execution_options(populate_existing=True)

        resultat = await self._session.execute(requete)
        # Le tri SQL limite le travail ; le tri Python garantit le même ordre quel que soit le SGBD.
        return ordonner_lots_eligibles(resultat.scalars().all())
