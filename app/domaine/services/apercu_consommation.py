from __future__ import annotations

"""Aperçu de consommation d’une recette (lecture seule).

Même calcul que le démarrage de ticket (rendement, marge de perte, unités,
ordre FEFO/FIFO) mais sans verrou ni écriture : sert à l’estimation de coût
et à l’affichage avant de lancer une préparation.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.configuration import parametres_application
from app.domaine.enums.types import UniteMesure
from app.domaine.modeles.referentiel import Ingredient, LigneRecette, ProfilRendement, Recette
from app.domaine.services.calcul_rendement import (
    ProfilRendementInstantane,
    calculer_besoin_brut,
    calculer_rendement_effectif,
)
from app.domaine.services.conversion_unites import convertir
from app.domaine.services.selecteur_lots import SelecteurLots, planifier_prelevements


class ErreurApercuConsommation(Exception):
    """Erreur générique d’aperçu."""


class RecetteIntrouvable(ErreurApercuConsommation):
    pass


@dataclass(frozen=True)
class BesoinIngredientEstime:
    ingredient_id: UUID
    ingredient_nom: str
    quantite_nette: float
    multiplicateur_rendement: float
    quantite_brute: float
    unite: str
    disponible: float
    cout_estime: float
    suffisant: bool


@dataclass(frozen=True)
class ApercuConsommation:
    recette_id: UUID
    quantite: float
    besoins: list[BesoinIngredientEstime]

    @property
    def cout_total_estime(self) -> float:
        return sum(b.cout_estime for b in self.besoins)

    @property
    def realisable(self) -> bool:
        return all(b.suffisant for b in self.besoins)


class ServiceApercuConsommation:
    def __init__(
        self,
        session: AsyncSession,
        *,
        chaine_procedes_par_defaut: Sequence[str] | None = None,
    ) -> None:
        self._session = session
        self._selecteur = SelecteurLots(session)
        if chaine_procedes_par_defaut is None:
            chaine_procedes_par_defaut = parametres_application.chaine_procedes_par_defaut
        self._chaine_par_defaut = tuple(chaine_procedes_par_defaut)

    async def estimer(self, *, recette_id: UUID, quantite: float = 1.0) -> ApercuConsommation:
        """Estime les besoins bruts et le coût FEFO d’une recette.

        Une paire d’unités non convertible lève `ErreurConversionUnite`.
        """

        async with self._session.begin():
            recette = await self._session.get(Recette, recette_id)
            if recette is None:
                raise RecetteIntrouvable("Recette introuvable.")

            resultat = await self._session.execute(
                select(LigneRecette)
                .where(LigneRecette.recette_id == recette_id)
                .order_by(LigneRecette.ordre.asc(), LigneRecette.id.asc())
                .options(
                    selectinload(LigneRecette.ingredient)
                    .selectinload(Ingredient.profil_rendement)
                    .selectinload(ProfilRendement.procedes)
                )
            )
            lignes = list(resultat.scalars().all())

            besoins = [await self._estimer_ligne(ligne, float(quantite)) for ligne in lignes]

        return ApercuConsommation(recette_id=recette_id, quantite=float(quantite), besoins=besoins)

    async def _estimer_ligne(self, ligne: LigneRecette, quantite: float) -> BesoinIngredientEstime:
        ingredient = ligne.ingredient
        profil = ProfilRendementInstantane.depuis_modele(ingredient.profil_rendement)
        chaine = ligne.chaine_procedes if ligne.chaine_procedes is not None else self._chaine_par_defaut
        multiplicateur = calculer_rendement_effectif(profil, chaine)

        quantite_nette = float(ligne.quantite) * quantite
        unite_ingredient = ingredient.unite or UniteMesure.KG
        besoin = convertir(
            calculer_besoin_brut(quantite_nette, multiplicateur, ligne.pourcentage_perte),
            ligne.unite or unite_ingredient,
            unite_ingredient,
        )

        lots = await self._selecteur.selectionner(ingredient.id)
        plan = planifier_prelevements(lots, besoin)

        return BesoinIngredientEstime(
            ingredient_id=ingredient.id,
            ingredient_nom=ingredient.nom,
            quantite_nette=quantite_nette,
            multiplicateur_rendement=multiplicateur,
            quantite_brute=besoin,
            unite=unite_ingredient.value,
            disponible=sum(float(l.quantite_nette_disponible) for l in lots),
            cout_estime=sum(p.quantite * float(p.lot.cout_unitaire or 0.0) for p in plan.prelevements),
            suffisant=plan.satisfait,
        )
