from __future__ import annotations

"""Démarrage d’un ticket cuisine : déduction atomique du stock.

Quand le chef démarre un ticket :
- la recette liée (ligne de commande -> menu -> recette) est convertie en
  besoins BRUTS par ingrédient (rendement, marge de perte, unités)
- chaque besoin est prélevé sur les lots (FEFO puis FIFO)
- lots, agrégats ingrédients, mouvements, ticket et historique sont écrits
  dans UNE transaction : un seul ingrédient insuffisant => aucun effet de bord.

`demarrer()` ne lève jamais : l’appelant reçoit toujours un résultat
(succès ou erreur structurée).
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.configuration import parametres_application
from app.domaine.enums.types import (
    CodeMotifMouvement,
    StatutLigneCommande,
    StatutLot,
    StatutTicket,
    TypeEvenementTicket,
    TypeMouvementStock,
    UniteMesure,
)
from app.domaine.modeles.base import maintenant_utc
from app.domaine.modeles.cuisine import EvenementTicket, LigneCommande, TicketCuisine
from app.domaine.modeles.referentiel import Ingredient, LigneRecette, Menu, ProfilRendement
from app.domaine.modeles.stock_tracabilite import MouvementStock
from app.domaine.services.calcul_rendement import (
    ProfilRendementInstantane,
    calculer_besoin_brut,
    calculer_rendement_effectif,
)
from app.domaine.services.conversion_unites import ErreurConversionUnite, convertir
from app.domaine.services.selecteur_lots import (
    TOLERANCE_QUANTITE,
    SelecteurLots,
    planifier_prelevements,
)

logger = logging.getLogger(__name__)


class ErreurDemarrageTicket(Exception):
    """Erreur générique de démarrage (erreur inattendue d’une couche basse)."""

    code = "START_TICKET_FAILED"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class TicketIntrouvable(ErreurDemarrageTicket):
    code = "TICKET_NOT_FOUND"


class StatutInvalide(ErreurDemarrageTicket):
    code = "INVALID_STATUS"


class InventaireDejaVerrouille(ErreurDemarrageTicket):
    code = "ALREADY_LOCKED"


class ConversionUniteImpossible(ErreurDemarrageTicket):
    """La recette référence une unité non convertible vers l’unité de l’ingrédient."""

    code = "UNIT_CONVERSION_ERROR"


class StockInsuffisant(ErreurDemarrageTicket):
    """Cas métier normal : les lots éligibles ne couvrent pas le besoin."""

    code = "INSUFFICIENT_STOCK"


@dataclass(frozen=True)
class LotConsomme:
    lot_id: UUID
    ingredient_id: UUID
    quantite_brute: float
    quantite_nette: float
    cout: float

    def en_dict(self) -> dict[str, Any]:
        return {
            "lot_id": str(self.lot_id),
            "ingredient_id": str(self.ingredient_id),
            "quantite_brute": self.quantite_brute,
            "quantite_nette": self.quantite_nette,
            "cout": self.cout,
        }


@dataclass(frozen=True)
class ErreurResultat:
    code: str
    message: str
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ResultatDemarrageTicket:
    succes: bool
    ticket: TicketCuisine | None = None
    mouvements: list[MouvementStock] = field(default_factory=list)
    lots_consommes: list[LotConsomme] = field(default_factory=list)
    erreur: ErreurResultat | None = None

    @property
    def cout_total(self) -> float:
        return sum(c.cout for c in self.lots_consommes)


class ServiceDemarrageTicket:
    """Démarre un ticket cuisine et consomme le stock de sa recette.

    Règles :
    - Préconditions, dans l’ordre : ticket existant, statut EN_ATTENTE, inventaire non verrouillé
    - Transaction unique (tout ou rien)
    - Verrous : ticket, puis ingrédients (triés par id), puis lots de chaque ingrédient

    NOTE :
    - `demarrer()` ouvre la transaction et convertit toute erreur en résultat.
    - `demarrer_dans_transaction()` lève les erreurs typées, pour un appelant qui gère
      déjà la transaction.
    """

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

    async def demarrer(self, *, ticket_id: UUID, chef_id: UUID | None = None) -> ResultatDemarrageTicket:
        debut = time.monotonic()
        logger.info("ticket_demarrage_debut ticket_id=%s chef_id=%s", ticket_id, chef_id)

        try:
            async with self._session.begin():
                resultat = await self.demarrer_dans_transaction(ticket_id=ticket_id, chef_id=chef_id)
        except ErreurDemarrageTicket as e:
            # session.begin() a déjà fait le rollback.
            logger.warning(
                "ticket_demarrage_echec ticket_id=%s code=%s message=%s duree_ms=%d",
                ticket_id,
                e.code,
                e.message,
                _duree_ms(debut),
            )
            return ResultatDemarrageTicket(
                succes=False,
                erreur=ErreurResultat(code=e.code, message=e.message, details=e.details),
            )
        except Exception as e:
            logger.exception("ticket_demarrage_erreur_inattendue ticket_id=%s", ticket_id)
            return ResultatDemarrageTicket(
                succes=False,
                erreur=ErreurResultat(
                    code=ErreurDemarrageTicket.code,
                    message="Échec du démarrage du ticket cuisine.",
                    details={"cause": str(e)},
                ),
            )

        logger.info(
            "ticket_demarrage_ok ticket_id=%s nb_mouvements=%s nb_lots=%s cout_total=%.2f duree_ms=%d",
            ticket_id,
            len(resultat.mouvements),
            len(resultat.lots_consommes),
            resultat.cout_total,
            _duree_ms(debut),
        )
        return resultat

    async def demarrer_dans_transaction(
        self,
        *,
        ticket_id: UUID,
        chef_id: UUID | None = None,
    ) -> ResultatDemarrageTicket:
        """Même logique que `demarrer` mais sans ouvrir de transaction ; lève les erreurs."""

        ticket = await self._charger_ticket_verrouille(ticket_id)
        if ticket is None:
            raise TicketIntrouvable("Ticket cuisine introuvable.", details={"ticket_id": str(ticket_id)})

        if ticket.statut != StatutTicket.EN_ATTENTE:
            raise StatutInvalide(
                f"Impossible de démarrer un ticket au statut {ticket.statut.value}.",
                details={"statut": ticket.statut.value},
            )

        if ticket.inventaire_verrouille:
            raise InventaireDejaVerrouille("Le stock est déjà verrouillé pour ce ticket.")

        ligne_commande = await self._charger_ligne_commande(ticket.ligne_commande_id)
        lignes_recette = await self._charger_lignes_recette(ligne_commande)

        if not lignes_recette:
            logger.info("ticket_demarrage_sans_ingredients ticket_id=%s", ticket_id)
            self._marquer_demarre(ticket, ligne_commande, chef_id)
            self._ajouter_evenement_demarrage(ticket, chef_id, {"sans_ingredients": True})
            await self._session.flush()
            return ResultatDemarrageTicket(succes=True, ticket=ticket)

        quantite_commande = float(ligne_commande.quantite or 1.0) if ligne_commande is not None else 1.0
        ingredients = await self._verrouiller_ingredients({l.ingredient_id for l in lignes_recette})

        logger.info(
            "ticket_demarrage_recette ticket_id=%s nb_ingredients=%s quantite=%s",
            ticket_id,
            len(lignes_recette),
            quantite_commande,
        )

        mouvements: list[MouvementStock] = []
        consommations: list[LotConsomme] = []

        for ligne in lignes_recette:
            m, c = await self._consommer_ingredient(
                ticket=ticket,
                ligne=ligne,
                ingredient=ingredients[ligne.ingredient_id],
                quantite_commande=quantite_commande,
                chef_id=chef_id,
            )
            mouvements.extend(m)
            consommations.extend(c)

        self._marquer_demarre(ticket, ligne_commande, chef_id)
        self._ajouter_evenement_demarrage(
            ticket,
            chef_id,
            {
                "lots_consommes": [c.en_dict() for c in consommations],
                "cout_total": sum(c.cout for c in consommations),
            },
        )

        # flush final : ids des mouvements + écriture réelle dans la transaction
        await self._session.flush()

        return ResultatDemarrageTicket(
            succes=True,
            ticket=ticket,
            mouvements=mouvements,
            lots_consommes=consommations,
        )

    async def _consommer_ingredient(
        self,
        *,
        ticket: TicketCuisine,
        ligne: LigneRecette,
        ingredient: Ingredient,
        quantite_commande: float,
        chef_id: UUID | None,
    ) -> tuple[list[MouvementStock], list[LotConsomme]]:
        profil = ProfilRendementInstantane.depuis_modele(ingredient.profil_rendement)
        chaine = ligne.chaine_procedes if ligne.chaine_procedes is not None else self._chaine_par_defaut
        multiplicateur = calculer_rendement_effectif(profil, chaine)

        quantite_nette = float(ligne.quantite) * quantite_commande
        brut_avec_perte = calculer_besoin_brut(quantite_nette, multiplicateur, ligne.pourcentage_perte)

        unite_ingredient = ingredient.unite or UniteMesure.KG
        unite_ligne = ligne.unite or unite_ingredient
        try:
            besoin = convertir(brut_avec_perte, unite_ligne, unite_ingredient)
        except ErreurConversionUnite as e:
            raise ConversionUniteImpossible(
                f"Conversion impossible de {e.unite_source} vers {e.unite_cible} pour {ingredient.nom}.",
                details={
                    "ingredient_id": str(ingredient.id),
                    "ingredient_nom": ingredient.nom,
                    "unite_source": e.unite_source,
                    "unite_cible": e.unite_cible,
                },
            ) from e

        lots = await self._selecteur.selectionner(ingredient.id, verrouiller=True)
        plan = planifier_prelevements(lots, besoin)

        logger.debug(
            "ticket_demarrage_lots ingredient_id=%s besoin=%.3f unite=%s nb_lots=%s",
            ingredient.id,
            besoin,
            unite_ingredient.value,
            len(lots),
        )

        if not plan.satisfait:
            logger.warning(
                "ticket_demarrage_stock_insuffisant ticket_id=%s ingredient_id=%s requis=%.3f disponible=%.3f manque=%.3f unite=%s",
                ticket.id,
                ingredient.id,
                besoin,
                plan.preleve,
                plan.reste,
                unite_ingredient.value,
            )
            raise StockInsuffisant(
                f"Stock insuffisant pour l’ingrédient : {ingredient.nom}.",
                details={
                    "ingredient_id": str(ingredient.id),
                    "ingredient_nom": ingredient.nom,
                    "requis": besoin,
                    "disponible": plan.preleve,
                    "manque": plan.reste,
                    "unite": unite_ingredient.value,
                },
            )

        mouvements: list[MouvementStock] = []
        consommations: list[LotConsomme] = []

        for prelevement in plan.prelevements:
            lot = prelevement.lot
            a_prendre = prelevement.quantite

            lot.quantite_nette_disponible = float(lot.quantite_nette_disponible) - a_prendre
            lot.quantite_utilisee = float(lot.quantite_utilisee or 0.0) + a_prendre
            if lot.quantite_nette_disponible < TOLERANCE_QUANTITE:
                lot.statut = StatutLot.EPUISE

            quantite_nette_tranche = a_prendre * multiplicateur
            cout = a_prendre * float(lot.cout_unitaire or 0.0)

            mouvement = MouvementStock(
                type_mouvement=TypeMouvementStock.UTILISATION_RECETTE,
                ingredient_id=ingredient.id,
                lot_id=lot.id,
                ticket_id=ticket.id,
                quantite=a_prendre,
                unite=unite_ingredient,
                quantite_brute=a_prendre,
                quantite_nette=quantite_nette_tranche,
                facteur_perte=1.0 - multiplicateur,
                cout_unitaire=float(lot.cout_unitaire or 0.0),
                cout_total=cout,
                motif=TypeMouvementStock.UTILISATION_RECETTE.value,
                code_motif=CodeMotifMouvement.DEMARRAGE_TICKET,
                operateur_id=chef_id,
            )
            self._session.add(mouvement)
            mouvements.append(mouvement)

            consommations.append(
                LotConsomme(
                    lot_id=lot.id,
                    ingredient_id=ingredient.id,
                    quantite_brute=a_prendre,
                    quantite_nette=quantite_nette_tranche,
                    cout=cout,
                )
            )

        ingredient.stock_actuel = max(0.0, float(ingredient.stock_actuel or 0.0) - plan.preleve)

        logger.info(
            "ticket_demarrage_ingredient_ok ticket_id=%s ingredient=%s consomme=%.3f unite=%s nb_lots=%s",
            ticket.id,
            ingredient.nom,
            plan.preleve,
            unite_ingredient.value,
            len(plan.prelevements),
        )

        return mouvements, consommations

    @staticmethod
    def _marquer_demarre(
        ticket: TicketCuisine,
        ligne_commande: LigneCommande | None,
        chef_id: UUID | None,
    ) -> None:
        maintenant = maintenant_utc()

        ticket.statut = StatutTicket.DEMARRE
        ticket.demarre_le = maintenant
        ticket.chef_assigne_id = chef_id
        ticket.inventaire_verrouille = True

        if ligne_commande is not None:
            ligne_commande.statut = StatutLigneCommande.EN_COURS
            ligne_commande.statut_modifie_le = maintenant
            ligne_commande.debut_preparation_le = maintenant

    def _ajouter_evenement_demarrage(
        self,
        ticket: TicketCuisine,
        chef_id: UUID | None,
        metadonnees: dict[str, Any],
    ) -> None:
        self._session.add(
            EvenementTicket(
                ticket_id=ticket.id,
                type_evenement=TypeEvenementTicket.DEMARRE,
                statut_precedent=StatutTicket.EN_ATTENTE,
                statut_nouveau=StatutTicket.DEMARRE,
                acteur_id=chef_id,
                metadonnees=metadonnees,
            )
        )

    async def _charger_ticket_verrouille(self, ticket_id: UUID) -> TicketCuisine | None:
        resultat = await self._session.execute(
            select(TicketCuisine)
            .where(TicketCuisine.id == ticket_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return resultat.scalar_one_or_none()

    async def _charger_ligne_commande(self, ligne_commande_id: UUID | None) -> LigneCommande | None:
        if ligne_commande_id is None:
            return None
        resultat = await self._session.execute(
            select(LigneCommande)
            .where(LigneCommande.id == ligne_commande_id)
            .execution_options(populate_existing=True)
        )
        return resultat.scalar_one_or_none()

    async def _charger_lignes_recette(self, ligne_commande: LigneCommande | None) -> list[LigneRecette]:
        if ligne_commande is None or ligne_commande.menu_id is None:
            return []

        resultat = await self._session.execute(select(Menu.recette_id).where(Menu.id == ligne_commande.menu_id))
        recette_id = resultat.scalar_one_or_none()
        if recette_id is None:
            return []

        resultat_lignes = await self._session.execute(
            select(LigneRecette)
            .where(LigneRecette.recette_id == recette_id)
            .order_by(LigneRecette.ordre.asc(), LigneRecette.id.asc())
        )
        return list(resultat_lignes.scalars().all())

    async def _verrouiller_ingredients(self, ingredient_ids: set[UUID]) -> dict[UUID, Ingredient]:
        # Ordre de verrouillage fixe (par id) : deux tickets concurrents ne peuvent pas s’interbloquer.
        resultat = await self._session.execute(
            select(Ingredient)
            .where(Ingredient.id.in_(ingredient_ids))
            .order_by(Ingredient.id.asc())
            .options(selectinload(Ingredient.profil_rendement).selectinload(ProfilRendement.procedes))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {i.id: i for i in resultat.scalars().all()}


def _duree_ms(debut: float) -> int:
    return int((time.monotonic() - debut) * 1000)
