from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domaine.enums.types import (
    CodeMotifMouvement,
    StatutLot,
    StatutTicket,
    TypeEvenementTicket,
    TypeMouvementStock,
    UniteMesure,
)
from app.domaine.modeles import EvenementTicket, Ingredient, LotStock, MouvementStock, TicketCuisine
from app.domaine.services.demarrer_ticket import ServiceDemarrageTicket
from app.domaine.services.liberer_stock import (
    LiberationIncomplete,
    ServiceLiberationStock,
    TicketIntrouvablePourLiberation,
)
from tests._donnees_helpers import creer_ingredient, creer_ticket, nouveau_lot, recharger


async def _ticket_demarre(session: AsyncSession) -> dict[str, UUID]:
    ingredient = await creer_ingredient(session, "Pommes de terre", stock_actuel=6.0)
    b1 = nouveau_lot(ingredient, "B1", 1.0, peremption_jour=2, recu_jour=0)
    b2 = nouveau_lot(ingredient, "B2", 5.0, peremption_jour=6, recu_jour=1)
    session.add_all([b1, b2])
    ticket = await creer_ticket(
        session,
        [dict(ingredient_id=ingredient.id, quantite=2.0, unite=UniteMesure.KG, pourcentage_perte=5.0)],
    )
    await session.commit()

    resultat = await ServiceDemarrageTicket(session).demarrer(ticket_id=ticket.id)
    assert resultat.succes, resultat.erreur

    return {"ingredient": ingredient.id, "b1": b1.id, "b2": b2.id, "ticket": ticket.id}


async def _retours(session: AsyncSession, ticket_id: UUID) -> list[MouvementStock]:
    res = await session.execute(
        select(MouvementStock).where(
            MouvementStock.ticket_id == ticket_id,
            MouvementStock.type_mouvement == TypeMouvementStock.RETOUR,
        )
    )
    return list(res.scalars().all())


async def _evenements_liberation(session: AsyncSession, ticket_id: UUID) -> list[EvenementTicket]:
    res = await session.execute(
        select(EvenementTicket).where(
            EvenementTicket.ticket_id == ticket_id,
            EvenementTicket.type_evenement == TypeEvenementTicket.STOCK_LIBERE,
        )
    )
    return list(res.scalars().all())


@pytest.mark.asyncio
async def test_liberation_restaure_exactement_le_stock(session_test: AsyncSession) -> None:
    ids = await _ticket_demarre(session_test)

    resultat = await ServiceLiberationStock(session_test).liberer(ticket_id=ids["ticket"], motif="Client parti")

    assert resultat.mouvements_liberes == 2
    assert resultat.quantite_restauree == pytest.approx(2.9167, abs=1e-4)
    assert len(resultat.mouvements_retour) == 2

    lot_b1 = await recharger(session_test, LotStock, ids["b1"])
    lot_b2 = await recharger(session_test, LotStock, ids["b2"])
    assert lot_b1.quantite_nette_disponible == pytest.approx(1.0)
    assert lot_b1.quantite_utilisee == pytest.approx(0.0)
    assert lot_b1.statut == StatutLot.DISPONIBLE
    assert lot_b2.quantite_nette_disponible == pytest.approx(5.0)
    assert lot_b2.quantite_utilisee == pytest.approx(0.0)
    for lot in (lot_b1, lot_b2):
        assert lot.quantite_brute_entree == pytest.approx(
            lot.quantite_nette_disponible + lot.quantite_utilisee + lot.quantite_perdue
        )

    assert (await recharger(session_test, Ingredient, ids["ingredient"])).stock_actuel == pytest.approx(6.0)

    retours = await _retours(session_test, ids["ticket"])
    assert len(retours) == 2
    assert {round(r.quantite, 4) for r in retours} == {1.0, 1.9167}
    for r in retours:
        assert r.code_motif == CodeMotifMouvement.ANNULATION_TICKET
        assert r.motif == "Client parti"
        assert r.mouvement_origine_id is not None

    # Le statut du ticket n’est pas touché par la libération.
    ticket = await recharger(session_test, TicketCuisine, ids["ticket"])
    assert ticket.inventaire_verrouille is False
    assert ticket.statut == StatutTicket.DEMARRE

    res = await session_test.execute(
        select(EvenementTicket).where(
            EvenementTicket.ticket_id == ids["ticket"],
            EvenementTicket.type_evenement == TypeEvenementTicket.STOCK_LIBERE,
        )
    )
    evenement = res.scalar_one()
    assert evenement.metadonnees == {
        "mouvements_liberes": 2,
        "mouvements_deja_compenses": 0,
        "mouvements_compenses_total": 2,
    }
    assert evenement.motif == "Client parti"


@pytest.mark.asyncio
async def test_relance_ne_recredite_jamais_un_mouvement(session_test: AsyncSession) -> None:
    ids = await _ticket_demarre(session_test)
    service = ServiceLiberationStock(session_test)

    await service.liberer(ticket_id=ids["ticket"], motif="Annulation")
    seconde = await service.liberer(ticket_id=ids["ticket"], motif="Annulation")

    assert seconde.mouvements_liberes == 0
    assert seconde.deja_libere is True
    assert len(await _retours(session_test, ids["ticket"])) == 2
    # Le verrou était déjà levé : pas de second événement de libération.
    assert len(await _evenements_liberation(session_test, ids["ticket"])) == 1
    assert (await recharger(session_test, LotStock, ids["b2"])).quantite_nette_disponible == pytest.approx(5.0)
    assert (await recharger(session_test, Ingredient, ids["ingredient"])).stock_actuel == pytest.approx(6.0)


class _LiberationAvecPanne(ServiceLiberationStock):
    """Échoue au n-ième mouvement (panne simulée de la couche stockage)."""

    def __init__(self, session: AsyncSession, *, echec_au: int) -> None:
        super().__init__(session)
        self._echec_au = echec_au
        self._appels = 0

    async def _compenser(self, mouvement_id, **kwargs):
        self._appels += 1
        if self._appels == self._echec_au:
            raise RuntimeError("panne stockage")
        return await super()._compenser(mouvement_id, **kwargs)


@pytest.mark.asyncio
async def test_liberation_interrompue_puis_reprise(session_test: AsyncSession) -> None:
    ids = await _ticket_demarre(session_test)

    with pytest.raises(LiberationIncomplete) as exc:
        await _LiberationAvecPanne(session_test, echec_au=2).liberer(ticket_id=ids["ticket"], motif="Annulation")

    assert len(exc.value.mouvements_restaures) == 1
    assert len(exc.value.mouvements_non_restaures) == 1

    # Le premier mouvement est définitivement compensé, le verrou reste posé.
    assert len(await _retours(session_test, ids["ticket"])) == 1
    assert (await recharger(session_test, TicketCuisine, ids["ticket"])).inventaire_verrouille is True
    await session_test.commit()

    reprise = await ServiceLiberationStock(session_test).liberer(ticket_id=ids["ticket"], motif="Annulation")

    assert reprise.mouvements_liberes == 1
    assert len(await _retours(session_test, ids["ticket"])) == 2
    assert (await recharger(session_test, LotStock, ids["b1"])).quantite_nette_disponible == pytest.approx(1.0)
    assert (await recharger(session_test, LotStock, ids["b2"])).quantite_nette_disponible == pytest.approx(5.0)
    assert (await recharger(session_test, Ingredient, ids["ingredient"])).stock_actuel == pytest.approx(6.0)
    assert (await recharger(session_test, TicketCuisine, ids["ticket"])).inventaire_verrouille is False

    (evenement,) = await _evenements_liberation(session_test, ids["ticket"])
    assert evenement.metadonnees == {
        "mouvements_liberes": 1,
        "mouvements_deja_compenses": 1,
        "mouvements_compenses_total": 2,
    }


@pytest.mark.asyncio
async def test_liberation_ticket_introuvable(session_test: AsyncSession) -> None:
    with pytest.raises(TicketIntrouvablePourLiberation):
        await ServiceLiberationStock(session_test).liberer(ticket_id=uuid4(), motif="Annulation")
