from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domaine.enums.types import UniteMesure
from app.domaine.modeles import LotStock, MouvementStock, Recette
from app.domaine.services.apercu_consommation import RecetteIntrouvable, ServiceApercuConsommation
from app.domaine.services.conversion_unites import ErreurConversionUnite
from tests._donnees_helpers import creer_ingredient, creer_ticket, nouveau_lot


async def _recette_id(session: AsyncSession, nom: str):
    res = await session.execute(select(Recette.id).where(Recette.nom == nom))
    return res.scalar_one()


@pytest.mark.asyncio
async def test_apercu_estime_brut_et_cout_fefo(session_test: AsyncSession) -> None:
    ingredient = await creer_ingredient(session_test, "Pommes de terre")
    session_test.add_all(
        [
            nouveau_lot(ingredient, "B1", 1.0, peremption_jour=2, recu_jour=0, cout_unitaire=2.0),
            nouveau_lot(ingredient, "B2", 5.0, peremption_jour=6, recu_jour=1, cout_unitaire=3.0),
        ]
    )
    await creer_ticket(
        session_test,
        [dict(ingredient_id=ingredient.id, quantite=2.0, unite=UniteMesure.KG, pourcentage_perte=5.0)],
        nom_recette="Purée",
    )
    await session_test.commit()
    recette_id = await _recette_id(session_test, "Purée")
    await session_test.commit()

    apercu = await ServiceApercuConsommation(session_test, chaine_procedes_par_defaut=["cleaning"]).estimer(
        recette_id=recette_id,
        quantite=1.0,
    )

    (besoin,) = apercu.besoins
    assert besoin.ingredient_nom == "Pommes de terre"
    assert besoin.multiplicateur_rendement == pytest.approx(0.72)
    assert besoin.quantite_nette == pytest.approx(2.0)
    assert besoin.quantite_brute == pytest.approx(2.9167, abs=1e-4)
    assert besoin.unite == "kg"
    assert besoin.disponible == pytest.approx(6.0)
    assert besoin.suffisant is True
    # 1.0 * 2.0 (B1) + 1.9167 * 3.0 (B2)
    assert besoin.cout_estime == pytest.approx(2.0 + 1.9167 * 3.0, abs=1e-3)
    assert apercu.realisable is True
    assert apercu.cout_total_estime == pytest.approx(besoin.cout_estime)

    # Lecture seule : aucun lot ni mouvement modifié
    res = await session_test.execute(select(func.sum(LotStock.quantite_nette_disponible)))
    assert res.scalar_one() == pytest.approx(6.0)
    res = await session_test.execute(select(func.count(MouvementStock.id)))
    assert res.scalar_one() == 0


@pytest.mark.asyncio
async def test_apercu_signale_le_stock_insuffisant(session_test: AsyncSession) -> None:
    ingredient = await creer_ingredient(session_test, "Huile", ratio_base=None)
    session_test.add(nouveau_lot(ingredient, "H1", 0.5, peremption_jour=90, recu_jour=0))
    await creer_ticket(
        session_test,
        [dict(ingredient_id=ingredient.id, quantite=300.0, unite=UniteMesure.G, chaine_procedes=[])],
        nom_recette="Frites",
    )
    await session_test.commit()
    recette_id = await _recette_id(session_test, "Frites")
    await session_test.commit()

    apercu = await ServiceApercuConsommation(session_test).estimer(recette_id=recette_id, quantite=3.0)

    (besoin,) = apercu.besoins
    assert besoin.quantite_brute == pytest.approx(0.9)
    assert besoin.suffisant is False
    assert apercu.realisable is False


@pytest.mark.asyncio
async def test_apercu_unite_non_convertible(session_test: AsyncSession) -> None:
    ingredient = await creer_ingredient(session_test, "Lait", unite=UniteMesure.L, ratio_base=None)
    await creer_ticket(
        session_test,
        [dict(ingredient_id=ingredient.id, quantite=1.0, unite=UniteMesure.KG)],
        nom_recette="Béchamel",
    )
    await session_test.commit()
    recette_id = await _recette_id(session_test, "Béchamel")
    await session_test.commit()

    with pytest.raises(ErreurConversionUnite):
        await ServiceApercuConsommation(session_test).estimer(recette_id=recette_id)


@pytest.mark.asyncio
async def test_apercu_recette_introuvable(session_test: AsyncSession) -> None:
    with pytest.raises(RecetteIntrouvable):
        await ServiceApercuConsommation(session_test).estimer(recette_id=uuid4())
