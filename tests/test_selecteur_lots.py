from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.domaine.enums.types import StatutLot
from app.domaine.modeles import Ingredient
from app.domaine.services.selecteur_lots import (
    SelecteurLots,
    ordonner_lots_eligibles,
    planifier_prelevements,
)
from tests._donnees_helpers import creer_ingredient, nouveau_lot


def _ingredient_factice() -> Ingredient:
    from uuid import uuid4

    return Ingredient(id=uuid4(), nom="Carottes")


def test_ordre_fefo_puis_fifo_deterministe() -> None:
    ingredient = _ingredient_factice()
    b1 = nouveau_lot(ingredient, "B1", 1.0, peremption_jour=5, recu_jour=1)
    b2 = nouveau_lot(ingredient, "B2", 1.0, peremption_jour=3, recu_jour=2)
    b3 = nouveau_lot(ingredient, "B3", 1.0, peremption_jour=None, recu_jour=0)

    for entree in ([b1, b2, b3], [b3, b2, b1], [b2, b3, b1]):
        assert [l.numero_lot for l in ordonner_lots_eligibles(entree)] == ["B2", "B1", "B3"]


def test_meme_peremption_depart_par_date_de_reception() -> None:
    ingredient = _ingredient_factice()
    recent = nouveau_lot(ingredient, "RECENT", 1.0, peremption_jour=4, recu_jour=3)
    ancien = nouveau_lot(ingredient, "ANCIEN", 1.0, peremption_jour=4, recu_jour=1)

    assert [l.numero_lot for l in ordonner_lots_eligibles([recent, ancien])] == ["ANCIEN", "RECENT"]


def test_lots_non_eligibles_exclus() -> None:
    ingredient = _ingredient_factice()
    ok = nouveau_lot(ingredient, "OK", 1.0, peremption_jour=5, recu_jour=1)
    vide = nouveau_lot(ingredient, "VIDE", 0.0, peremption_jour=1, recu_jour=0)
    epuise = nouveau_lot(ingredient, "EPUISE", 1.0, peremption_jour=1, recu_jour=0, statut=StatutLot.EPUISE)
    expire = nouveau_lot(ingredient, "EXPIRE", 1.0, peremption_jour=1, recu_jour=0, statut=StatutLot.EXPIRE)
    bloque = nouveau_lot(ingredient, "BLOQUE", 1.0, peremption_jour=1, recu_jour=0, verrouille=True)
    recu = nouveau_lot(ingredient, "RECU", 1.0, peremption_jour=9, recu_jour=0, statut=StatutLot.RECU)

    ordonnes = ordonner_lots_eligibles([ok, vide, epuise, expire, bloque, recu])

    assert [l.numero_lot for l in ordonnes] == ["OK", "RECU"]


def test_plan_prelevement_repartit_dans_l_ordre() -> None:
    ingredient = _ingredient_factice()
    b1 = nouveau_lot(ingredient, "B1", 1.0, peremption_jour=2, recu_jour=0)
    b2 = nouveau_lot(ingredient, "B2", 5.0, peremption_jour=6, recu_jour=0)

    plan = planifier_prelevements([b1, b2], 2.9167)

    assert plan.satisfait
    assert [(p.lot.numero_lot, round(p.quantite, 4)) for p in plan.prelevements] == [("B1", 1.0), ("B2", 1.9167)]
    # Le plan ne modifie pas les lots
    assert b1.quantite_nette_disponible == 1.0


def test_plan_prelevement_insuffisant() -> None:
    ingredient = _ingredient_factice()
    lots = [
        nouveau_lot(ingredient, "B1", 1.0, peremption_jour=2, recu_jour=0),
        nouveau_lot(ingredient, "B2", 1.0, peremption_jour=6, recu_jour=0),
    ]

    plan = planifier_prelevements(lots, 2.9167)

    assert not plan.satisfait
    assert plan.preleve == pytest.approx(2.0)
    assert plan.reste == pytest.approx(0.9167, abs=1e-4)


def test_plan_prelevement_tolerance_flottante() -> None:
    ingredient = _ingredient_factice()
    lots = [nouveau_lot(ingredient, "B1", 1.9995, peremption_jour=2, recu_jour=0)]

    assert planifier_prelevements(lots, 2.0).satisfait


@pytest.mark.asyncio
async def test_selectionner_depuis_la_base(session_test: AsyncSession) -> None:
    ingredient = await creer_ingredient(session_test, "Oignons")
    autre = await creer_ingredient(session_test, "Ail")

    session_test.add_all(
        [
            nouveau_lot(ingredient, "B1", 1.0, peremption_jour=5, recu_jour=1),
            nouveau_lot(ingredient, "B2", 1.0, peremption_jour=3, recu_jour=2),
            nouveau_lot(ingredient, "B3", 1.0, peremption_jour=None, recu_jour=0),
            nouveau_lot(ingredient, "EXPIRE", 1.0, peremption_jour=1, recu_jour=0, statut=StatutLot.EXPIRE),
            nouveau_lot(ingredient, "BLOQUE", 1.0, peremption_jour=1, recu_jour=0, verrouille=True),
            nouveau_lot(autre, "AUTRE", 1.0, peremption_jour=1, recu_jour=0),
        ]
    )
    await session_test.commit()

    selecteur = SelecteurLots(session_test)
    lots = await selecteur.selectionner(ingredient.id)

    assert [l.numero_lot for l in lots] == ["B2", "B1", "B3"]
