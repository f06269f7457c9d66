from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.configuration import parametres_application
from app.domaine.enums.types import TypeProcede, UniteMesure
from app.domaine.modeles import (
    Ingredient,
    LigneCommande,
    LigneRecette,
    LotStock,
    Menu,
    ProfilRendement,
    Recette,
    RendementProcede,
    TicketCuisine,
)
from app.domaine.services.receptionner_lot import ServiceReceptionLot


async def seed_demo() -> None:
    """Seed de données de démonstration.

    Objectif : pouvoir démarrer immédiatement un ticket :
    - 1 ingrédient (pommes de terre, rendement 0.8, nettoyage 10 %)
    - 3 lots reçus (B1 proche péremption, B2 plus lointain, B3 sans date)
    - 1 recette (2 kg nets, 5 % de marge) + menu
    - 1 ligne de commande + 1 ticket EN_ATTENTE
    """

    engine = create_async_engine(parametres_application.url_base_donnees, pool_pre_ping=True)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async with session_maker() as session:
        async with session.begin():
            res = await session.execute(select(Ingredient).where(Ingredient.nom == "Pommes de terre"))
            ingredient = res.scalar_one_or_none()
            if ingredient is None:
                profil = ProfilRendement(nom="Pommes de terre", ratio_rendement_base=0.8)
                session.add(profil)
                await session.flush()
                session.add(
                    RendementProcede(
                        profil_rendement_id=profil.id,
                        type_procede=TypeProcede.NETTOYAGE,
                        ordre=1,
                        perte_humidite=0.1,
                    )
                )
                ingredient = Ingredient(nom="Pommes de terre", unite=UniteMesure.KG, profil_rendement_id=profil.id)
                session.add(ingredient)
                await session.flush()

        # Lots : réception via le service (net = brut * 0.8), une seule fois.
        async with session.begin():
            res_lots = await session.execute(select(LotStock.id).where(LotStock.ingredient_id == ingredient.id))
            lots_existants = res_lots.first() is not None

        if not lots_existants:
            reception = ServiceReceptionLot(session)
            aujourd_hui = date.today()
            for numero, brut, peremption, jours in (
                ("B1", 1.25, aujourd_hui + timedelta(days=3), 5),
                ("B2", 5.0, aujourd_hui + timedelta(days=7), 10),
                ("B3", 2.5, None, 1),
            ):
                await reception.receptionner(
                    ingredient_id=ingredient.id,
                    quantite_brute=brut,
                    cout_unitaire=1.5,
                    date_peremption=peremption,
                    numero_lot=numero,
                    recu_le=datetime.now(timezone.utc) - timedelta(days=jours),
                )

        async with session.begin():
            resr = await session.execute(select(Recette).where(Recette.nom == "Purée maison"))
            recette = resr.scalar_one_or_none()
            if recette is None:
                recette = Recette(nom="Purée maison")
                session.add(recette)
                await session.flush()
                session.add(
                    LigneRecette(
                        recette_id=recette.id,
                        ingredient_id=ingredient.id,
                        quantite=2.0,
                        unite=UniteMesure.KG,
                        pourcentage_perte=5.0,
                    )
                )

            resm = await session.execute(select(Menu).where(Menu.nom == "Purée"))
            menu = resm.scalar_one_or_none()
            if menu is None:
                menu = Menu(nom="Purée", prix=9.5, recette_id=recette.id)
                session.add(menu)
                await session.flush()

            ligne = LigneCommande(menu_id=menu.id, quantite=1.0)
            session.add(ligne)
            await session.flush()

            ticket = TicketCuisine(numero="DEMO-1", ligne_commande_id=ligne.id)
            session.add(ticket)
            await session.flush()

        print("Seed OK")
        print(f"ingredient_id={ingredient.id}")
        print(f"recette_id={recette.id}")
        print(f"ticket_id={ticket.id}")

    await engine.dispose()


def main() -> None:
    asyncio.run(seed_demo())


if __name__ == "__main__":
    main()
