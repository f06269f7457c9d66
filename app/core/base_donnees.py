from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.configuration import parametres_application

logger = logging.getLogger(__name__)


# Un moteur async est lié à la boucle asyncio qui l’a créé
# (httpx / uvicorn / tests peuvent en ouvrir plusieurs) : un moteur par boucle.
_moteurs_par_boucle: dict[int, AsyncEngine] = {}
_fabriques_par_boucle: dict[int, async_sessionmaker[AsyncSession]] = {}


def _cle_boucle() -> int:
    try:
        return id(asyncio.get_running_loop())
    except RuntimeError:
        # Hors boucle (imports, scripts synchrones)
        return 0


def creer_moteur_async(url: str | None = None) -> AsyncEngine:
    return create_async_engine(url or parametres_application.url_base_donnees, pool_pre_ping=True)


def creer_fabrique_session(moteur: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False : les objets retournés par les services restent lisibles après commit.
    return async_sessionmaker(bind=moteur, class_=AsyncSession, expire_on_commit=False)


def _obtenir_fabrique_session() -> async_sessionmaker[AsyncSession]:
    cle = _cle_boucle()

    fabrique = _fabriques_par_boucle.get(cle)
    if fabrique is None:
        moteur = creer_moteur_async()
        _moteurs_par_boucle[cle] = moteur
        fabrique = _fabriques_par_boucle[cle] = creer_fabrique_session(moteur)
        logger.info("moteur_bdd_cree boucle=%s", cle)

    return fabrique


async def fournir_session_async() -> AsyncIterator[AsyncSession]:
    fabrique = _obtenir_fabrique_session()
    async with fabrique() as session:
        yield session


async def fermer_moteurs() -> None:
    """Libère les pools de connexions (arrêt de l’application)."""

    moteurs = list(_moteurs_par_boucle.values())
    _moteurs_par_boucle.clear()
    _fabriques_par_boucle.clear()

    for moteur in moteurs:
        await moteur.dispose()
    logger.info("moteurs_bdd_fermes nb=%s", len(moteurs))
