from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.configuration import parametres_application
from app.domaine.modeles import BaseModele  # importe aussi tous les modèles


def url_base_tests(tmp_path: Path) -> str:
    """URL de la base de test.

    `URL_BASE_DONNEES_TESTS` si défini (PostgreSQL : verrous FOR UPDATE réels),
    sinon un fichier SQLite propre au test.
    """

    if parametres_application.url_base_donnees_tests:
        return parametres_application.url_base_donnees_tests
    return f"sqlite+aiosqlite:///{tmp_path / 'tests.db'}"


@pytest_asyncio.fixture
async def moteur_test(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Moteur de base de données pour les tests.

    Scope function pour éviter les problèmes de boucle asyncio :
    un moteur async ne doit jamais être partagé entre plusieurs event loops.
    """

    moteur = create_async_engine(url_base_tests(tmp_path), pool_pre_ping=True)

    async with moteur.begin() as connexion:
        # Repartir d’un schéma propre à chaque test
        await connexion.run_sync(BaseModele.metadata.drop_all)
        await connexion.run_sync(BaseModele.metadata.create_all)

    try:
        yield moteur
    finally:
        await moteur.dispose()


@pytest_asyncio.fixture
async def session_test(moteur_test: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Session SQLAlchemy async isolée par test.

    Les services ouvrent eux-mêmes leur transaction (`session.begin()`) :
    un test doit donc `commit()` ses données avant d’appeler un service.
    """

    fabrique = async_sessionmaker(
        bind=moteur_test,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with fabrique() as session:
        try:
            yield session
        finally:
            # Sécurité : rollback si le test a oublié de commit
            await session.rollback()
