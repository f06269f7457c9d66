from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routeur import router
from app.api.sante import routeur_sante
from app.core.base_donnees import fermer_moteurs
from app.core.logging_config import configurer_logging


@asynccontextmanager
async def _cycle_de_vie(_: FastAPI) -> AsyncIterator[None]:
    yield
    await fermer_moteurs()


def creer_application() -> FastAPI:
    configurer_logging()

    application = FastAPI(title="Cuisine - Moteur de stock", lifespan=_cycle_de_vie)

    # Routes
    application.include_router(router)

    # Santé
    application.include_router(routeur_sante)

    return application


app = creer_application()
