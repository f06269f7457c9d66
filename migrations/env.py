from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from app.core.configuration import parametres_application
from app.domaine.modeles import BaseModele  # importe tous les modèles via __init__

config = context.config

if config.config_file_name is not None:
    # disable_existing_loggers=False : garde les loggers applicatifs déjà créés.
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = BaseModele.metadata


def resoudre_url() -> str:
    """URL posée sur la config Alembic (tests, outillage), sinon URL_BASE_DONNEES."""

    return config.get_main_option("sqlalchemy.url") or parametres_application.url_base_donnees


def _configurer_contexte(**options) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **options)


def migrer_hors_ligne() -> None:
    """Génère le SQL sans connexion (alembic upgrade --sql)."""

    _configurer_contexte(url=resoudre_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def _migrer_sur_connexion(connexion: Connection) -> None:
    # SQLite ne sait pas modifier une table en place : mode batch.
    _configurer_contexte(connection=connexion, render_as_batch=connexion.dialect.name == "sqlite")

    with context.begin_transaction():
        context.run_migrations()


async def migrer_en_ligne() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = resoudre_url()

    moteur = async_engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    async with moteur.connect() as connexion:
        await connexion.run_sync(_migrer_sur_connexion)

    await moteur.dispose()


if context.is_offline_mode():
    migrer_hors_ligne()
else:
    asyncio.run(migrer_en_ligne())
