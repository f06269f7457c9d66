from __future__ import annotations

import logging
import os

FORMAT_CLE_VALEUR = "%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s"


def _niveau(variable: str, defaut: str) -> int:
    valeur = os.getenv(variable, defaut).upper().strip()
    return getattr(logging, valeur, logging.INFO)


def configurer_logging() -> None:
    """Configuration de logging du moteur de stock.

    - format clé=valeur sur stdout
    - LOG_LEVEL : niveau global (INFO par défaut)
    - LOG_SQL=1 : requêtes SQLAlchemy visibles (sinon WARNING)

    Idempotent : un second appel ne fait qu’ajuster les niveaux.
    """

    niveau = _niveau("LOG_LEVEL", "INFO")
    racine = logging.getLogger()

    if racine.handlers:
        racine.setLevel(niveau)
    else:
        logging.basicConfig(level=niveau, format=FORMAT_CLE_VALEUR)

    sql_actif = os.getenv("LOG_SQL", "0").strip().lower() in {"1", "true", "oui"}
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_actif else logging.WARNING)
