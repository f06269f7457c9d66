from __future__ import annotations

import logging

import pytest

from app.core.configuration import ParametresApplication
from app.core.logging_config import configurer_logging


def test_chaine_procedes_par_defaut(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHAINE_PROCEDES_PAR_DEFAUT", raising=False)

    assert ParametresApplication(_env_file=None).chaine_procedes_par_defaut == ["cleaning"]


def test_chaine_procedes_depuis_l_environnement(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAINE_PROCEDES_PAR_DEFAUT", '["cleaning", "boiling"]')
    monkeypatch.setenv("URL_BASE_DONNEES", "postgresql+asyncpg://u:p@db:5432/cuisine")

    parametres = ParametresApplication(_env_file=None)

    assert parametres.chaine_procedes_par_defaut == ["cleaning", "boiling"]
    assert parametres.url_base_donnees == "postgresql+asyncpg://u:p@db:5432/cuisine"


def test_configurer_logging_respecte_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    racine = logging.getLogger()
    niveau_initial = racine.level
    monkeypatch.setenv("LOG_LEVEL", "warning")

    try:
        configurer_logging()
        assert racine.level == logging.WARNING
    finally:
        racine.setLevel(niveau_initial)
