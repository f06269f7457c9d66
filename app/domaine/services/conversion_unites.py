from __future__ import annotations

"""Conversion d’unités (masse, volume, équivalence pièce/portion).

Fonction pure, sans état. Une paire non convertible est une erreur de
modélisation de recette : elle n’est jamais "devinée".
"""

from app.domaine.enums.types import UniteMesure


class ErreurConversionUnite(ValueError):
    """Aucun facteur de conversion connu entre les deux unités."""

    code = "UNIT_CONVERSION_ERROR"

    def __init__(self, unite_source: str, unite_cible: str) -> None:
        super().__init__(f"Conversion impossible de {unite_source} vers {unite_cible}.")
        self.unite_source = unite_source
        self.unite_cible = unite_cible


# Facteurs "source -> cible" : valeur_cible = valeur_source * facteur.
# Le sens inverse divise par le même facteur (aller-retour exact).
FACTEURS_CONVERSION: dict[tuple[UniteMesure, UniteMesure], float] = {
    (UniteMesure.KG, UniteMesure.G): 1000.0,
    (UniteMesure.L, UniteMesure.ML): 1000.0,
    (UniteMesure.PIECE, UniteMesure.PORTION): 1.0,
}


def _normaliser(unite: UniteMesure | str) -> UniteMesure | str:
    if isinstance(unite, UniteMesure):
        return unite
    try:
        return UniteMesure(str(unite).strip().lower())
    except ValueError:
        return str(unite)


def convertir(valeur: float, unite_source: UniteMesure | str, unite_cible: UniteMesure | str) -> float:
    """Convertit `valeur` de `unite_source` vers `unite_cible`.

    Lève `ErreurConversionUnite` si la paire n’est pas dans la table.
    """

    source = _normaliser(unite_source)
    cible = _normaliser(unite_cible)

    if source == cible:
        return valeur

    facteur = FACTEURS_CONVERSION.get((source, cible))  # type: ignore[arg-type]
    if facteur is not None:
        return valeur * facteur

    facteur_inverse = FACTEURS_CONVERSION.get((cible, source))  # type: ignore[arg-type]
    if facteur_inverse is not None:
        return valeur / facteur_inverse

    raise ErreurConversionUnite(_libelle(source), _libelle(cible))


def _libelle(unite: UniteMesure | str) -> str:
    return unite.value if isinstance(unite, UniteMesure) else str(unite)
