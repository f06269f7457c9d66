from __future__ import annotations

"""Calcul de rendement (brut -> net) d’un ingrédient.

Règles :
- multiplicateur initial = ratio_rendement_base du profil (1 sans profil)
- pour chaque procédé de la chaîne, dans l’ordre, si le profil le décrit :
    a) * (1 - perte_humidite)
    b) * (1 + absorption_huile)
    c) * ratio_rendement
  un procédé absent du profil est ignoré.
- brut = net / multiplicateur

Fonctions pures : réutilisées par le démarrage des tickets et par l’aperçu de coûts.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from app.domaine.modeles.referentiel import ProfilRendement


@dataclass(frozen=True)
class RendementProcedeInstantane:
    type_procede: str
    perte_humidite: float | None = None
    absorption_huile: float | None = None
    ratio_rendement: float | None = None


@dataclass(frozen=True)
class ProfilRendementInstantane:
    """Copie en lecture seule d’un profil de rendement."""

    ratio_rendement_base: float = 1.0
    procedes: tuple[RendementProcedeInstantane, ...] = field(default_factory=tuple)

    @classmethod
    def depuis_modele(cls, profil: ProfilRendement | None) -> ProfilRendementInstantane | None:
        """Construit l’instantané ; `profil.procedes` doit déjà être chargé."""

        if profil is None:
            return None

        return cls(
            # Un ratio nul ou absent n’a pas de sens physique : on retombe sur 1.
            ratio_rendement_base=float(profil.ratio_rendement_base or 1.0),
            procedes=tuple(
                RendementProcedeInstantane(
                    type_procede=_valeur(p.type_procede),
                    perte_humidite=p.perte_humidite,
                    absorption_huile=p.absorption_huile,
                    ratio_rendement=p.ratio_rendement,
                )
                for p in profil.procedes
            ),
        )

    def procede(self, type_procede: str) -> RendementProcedeInstantane | None:
        for p in self.procedes:
            if p.type_procede == type_procede:
                return p
        return None


def _valeur(type_procede: object) -> str:
    return str(getattr(type_procede, "value", type_procede))


def calculer_rendement_effectif(
    profil: ProfilRendementInstantane | None,
    chaine_procedes: Sequence[str],
) -> float:
    """Multiplicateur de rendement (part du brut conservée en net)."""

    if profil is None:
        return 1.0

    multiplicateur = float(profil.ratio_rendement_base)

    for type_procede in chaine_procedes:
        rendement = profil.procede(_valeur(type_procede))
        if rendement is None:
            continue

        if rendement.perte_humidite is not None:
            multiplicateur *= 1.0 - float(rendement.perte_humidite)
        if rendement.absorption_huile is not None:
            multiplicateur *= 1.0 + float(rendement.absorption_huile)
        if rendement.ratio_rendement is not None:
            multiplicateur *= float(rendement.ratio_rendement)

    return multiplicateur


def quantite_brute_pour_nette(quantite_nette: float, multiplicateur: float) -> float:
    if multiplicateur <= 0:
        return quantite_nette
    return quantite_nette / multiplicateur


def calculer_besoin_brut(quantite_nette: float, multiplicateur: float, pourcentage_perte: float) -> float:
    """Brut à prélever : net / rendement, majoré de la marge de perte (%)."""

    brut = quantite_brute_pour_nette(quantite_nette, multiplicateur)
    return brut * (1.0 + float(pourcentage_perte or 0.0) / 100.0)
