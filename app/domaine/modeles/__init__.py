"""Modèles SQLAlchemy.

On ne met aucune logique métier ici : uniquement la structure des tables.
"""

from app.domaine.modeles.base import BaseModele, ModeleHorodate
from app.domaine.modeles.referentiel import (
    Ingredient,
    LigneRecette,
    Menu,
    ProfilRendement,
    Recette,
    RendementProcede,
    Utilisateur,
)
from app.domaine.modeles.stock_tracabilite import LotStock, MouvementStock
from app.domaine.modeles.cuisine import EvenementTicket, LigneCommande, TicketCuisine

__all__ = [
    "BaseModele",
    "ModeleHorodate",
    # Référentiel
    "Utilisateur",
    "ProfilRendement",
    "RendementProcede",
    "Ingredient",
    "Recette",
    "LigneRecette",
    "Menu",
    # Stock & traçabilité
    "LotStock",
    "MouvementStock",
    # Cuisine
    "LigneCommande",
    "TicketCuisine",
    "EvenementTicket",
]
