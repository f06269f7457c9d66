from __future__ import annotations

import enum


class UniteMesure(str, enum.Enum):
    """Unités supportées pour les ingrédients, lignes de recette et mouvements."""

    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PIECE = "pcs"
    PORTION = "portion"


class TypeProcede(str, enum.Enum):
    """Étapes de transformation pouvant affecter le rendement d’un ingrédient."""

    NETTOYAGE = "cleaning"
    EBULLITION = "boiling"
    FRITURE = "frying"
    FONTE = "rendering"
    CUISSON_FOUR = "baking"
    GRILLADE = "grilling"
    PORTIONNEMENT = "portioning"


class TypeMouvementStock(str, enum.Enum):
    RECEPTION = "receive"
    UTILISATION_RECETTE = "recipe_use"
    RETOUR = "return"
    MISE_AU_REBUT = "write_off"


class CodeMotifMouvement(str, enum.Enum):
    RECEPTION_MARCHANDISE = "GOODS_RECEIPT"
    DEMARRAGE_TICKET = "TICKET_START"
    ANNULATION_TICKET = "TICKET_CANCEL"
    MISE_AU_REBUT = "WRITE_OFF"


class RaisonMiseAuRebut(str, enum.Enum):
    """Raison déclarée lors de la mise au rebut d’un lot."""

    PERIME = "expired"
    AVARIE = "spoiled"
    ENDOMMAGE = "damaged"
    CONTAMINE = "contaminated"
    QUALITE = "quality_issue"
    SURPRODUCTION = "overproduction"
    ECART_INVENTAIRE = "inventory_discrepancy"
    AUTRE = "other"


class StatutLot(str, enum.Enum):
    """Statut d’un lot de stock.

    Le verrouillage manuel n’est pas un statut : voir `LotStock.verrouille`.
    """

    RECU = "received"
    DISPONIBLE = "available"
    EPUISE = "depleted"
    EXPIRE = "expired"


class StatutTicket(str, enum.Enum):
    """Statuts d’un ticket cuisine utiles au moteur de stock."""

    EN_ATTENTE = "queued"
    DEMARRE = "started"
    PRET = "ready"
    ANNULE = "cancelled"
    ECHOUE = "failed"


class TypeEvenementTicket(str, enum.Enum):
    DEMARRE = "started"
    STOCK_LIBERE = "inventory_released"
    ANNULE = "cancelled"
    ECHOUE = "failed"


class StatutLigneCommande(str, enum.Enum):
    EN_ATTENTE = "pending"
    EN_COURS = "in_progress"
    ANNULEE = "cancelled"
