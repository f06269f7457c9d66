from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.domaine.enums.types import RaisonMiseAuRebut


class RequeteReceptionLot(BaseModel):
    ingredient_id: UUID
    quantite_brute: float = Field(gt=0)
    cout_unitaire: float = Field(ge=0)
    date_peremption: date | None = None
    numero_lot: str | None = None
    recu_le: datetime | None = None
    operateur_id: UUID | None = None


class ReponseReceptionLot(BaseModel):
    lot_id: UUID
    numero_lot: str
    quantite_brute_entree: float
    quantite_nette_disponible: float
    quantite_perdue: float
    mouvement_id: UUID


class BesoinIngredientEstimeSchema(BaseModel):
    ingredient_id: UUID
    ingredient_nom: str
    quantite_nette: float
    multiplicateur_rendement: float
    quantite_brute: float
    unite: str
    disponible: float
    cout_estime: float
    suffisant: bool


class ReponseApercuConsommation(BaseModel):
    recette_id: UUID
    quantite: float
    realisable: bool
    cout_total_estime: float
    besoins: list[BesoinIngredientEstimeSchema]


class LotSchema(BaseModel):
    id: UUID
    ingredient_id: UUID
    numero_lot: str
    statut: str
    quantite_brute_entree: float
    quantite_nette_disponible: float
    quantite_utilisee: float
    quantite_perdue: float
    verrouille: bool
    motif_verrouillage: str | None = None
    verrouille_le: datetime | None = None


class RequeteVerrouillageLot(BaseModel):
    motif: str | None = None
    operateur_id: UUID | None = None


class RequeteMiseAuRebut(BaseModel):
    raison: RaisonMiseAuRebut
    quantite: float | None = Field(default=None, gt=0)
    note: str | None = None
    operateur_id: UUID | None = None


class ReponseMiseAuRebut(BaseModel):
    lot: LotSchema
    mouvement_id: UUID
    quantite: float
    cout: float
    rebut_complet: bool
