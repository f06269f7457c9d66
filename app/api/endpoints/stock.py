from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependances import fournir_session
from app.api.schemas.stock import (
    BesoinIngredientEstimeSchema,
    LotSchema,
    ReponseApercuConsommation,
    ReponseMiseAuRebut,
    ReponseReceptionLot,
    RequeteMiseAuRebut,
    RequeteReceptionLot,
    RequeteVerrouillageLot,
)
from app.domaine.modeles.stock_tracabilite import LotStock
from app.domaine.services.apercu_consommation import RecetteIntrouvable, ServiceApercuConsommation
from app.domaine.services.conversion_unites import ErreurConversionUnite
from app.domaine.services.gestion_lots import (
    DonneesInvalidesGestionLot,
    LotDejaVerrouille,
    LotEpuise,
    LotIntrouvable,
    LotNonVerrouille,
    LotVerrouille,
    ServiceGestionLot,
)
from app.domaine.services.receptionner_lot import (
    DonneesInvalidesReception,
    IngredientIntrouvable,
    ServiceReceptionLot,
)


routeur_stock_interne = APIRouter(
    prefix="/stock",
    tags=["stock_interne"],
)


@routeur_stock_interne.post(
    "/lots/receptionner",
    response_model=ReponseReceptionLot,
    status_code=status.HTTP_201_CREATED,
)
async def receptionner_lot(
    requete: RequeteReceptionLot,
    session: AsyncSession = Depends(fournir_session),
) -> ReponseReceptionLot:
    service = ServiceReceptionLot(session)

    try:
        resultat = await service.receptionner(
            ingredient_id=requete.ingredient_id,
            quantite_brute=requete.quantite_brute,
            cout_unitaire=requete.cout_unitaire,
            date_peremption=requete.date_peremption,
            numero_lot=requete.numero_lot,
            recu_le=requete.recu_le,
            operateur_id=requete.operateur_id,
        )
    except IngredientIntrouvable as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except DonneesInvalidesReception as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    lot = resultat.lot
    return ReponseReceptionLot(
        lot_id=lot.id,
        numero_lot=lot.numero_lot,
        quantite_brute_entree=lot.quantite_brute_entree,
        quantite_nette_disponible=lot.quantite_nette_disponible,
        quantite_perdue=lot.quantite_perdue,
        mouvement_id=resultat.mouvement.id,
    )


@routeur_stock_interne.get(
    "/recettes/{recette_id}/apercu-consommation",
    response_model=ReponseApercuConsommation,
)
async def apercu_consommation(
    recette_id: UUID,
    quantite: float = Query(default=1.0, gt=0),
    session: AsyncSession = Depends(fournir_session),
) -> ReponseApercuConsommation:
    service = ServiceApercuConsommation(session)

    try:
        apercu = await service.estimer(recette_id=recette_id, quantite=quantite)
    except RecetteIntrouvable as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ErreurConversionUnite as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return ReponseApercuConsommation(
        recette_id=apercu.recette_id,
        quantite=apercu.quantite,
        realisable=apercu.realisable,
        cout_total_estime=apercu.cout_total_estime,
        besoins=[
            BesoinIngredientEstimeSchema(
                ingredient_id=b.ingredient_id,
                ingredient_nom=b.ingredient_nom,
                quantite_nette=b.quantite_nette,
                multiplicateur_rendement=b.multiplicateur_rendement,
                quantite_brute=b.quantite_brute,
                unite=b.unite,
                disponible=b.disponible,
                cout_estime=b.cout_estime,
                suffisant=b.suffisant,
            )
            for b in apercu.besoins
        ],
    )


def _lot_schema(lot: LotStock) -> LotSchema:
    return LotSchema(
        id=lot.id,
        ingredient_id=lot.ingredient_id,
        numero_lot=lot.numero_lot,
        statut=lot.statut.value,
        quantite_brute_entree=lot.quantite_brute_entree,
        quantite_nette_disponible=lot.quantite_nette_disponible,
        quantite_utilisee=lot.quantite_utilisee,
        quantite_perdue=lot.quantite_perdue,
        verrouille=lot.verrouille,
        motif_verrouillage=lot.motif_verrouillage,
        verrouille_le=lot.verrouille_le,
    )


@routeur_stock_interne.post("/lots/{lot_id}/verrou", response_model=LotSchema)
async def verrouiller_lot(
    lot_id: UUID,
    requete: RequeteVerrouillageLot | None = None,
    session: AsyncSession = Depends(fournir_session),
) -> LotSchema:
    requete = requete or RequeteVerrouillageLot()

    try:
        lot = await ServiceGestionLot(session).verrouiller(
            lot_id=lot_id,
            motif=requete.motif,
            operateur_id=requete.operateur_id,
        )
    except LotIntrouvable as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except LotDejaVerrouille as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return _lot_schema(lot)


@routeur_stock_interne.delete("/lots/{lot_id}/verrou", response_model=LotSchema)
async def deverrouiller_lot(
    lot_id: UUID,
    session: AsyncSession = Depends(fournir_session),
) -> LotSchema:
    try:
        lot = await ServiceGestionLot(session).deverrouiller(lot_id=lot_id)
    except LotIntrouvable as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except LotNonVerrouille as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return _lot_schema(lot)


@routeur_stock_interne.post("/lots/{lot_id}/mettre-au-rebut", response_model=ReponseMiseAuRebut)
async def mettre_lot_au_rebut(
    lot_id: UUID,
    requete: RequeteMiseAuRebut,
    session: AsyncSession = Depends(fournir_session),
) -> ReponseMiseAuRebut:
    try:
        resultat = await ServiceGestionLot(session).mettre_au_rebut(
            lot_id=lot_id,
            raison=requete.raison,
            quantite=requete.quantite,
            note=requete.note,
            operateur_id=requete.operateur_id,
        )
    except LotIntrouvable as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except (LotVerrouille, LotEpuise) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except DonneesInvalidesGestionLot as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return ReponseMiseAuRebut(
        lot=_lot_schema(resultat.lot),
        mouvement_id=resultat.mouvement.id,
        quantite=resultat.quantite,
        cout=resultat.cout,
        rebut_complet=resultat.rebut_complet,
    )
