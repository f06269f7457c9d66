from __future__ import annotations

"""Endpoints internes : tickets cuisine (démarrage, libération, annulation, échec).

Le démarrage renvoie toujours le résultat complet, y compris en échec :
le code HTTP dépend du code d’erreur métier.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependances import fournir_session
from app.api.schemas.tickets_cuisine import (
    ErreurSchema,
    LotConsommeSchema,
    MouvementInventaireSchema,
    ReponseDemarrageTicket,
    ReponseLiberationStock,
    ReponseTransitionTicket,
    RequeteDemarrageTicket,
    RequeteTransitionTicket,
    TicketCuisineSchema,
)
from app.domaine.modeles.cuisine import TicketCuisine
from app.domaine.modeles.stock_tracabilite import MouvementStock
from app.domaine.services.cycle_ticket import (
    ServiceCycleTicket,
    TicketIntrouvablePourTransition,
    TransitionInterdite,
)
from app.domaine.services.demarrer_ticket import ServiceDemarrageTicket
from app.domaine.services.liberer_stock import (
    LiberationIncomplete,
    ResultatLiberation,
    ServiceLiberationStock,
    TicketIntrouvablePourLiberation,
)


routeur_tickets_cuisine_interne = APIRouter(
    prefix="/tickets-cuisine",
    tags=["tickets_cuisine_interne"],
)


STATUTS_HTTP_PAR_CODE = {
    "TICKET_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATUS": status.HTTP_409_CONFLICT,
    "ALREADY_LOCKED": status.HTTP_409_CONFLICT,
    "INSUFFICIENT_STOCK": status.HTTP_409_CONFLICT,
    "UNIT_CONVERSION_ERROR": 422,
    "START_TICKET_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _ticket_schema(ticket: TicketCuisine) -> TicketCuisineSchema:
    return TicketCuisineSchema(
        id=ticket.id,
        numero=ticket.numero,
        statut=ticket.statut.value,
        inventaire_verrouille=ticket.inventaire_verrouille,
        chef_assigne_id=ticket.chef_assigne_id,
        demarre_le=ticket.demarre_le,
    )


def _mouvement_schema(mouvement: MouvementStock) -> MouvementInventaireSchema:
    return MouvementInventaireSchema(
        id=mouvement.id,
        type_mouvement=mouvement.type_mouvement.value,
        ingredient_id=mouvement.ingredient_id,
        lot_id=mouvement.lot_id,
        quantite=mouvement.quantite,
        unite=mouvement.unite.value,
        quantite_brute=mouvement.quantite_brute,
        quantite_nette=mouvement.quantite_nette,
        cout_total=mouvement.cout_total,
    )


def _liberation_schema(resultat: ResultatLiberation) -> ReponseLiberationStock:
    return ReponseLiberationStock(
        ticket_id=resultat.ticket_id,
        mouvements_liberes=resultat.mouvements_liberes,
        quantite_restauree=resultat.quantite_restauree,
        mouvements_retour=resultat.mouvements_retour,
    )


@routeur_tickets_cuisine_interne.post(
    "/{ticket_id}/demarrer",
    response_model=ReponseDemarrageTicket,
    responses={
        404: {"model": ReponseDemarrageTicket},
        409: {"model": ReponseDemarrageTicket},
        422: {"model": ReponseDemarrageTicket},
        500: {"model": ReponseDemarrageTicket},
    },
)
async def demarrer_ticket(
    ticket_id: UUID,
    requete: RequeteDemarrageTicket | None = None,
    session: AsyncSession = Depends(fournir_session),
):
    service = ServiceDemarrageTicket(session)
    resultat = await service.demarrer(
        ticket_id=ticket_id,
        chef_id=requete.chef_id if requete is not None else None,
    )

    reponse = ReponseDemarrageTicket(
        succes=resultat.succes,
        ticket=_ticket_schema(resultat.ticket) if resultat.ticket is not None else None,
        mouvements_inventaire=[_mouvement_schema(m) for m in resultat.mouvements],
        lots_consommes=[
            LotConsommeSchema(
                lot_id=c.lot_id,
                ingredient_id=c.ingredient_id,
                quantite_brute=c.quantite_brute,
                quantite_nette=c.quantite_nette,
                cout=c.cout,
            )
            for c in resultat.lots_consommes
        ],
        erreur=(
            ErreurSchema(code=resultat.erreur.code, message=resultat.erreur.message, details=resultat.erreur.details)
            if resultat.erreur is not None
            else None
        ),
    )

    if resultat.succes:
        return reponse

    code_http = STATUTS_HTTP_PAR_CODE.get(resultat.erreur.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code_http, content=reponse.model_dump(mode="json"))


@routeur_tickets_cuisine_interne.post(
    "/{ticket_id}/liberer-stock",
    response_model=ReponseLiberationStock,
)
async def liberer_stock_ticket(
    ticket_id: UUID,
    requete: RequeteTransitionTicket | None = None,
    session: AsyncSession = Depends(fournir_session),
) -> ReponseLiberationStock:
    requete = requete or RequeteTransitionTicket()

    # Garde "au plus une fois" : seul un ticket au stock verrouillé est libéré.
    async with session.begin():
        ticket = await session.get(TicketCuisine, ticket_id)
        if ticket is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket cuisine introuvable.")
        verrouille = ticket.inventaire_verrouille

    if not verrouille:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Aucun stock verrouillé pour ce ticket.",
        )

    service = ServiceLiberationStock(session)
    try:
        resultat = await service.liberer(
            ticket_id=ticket_id,
            motif=requete.motif or "Libération manuelle",
            operateur_id=requete.operateur_id,
        )
    except TicketIntrouvablePourLiberation as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except LiberationIncomplete as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": str(e),
                "mouvements_restaures": [str(i) for i in e.mouvements_restaures],
                "mouvements_non_restaures": [str(i) for i in e.mouvements_non_restaures],
            },
        ) from e

    return _liberation_schema(resultat)


async def _terminer_ticket(
    session: AsyncSession,
    *,
    ticket_id: UUID,
    requete: RequeteTransitionTicket | None,
    annulation: bool,
) -> ReponseTransitionTicket:
    requete = requete or RequeteTransitionTicket()
    service = ServiceCycleTicket(session)
    transition = service.annuler if annulation else service.echouer

    try:
        resultat = await transition(ticket_id=ticket_id, motif=requete.motif, operateur_id=requete.operateur_id)
    except TicketIntrouvablePourTransition as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except TransitionInterdite as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except LiberationIncomplete as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": str(e),
                "mouvements_non_restaures": [str(i) for i in e.mouvements_non_restaures],
            },
        ) from e

    return ReponseTransitionTicket(
        ticket=_ticket_schema(resultat.ticket),
        statut_precedent=resultat.statut_precedent.value,
        liberation=_liberation_schema(resultat.liberation) if resultat.liberation is not None else None,
    )


@routeur_tickets_cuisine_interne.post("/{ticket_id}/annuler", response_model=ReponseTransitionTicket)
async def annuler_ticket(
    ticket_id: UUID,
    requete: RequeteTransitionTicket | None = None,
    session: AsyncSession = Depends(fournir_session),
) -> ReponseTransitionTicket:
    return await _terminer_ticket(session, ticket_id=ticket_id, requete=requete, annulation=True)


@routeur_tickets_cuisine_interne.post("/{ticket_id}/echouer", response_model=ReponseTransitionTicket)
async def echouer_ticket(
    ticket_id: UUID,
    requete: RequeteTransitionTicket | None = None,
    session: AsyncSession = Depends(fournir_session),
) -> ReponseTransitionTicket:
    return await _terminer_ticket(session, ticket_id=ticket_id, requete=requete, annulation=False)
