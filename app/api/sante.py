from __future__ import annotations

from fastapi import APIRouter

routeur_sante = APIRouter(tags=["sante"])


@routeur_sante.get("/health")
async def health() -> dict[str, str]:
    """Vérifie seulement que l’application répond (aucun accès base)."""

    return {"statut": "ok", "service": "moteur-stock"}
