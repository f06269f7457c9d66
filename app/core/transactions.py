from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def executer_transaction(
    session: AsyncSession,
    *,
    action: Callable[[], Awaitable[T]],
) -> T:
    """Exécute `action` dans une transaction unique (tout ou rien).

    `session.begin()` fait le rollback automatiquement si `action` lève :
    l’exception remonte telle quelle à l’appelant, sans effet de bord persisté.

    Utilisation typique :

        resultat = await executer_transaction(
            session,
            action=lambda: service.demarrer_dans_transaction(ticket_id=..., chef_id=...),
        )
    """

    try:
        async with session.begin():
            return await action()
    except Exception:
        logger.info("transaction_annulee rollback=ok")
        raise
