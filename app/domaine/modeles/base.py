from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def maintenant_utc() -> datetime:
    return datetime.now(timezone.utc)


# JSONB sous PostgreSQL, JSON générique ailleurs (SQLite en tests).
TypeJSON = JSON().with_variant(JSONB(), "postgresql")


def colonne_enum(type_enum: type[enum.Enum], nom: str) -> Enum:
    """Enum stocké en VARCHAR avec la *valeur* des membres (ex: "recipe_use").

    Pas d’enum natif PostgreSQL : ajouter une valeur ne demande pas de migration de type.
    """

    return Enum(
        type_enum,
        name=nom,
        native_enum=False,
        length=50,
        values_callable=lambda membres: [m.value for m in membres],
    )


class BaseModele(DeclarativeBase):
    """Base declarative SQLAlchemy.

    Les noms d’attributs restent en français.
    """


class ModeleHorodate(BaseModele):
    """Mixin de dates techniques."""

    __abstract__ = True

    cree_le: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=maintenant_utc, nullable=False)
    mis_a_jour_le: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=maintenant_utc,
        onupdate=maintenant_utc,
        nullable=False,
    )
