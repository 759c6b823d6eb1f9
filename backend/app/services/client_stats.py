"""Client quote statistics.

``total_quotes``, ``total_amount`` and ``last_quote_date`` are only ever
changed here, by the quote lifecycle, and always as in-database arithmetic
(``SET col = col + :delta``) so concurrent quote operations on the same
client cannot lose updates. None of these functions commit.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from backend.app.models.client import Client


def record_quote_created(db: Session, client_id: UUID, at: datetime) -> None:
    db.execute(
        update(Client)
        .where(Client.id == client_id)
        .values(total_quotes=Client.total_quotes + 1, last_quote_date=at)
        .execution_options(synchronize_session="fetch")
    )


def record_quote_deleted(db: Session, client_id: UUID) -> None:
    db.execute(
        update(Client)
        .where(Client.id == client_id)
        .values(
            total_quotes=case(
                (Client.total_quotes > 0, Client.total_quotes - 1),
                else_=0,
            )
        )
        .execution_options(synchronize_session="fetch")
    )


def record_quote_confirmed(db: Session, client_id: UUID, amount: Decimal) -> None:
    db.execute(
        update(Client)
        .where(Client.id == client_id)
        .values(total_amount=Client.total_amount + amount)
        .execution_options(synchronize_session="fetch")
    )
