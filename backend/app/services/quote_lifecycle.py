"""Quote status state machine.

The allowed moves live in ``ALLOWED_TRANSITIONS``; the side effects of
entering a status live in ``ENTRY_HOOKS``. Services call
``apply_transition`` and never compare status strings themselves.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from backend.app.models.quote import Quote, QuoteStatus
from backend.app.services.client_stats import record_quote_confirmed
from backend.app.services.exceptions import IllegalTransitionError, ValidationError

S = QuoteStatus

ALLOWED_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    S.DRAFT: frozenset({S.SENT, S.PENDING, S.CANCELLED}),
    S.SENT: frozenset({S.PENDING, S.CONFIRMED, S.REJECTED, S.CANCELLED, S.EXPIRED}),
    S.PENDING: frozenset({S.SENT, S.CONFIRMED, S.REJECTED, S.CANCELLED, S.EXPIRED}),
    S.CONFIRMED: frozenset(),
    S.REJECTED: frozenset(),
    S.CANCELLED: frozenset(),
    S.EXPIRED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)
EDITABLE_STATUSES = frozenset({S.DRAFT, S.SENT, S.PENDING})
DELETABLE_STATUSES = frozenset({S.DRAFT})


EntryHook = Callable[[Session, Quote, datetime], None]


def _on_sent(db: Session, quote: Quote, now: datetime) -> None:
    # sent <-> pending may repeat; keep the first send date
    if quote.sent_date is None:
        quote.sent_date = now


def _on_confirmed(db: Session, quote: Quote, now: datetime) -> None:
    quote.confirmed_date = now
    if quote.client_id is not None:
        record_quote_confirmed(db, quote.client_id, quote.total)


def _on_rejected(db: Session, quote: Quote, now: datetime) -> None:
    quote.rejected_date = now


ENTRY_HOOKS: dict[QuoteStatus, EntryHook] = {
    S.SENT: _on_sent,
    S.CONFIRMED: _on_confirmed,
    S.REJECTED: _on_rejected,
}


def parse_status(value: str | QuoteStatus) -> QuoteStatus:
    try:
        return QuoteStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in QuoteStatus)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {allowed}")


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def apply_transition(
    db: Session, quote: Quote, target: QuoteStatus, now: datetime
) -> QuoteStatus:
    """Move *quote* to *target*, running its entry hook. Returns the old status.

    Does NOT commit.
    """
    current = quote.status
    if not can_transition(current, target):
        raise IllegalTransitionError(
            f"Cannot change quote {quote.folio} from '{current.value}' to '{target.value}'"
        )
    hook = ENTRY_HOOKS.get(target)
    if hook is not None:
        hook(db, quote, now)
    quote.status = target
    return current


def ensure_editable(quote: Quote) -> None:
    if quote.status not in EDITABLE_STATUSES:
        raise IllegalTransitionError(
            f"Quote {quote.folio} is '{quote.status.value}' and can no longer be edited"
        )


def ensure_deletable(quote: Quote) -> None:
    if quote.status not in DELETABLE_STATUSES:
        raise IllegalTransitionError(
            f"Only draft quotes can be deleted; {quote.folio} is '{quote.status.value}'"
        )
