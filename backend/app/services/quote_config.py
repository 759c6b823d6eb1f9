"""Explicit configuration for the quote core.

The quote services never read ``settings`` themselves; the API layer builds a
``QuoteDefaults`` once and passes it in, so tests can pin tax rate, timezone
and folio prefix without touching the environment.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from backend.app.core.config import Settings


@dataclass(frozen=True)
class QuoteDefaults:
    tax_rate: Decimal
    currency: str
    payment_conditions: str
    delivery_time: str
    warranty: str
    observations: str
    folio_prefix: str = "BHL"
    timezone: str = "America/Mexico_City"
    max_folio_attempts: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> QuoteDefaults:
        return cls(
            tax_rate=Decimal(str(settings.DEFAULT_TAX_RATE)),
            currency=settings.DEFAULT_CURRENCY,
            payment_conditions=settings.TERMS_PAYMENT_CONDITIONS,
            delivery_time=settings.TERMS_DELIVERY_TIME,
            warranty=settings.TERMS_WARRANTY,
            observations=settings.TERMS_OBSERVATIONS,
            folio_prefix=settings.FOLIO_PREFIX,
            timezone=settings.TIMEZONE,
            max_folio_attempts=settings.FOLIO_MAX_ATTEMPTS,
        )
