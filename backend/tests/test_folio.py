"""Tests for quote folio numbering and its collision retry."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from backend.app.models.client import Client
from backend.app.models.quote import Quote
from backend.app.services import quotes as quote_service
from backend.app.services.exceptions import FolioAllocationError
from backend.app.services.folio import (
    find_last_folio,
    folio_date_prefix,
    local_date,
    local_day_bounds,
    next_folio,
    parse_sequence,
)
from backend.app.services.quote_config import QuoteDefaults

# 2025-04-07 at noon in Mexico City
APRIL_7 = datetime(2025, 4, 7, 18, 0, tzinfo=timezone.utc)
ITEMS = [{"name": "Monitor", "quantity": 1, "unit_price": Decimal("10.00")}]


def _create(db: Session, defaults: QuoteDefaults, **kwargs) -> Quote:
    return quote_service.create_quote(
        db,
        email="compras@hospital.test",
        line_items=ITEMS,
        defaults=defaults,
        now=kwargs.pop("now", APRIL_7),
        **kwargs,
    )


class TestFolioFormat:
    def test_date_prefix(self) -> None:
        assert folio_date_prefix(date(2025, 4, 7)) == "BHL070425"

    def test_custom_prefix(self) -> None:
        assert folio_date_prefix(date(2025, 12, 31), prefix="XYZ") == "XYZ311225"

    def test_parse_multi_digit_sequence(self) -> None:
        assert parse_sequence("BHL070425C12", "BHL070425") == 12

    def test_parse_rejects_malformed(self) -> None:
        with pytest.raises(FolioAllocationError):
            parse_sequence("BHL070425CX", "BHL070425")

    def test_local_date_uses_configured_timezone(self) -> None:
        # 03:00 UTC on the 8th is still the 7th in Mexico City
        late = datetime(2025, 4, 8, 3, 0, tzinfo=timezone.utc)
        assert local_date(late, "America/Mexico_City") == date(2025, 4, 7)

    def test_naive_datetime_taken_as_utc(self) -> None:
        assert local_date(datetime(2025, 4, 8, 3, 0), "America/Mexico_City") == date(2025, 4, 7)

    def test_local_day_bounds_in_utc(self) -> None:
        start, end = local_day_bounds(date(2025, 4, 7), "America/Mexico_City")
        assert start == datetime(2025, 4, 7, 6, 0, tzinfo=timezone.utc)
        assert end == datetime(2025, 4, 8, 6, 0, tzinfo=timezone.utc)
        assert local_date(end - timedelta(microseconds=1), "America/Mexico_City") == date(2025, 4, 7)


class TestNextFolio:
    def test_first_of_day(self, db: Session) -> None:
        assert next_folio(db, day=date(2025, 4, 7)) == "BHL070425C1"

    def test_first_second_and_tenth(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        folios = [_create(db, quote_defaults).folio for _ in range(10)]
        assert folios[0] == "BHL070425C1"
        assert folios[1] == "BHL070425C2"
        assert folios[9] == "BHL070425C10"

    def test_ten_sorts_above_nine(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        for _ in range(10):
            _create(db, quote_defaults)
        assert find_last_folio(db, "BHL070425") == "BHL070425C10"
        assert next_folio(db, day=date(2025, 4, 7)) == "BHL070425C11"

    def test_sequence_restarts_each_day(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        _create(db, quote_defaults)
        _create(db, quote_defaults)
        next_day = datetime(2025, 4, 8, 18, 0, tzinfo=timezone.utc)
        assert _create(db, quote_defaults, now=next_day).folio == "BHL080425C1"

    def test_sequential_creations_are_unique(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        folios = [_create(db, quote_defaults).folio for _ in range(12)]
        assert len(set(folios)) == 12


class TestFolioCollision:
    def test_collision_is_retried(
        self,
        db: Session,
        quote_defaults: QuoteDefaults,
        hospital: Client,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A concurrent request that took the folio first forces a re-read."""
        first = _create(db, quote_defaults)
        assert first.folio == "BHL070425C1"

        real_next_folio = quote_service.next_folio
        calls: list[str] = []

        def stale_then_real(session: Session, *, day: date, prefix: str = "BHL") -> str:
            folio = "BHL070425C1" if not calls else real_next_folio(session, day=day, prefix=prefix)
            calls.append(folio)
            return folio

        monkeypatch.setattr(quote_service, "next_folio", stale_then_real)
        second = _create(db, quote_defaults, client_id=hospital.id)

        assert calls == ["BHL070425C1", "BHL070425C2"]
        assert second.folio == "BHL070425C2"
        assert db.query(Quote).count() == 2
        db.refresh(hospital)
        assert hospital.total_quotes == 1

    def test_exhausted_retries_raise_and_leave_nothing(
        self,
        db: Session,
        quote_defaults: QuoteDefaults,
        hospital: Client,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        _create(db, quote_defaults)
        attempts: list[int] = []

        def always_taken(session: Session, *, day: date, prefix: str = "BHL") -> str:
            attempts.append(1)
            return "BHL070425C1"

        monkeypatch.setattr(quote_service, "next_folio", always_taken)
        with pytest.raises(FolioAllocationError):
            _create(db, quote_defaults, client_id=hospital.id)

        assert len(attempts) == quote_defaults.max_folio_attempts
        assert db.query(Quote).count() == 1
        db.refresh(hospital)
        assert hospital.total_quotes == 0
        assert hospital.last_quote_date is None
