"""Tests for the quote status lifecycle and its client-statistics side effects."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from backend.app.models.audit import AuditLog
from backend.app.models.client import Client
from backend.app.models.quote import Quote, QuoteStatus
from backend.app.services import quotes as quote_service
from backend.app.services.exceptions import (
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from backend.app.services.quote_config import QuoteDefaults
from backend.app.services.quote_lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    can_transition,
    parse_status,
)

NOW = datetime(2025, 4, 7, 18, 0, tzinfo=timezone.utc)
SCENARIO_ITEMS = [
    {"name": "Monitor", "quantity": 2, "unit_price": Decimal("100")},
    {"name": "Cable ECG", "quantity": 1, "unit_price": Decimal("50")},
]


def _quote(db: Session, defaults: QuoteDefaults, client: Client | None = None) -> Quote:
    return quote_service.create_quote(
        db,
        email="compras@hospital.test",
        line_items=SCENARIO_ITEMS,
        defaults=defaults,
        client_id=client.id if client else None,
        now=NOW,
    )


def _move(db: Session, quote: Quote, *statuses: QuoteStatus) -> Quote:
    for s in statuses:
        quote = quote_service.transition_quote(db, quote.id, s, now=NOW)
    return quote


class TestTransitionTable:
    def test_terminal_statuses(self) -> None:
        assert TERMINAL_STATUSES == {
            QuoteStatus.CONFIRMED,
            QuoteStatus.REJECTED,
            QuoteStatus.CANCELLED,
            QuoteStatus.EXPIRED,
        }

    def test_every_status_has_an_entry(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(QuoteStatus)

    def test_sent_and_pending_reach_each_other(self) -> None:
        assert can_transition(QuoteStatus.SENT, QuoteStatus.PENDING)
        assert can_transition(QuoteStatus.PENDING, QuoteStatus.SENT)

    def test_draft_cannot_confirm_directly(self) -> None:
        assert not can_transition(QuoteStatus.DRAFT, QuoteStatus.CONFIRMED)

    def test_no_self_transitions(self) -> None:
        for s in QuoteStatus:
            assert not can_transition(s, s)

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_status("approved")


class TestCreate:
    def test_reference_totals_and_defaults(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _quote(db, quote_defaults)
        assert quote.status == QuoteStatus.DRAFT
        assert quote.subtotal == Decimal("250.00")
        assert quote.tax_amount == Decimal("40.00")
        assert quote.total == Decimal("290.00")
        assert quote.terms_payment_conditions == quote_defaults.payment_conditions
        assert quote.terms_warranty == quote_defaults.warranty
        assert quote.client_name == "Cliente"
        assert [i.position for i in quote.items] == [0, 1]

    def test_missing_email_rejected(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        with pytest.raises(ValidationError):
            quote_service.create_quote(
                db, email="  ", line_items=SCENARIO_ITEMS, defaults=quote_defaults
            )

    def test_empty_items_rejected(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        with pytest.raises(ValidationError):
            quote_service.create_quote(
                db, email="a@b.test", line_items=[], defaults=quote_defaults
            )
        assert db.query(Quote).count() == 0

    @pytest.mark.parametrize("quantity", [1.5, Decimal("0.5"), "dos", 0])
    def test_quantity_must_be_whole_and_positive(
        self, db: Session, quote_defaults: QuoteDefaults, quantity
    ) -> None:
        with pytest.raises(ValidationError):
            quote_service.create_quote(
                db,
                email="a@b.test",
                line_items=[{"name": "Monitor", "quantity": quantity, "unit_price": Decimal("100")}],
                defaults=quote_defaults,
            )
        assert db.query(Quote).count() == 0

    def test_integral_decimal_quantity_accepted(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = quote_service.create_quote(
            db,
            email="a@b.test",
            line_items=[{"name": "Monitor", "quantity": Decimal("2.0"), "unit_price": Decimal("100")}],
            defaults=quote_defaults,
        )
        assert quote.items[0].quantity == 2
        assert quote.subtotal == Decimal("200.00")

    def test_unknown_client_rejected(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        with pytest.raises(NotFoundError):
            quote_service.create_quote(
                db,
                email="a@b.test",
                line_items=SCENARIO_ITEMS,
                defaults=quote_defaults,
                client_id=uuid.uuid4(),
            )

    def test_client_snapshot_is_a_copy(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _quote(db, quote_defaults, hospital)
        assert quote.client_name == "Hospital General de Zona 1"
        hospital.name = "Hospital Renombrado"
        db.commit()
        db.refresh(quote)
        assert quote.client_name == "Hospital General de Zona 1"

    def test_create_updates_client_stats_and_audits(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _quote(db, quote_defaults, hospital)
        db.refresh(hospital)
        assert hospital.total_quotes == 1
        assert hospital.last_quote_date is not None
        log = db.query(AuditLog).filter(AuditLog.action == "QUOTE_CREATED").one()
        assert log.resource_id == quote.folio
        assert log.resource_type == "quotes"


class TestTransitions:
    def test_sent_sets_sent_date_once(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults), QuoteStatus.SENT)
        first_sent = quote.sent_date
        assert first_sent is not None

        later = NOW + timedelta(days=2)
        quote_service.transition_quote(db, quote.id, QuoteStatus.PENDING, now=later)
        quote = quote_service.transition_quote(db, quote.id, QuoteStatus.SENT, now=later)
        assert quote.sent_date == first_sent

    def test_rejected_sets_rejected_date(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults), QuoteStatus.SENT, QuoteStatus.REJECTED)
        assert quote.rejected_date is not None
        assert quote.confirmed_date is None

    def test_confirm_adds_total_to_client(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _quote(db, quote_defaults, hospital)
        quote = _move(db, quote, QuoteStatus.SENT, QuoteStatus.CONFIRMED)
        assert quote.confirmed_date is not None
        db.refresh(hospital)
        assert hospital.total_amount == Decimal("290.00")

    def test_confirming_twice_does_not_double_count(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults, hospital), QuoteStatus.SENT, QuoteStatus.CONFIRMED)
        with pytest.raises(IllegalTransitionError):
            quote_service.transition_quote(db, quote.id, QuoteStatus.CONFIRMED, now=NOW)
        db.refresh(hospital)
        assert hospital.total_amount == Decimal("290.00")

    def test_terminal_status_has_no_exit(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults), QuoteStatus.CANCELLED)
        with pytest.raises(IllegalTransitionError):
            quote_service.transition_quote(db, quote.id, QuoteStatus.SENT, now=NOW)

    def test_unknown_quote(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            quote_service.transition_quote(db, uuid.uuid4(), QuoteStatus.SENT)

    def test_transition_reads_current_row_not_cached_copy(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults, hospital), QuoteStatus.SENT)
        assert quote.status == QuoteStatus.SENT
        # another writer confirms the quote behind this session's identity map
        db.execute(
            update(Quote)
            .where(Quote.id == quote.id)
            .values(status=QuoteStatus.CONFIRMED)
            .execution_options(synchronize_session=False)
        )
        assert quote.status == QuoteStatus.SENT

        with pytest.raises(IllegalTransitionError):
            quote_service.transition_quote(db, quote.id, QuoteStatus.CONFIRMED, now=NOW)
        db.refresh(hospital)
        assert hospital.total_amount == Decimal("0")


class TestUpdate:
    def test_line_items_recompute_totals(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _quote(db, quote_defaults)
        quote = quote_service.update_quote(
            db,
            quote.id,
            patch={
                "notes": "Entrega en almacén",
                "line_items": [{"name": "Bomba de infusión", "quantity": 3, "unit_price": Decimal("1000")}],
            },
        )
        assert quote.notes == "Entrega en almacén"
        assert len(quote.items) == 1
        assert quote.subtotal == Decimal("3000.00")
        assert quote.tax_amount == Decimal("480.00")
        assert quote.total == Decimal("3480.00")

    def test_tax_rate_change_recomputes(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _quote(db, quote_defaults)
        quote = quote_service.update_quote(db, quote.id, patch={"tax_rate": Decimal("0.08")})
        assert quote.tax_amount == Decimal("20.00")
        assert quote.total == Decimal("270.00")

    def test_sent_quote_still_editable(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults), QuoteStatus.SENT)
        quote = quote_service.update_quote(db, quote.id, patch={"client_contact": "Ing. Pérez"})
        assert quote.client_contact == "Ing. Pérez"

    @pytest.mark.parametrize(
        "path",
        [
            (QuoteStatus.SENT, QuoteStatus.CONFIRMED),
            (QuoteStatus.SENT, QuoteStatus.REJECTED),
            (QuoteStatus.CANCELLED,),
            (QuoteStatus.SENT, QuoteStatus.EXPIRED),
        ],
    )
    def test_closed_quote_is_immutable(
        self, db: Session, quote_defaults: QuoteDefaults, path: tuple[QuoteStatus, ...]
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults), *path)
        with pytest.raises(IllegalTransitionError):
            quote_service.update_quote(
                db,
                quote.id,
                patch={"notes": "cambio", "line_items": [{"name": "X", "quantity": 1, "unit_price": 1}]},
            )
        db.expire_all()
        stored = db.get(Quote, quote.id)
        assert stored.notes is None
        assert stored.total == Decimal("290.00")
        assert len(stored.items) == 2

    def test_failed_update_leaves_quote_untouched(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _quote(db, quote_defaults)
        with pytest.raises(NotFoundError):
            quote_service.update_quote(
                db,
                quote.id,
                patch={
                    "client_name": "Otro Hospital",
                    "tax_rate": Decimal("0.5"),
                    "line_items": [{"product_id": uuid.uuid4(), "quantity": 1}],
                },
            )
        # a later commit on the same session must not carry the partial patch
        _move(db, quote, QuoteStatus.SENT)
        db.expire_all()
        stored = db.get(Quote, quote.id)
        assert stored.client_name == "Cliente"
        assert stored.tax_rate == Decimal("0.16")
        assert stored.total == Decimal("290.00")
        assert len(stored.items) == 2

    def test_invalid_field_after_valid_ones_changes_nothing(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _quote(db, quote_defaults)
        with pytest.raises(ValidationError):
            quote_service.update_quote(
                db, quote.id, patch={"notes": "urgente", "tax_rate": "abc"}
            )
        _move(db, quote, QuoteStatus.SENT)
        db.expire_all()
        assert db.get(Quote, quote.id).notes is None

    def test_folio_is_not_updatable(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = _quote(db, quote_defaults)
        with pytest.raises(ValidationError):
            quote_service.update_quote(db, quote.id, patch={"folio": "BHL000000C1"})


class TestDelete:
    def test_draft_delete_decrements_client(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _quote(db, quote_defaults, hospital)
        quote_service.delete_quote(db, quote.id)
        assert db.query(Quote).count() == 0
        db.refresh(hospital)
        assert hospital.total_quotes == 0

    def test_count_never_goes_negative(
        self, db: Session, quote_defaults: QuoteDefaults, hospital: Client
    ) -> None:
        quote = _quote(db, quote_defaults, hospital)
        hospital.total_quotes = 0
        db.commit()
        quote_service.delete_quote(db, quote.id)
        db.refresh(hospital)
        assert hospital.total_quotes == 0

    @pytest.mark.parametrize(
        "path",
        [
            (QuoteStatus.SENT,),
            (QuoteStatus.PENDING,),
            (QuoteStatus.SENT, QuoteStatus.CONFIRMED),
            (QuoteStatus.SENT, QuoteStatus.REJECTED),
            (QuoteStatus.CANCELLED,),
            (QuoteStatus.SENT, QuoteStatus.EXPIRED),
        ],
    )
    def test_only_drafts_can_be_deleted(
        self, db: Session, quote_defaults: QuoteDefaults, path: tuple[QuoteStatus, ...]
    ) -> None:
        quote = _move(db, _quote(db, quote_defaults), *path)
        with pytest.raises(IllegalTransitionError):
            quote_service.delete_quote(db, quote.id)
        assert db.query(Quote).count() == 1


class TestListByDate:
    # 19:00 on April 7 in Mexico City, already April 8 in UTC
    EVENING = datetime(2025, 4, 8, 1, 0, tzinfo=timezone.utc)

    def _evening_quote(self, db: Session, defaults: QuoteDefaults) -> Quote:
        return quote_service.create_quote(
            db,
            email="compras@hospital.test",
            line_items=SCENARIO_ITEMS,
            defaults=defaults,
            now=self.EVENING,
        )

    def test_local_evening_counts_as_that_day(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        quote = self._evening_quote(db, quote_defaults)
        assert quote.folio.startswith("BHL070425")
        found, total = quote_service.list_quotes(
            db,
            date_from=date(2025, 4, 7),
            date_to=date(2025, 4, 7),
            tz_name=quote_defaults.timezone,
        )
        assert total == 1
        assert found[0].id == quote.id

    def test_next_local_day_excludes_it(
        self, db: Session, quote_defaults: QuoteDefaults
    ) -> None:
        self._evening_quote(db, quote_defaults)
        _, total = quote_service.list_quotes(
            db, date_from=date(2025, 4, 8), tz_name=quote_defaults.timezone
        )
        assert total == 0
