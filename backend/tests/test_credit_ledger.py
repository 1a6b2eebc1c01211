"""Service-level tests for ledger adjustments and template materialization."""
from datetime import datetime

import pytest
from sqlmodel import Session, select

from pawdesk.models.package import Package
from pawdesk.models.training_session import TrainingSession
from pawdesk.services.credit_ledger import (
    LedgerEntryNotFoundError,
    release_credit,
    remaining_credits,
    reserve_credit,
)
from pawdesk.services.reservation import change_session_package
from pawdesk.services.template_materializer import materialize_template


def _reload(session: Session, package_id: int) -> Package:
    session.expire_all()
    return session.get(Package, package_id)


def test_reserve_and_release_are_relative(session: Session, kennel):
    package_id = kennel["package_a2_id"]

    reserve_credit(session, package_id)
    reserve_credit(session, package_id)
    release_credit(session, package_id)
    session.commit()

    pkg = _reload(session, package_id)
    assert pkg.used_credits == 1
    assert remaining_credits(pkg) == 4


def test_interleaved_reservations_do_not_lose_updates(engine, session: Session, kennel):
    """Two requests that both loaded the package before either wrote still add up"""
    package_id = kennel["package_a2_id"]

    with Session(engine) as first, Session(engine) as second:
        assert first.get(Package, package_id).used_credits == 0
        assert second.get(Package, package_id).used_credits == 0

        reserve_credit(first, package_id)
        first.commit()
        reserve_credit(second, package_id)
        second.commit()

    assert _reload(session, package_id).used_credits == 2

def test_reserve_past_total_goes_negative(session: Session, kennel):
    package_id = kennel["package_a_id"]

    reserve_credit(session, package_id)
    reserve_credit(session, package_id)
    session.commit()

    pkg = _reload(session, package_id)
    assert pkg.used_credits == 11
    assert remaining_credits(pkg) == -1


def test_adjusting_missing_package_raises(session: Session, kennel):
    with pytest.raises(LedgerEntryNotFoundError) as exc_info:
        reserve_credit(session, 99999)
    assert exc_info.value.status_code == 404


def test_templates_never_carry_reservations(session: Session, kennel):
    with pytest.raises(LedgerEntryNotFoundError):
        reserve_credit(session, kennel["template_id"])
    session.rollback()

    assert _reload(session, kennel["template_id"]).used_credits == 0


def test_materialize_template_clones_fields(session: Session, kennel):
    template = session.get(Package, kennel["template_id"])

    clone = materialize_template(session, template, kennel["client_b_id"])
    session.commit()

    clone = _reload(session, clone.id)
    assert clone.id != kennel["template_id"]
    assert clone.client_id == kennel["client_b_id"]
    assert clone.is_template is False
    assert clone.type == "Puppy Starter"
    assert clone.total_credits == 8
    assert clone.used_credits == 0
    assert clone.price_cents == 32000
    assert clone.currency == "EUR"
    assert str(clone.expires_on) == "2027-06-30"

    templates = session.exec(select(Package).where(Package.is_template == True)).all()  # noqa: E712
    assert [t.id for t in templates] == [kennel["template_id"]]


def test_materialize_refuses_client_package(session: Session, kennel):
    package = session.get(Package, kennel["package_a_id"])
    with pytest.raises(ValueError):
        materialize_template(session, package, kennel["client_b_id"])


def _unlinked_session_row(session: Session, kennel) -> TrainingSession:
    row = TrainingSession(
        dog_id=kennel["dog_a_id"],
        client_id=kennel["client_a_id"],
        trainer_id=kennel["trainer_id"],
        start_time=datetime(2026, 11, 2, 9, 30),
        duration_minutes=60,
        location="Riverside Park",
        status="SCHEDULED",
        objectives=[],
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def test_change_to_template_reports_its_origin(session: Session, kennel):
    row = _unlinked_session_row(session, kennel)

    change = change_session_package(session, row, kennel["template_id"])
    session.commit()

    assert change.materialized_from == kennel["template_id"]
    assert change.new_package_id not in (None, kennel["template_id"])
    assert change.reserved is True
    assert change.released is False
    assert _reload(session, change.new_package_id).used_credits == 1


def test_change_between_owned_packages_has_no_origin(session: Session, kennel):
    row = _unlinked_session_row(session, kennel)

    change = change_session_package(session, row, kennel["package_a2_id"])
    session.commit()

    assert change.materialized_from is None
    assert change.new_package_id == kennel["package_a2_id"]
    assert _reload(session, kennel["package_a2_id"]).used_credits == 1
