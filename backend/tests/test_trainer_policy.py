"""Trainer resolution for new sessions."""
import pytest
from sqlmodel import Session, select

from pawdesk import config
from pawdesk.errors import NotFoundError
from pawdesk.models.user import User
from pawdesk.services.trainer_policy import get_trainer, resolve_or_create_default_trainer


def test_explicit_trainer_is_used(session: Session, kennel):
    trainer = resolve_or_create_default_trainer(session, kennel["trainer_id"])
    assert trainer.id == kennel["trainer_id"]


def test_explicit_unknown_trainer_raises(session: Session, kennel):
    with pytest.raises(NotFoundError, match="Trainer not found."):
        resolve_or_create_default_trainer(session, 99999)
    with pytest.raises(NotFoundError):
        get_trainer(session, 99999)


def test_fallback_ignores_assistants(session: Session):
    session.add(User(name="Abby Assistant", email="abby@example.com", role="ASSISTANT"))
    session.add(User(name="Zed Owner", email="zed@example.com", role="OWNER"))
    session.add(User(name="Mia Trainer", email="mia@example.com", role="TRAINER"))
    session.commit()

    trainer = resolve_or_create_default_trainer(session)
    assert trainer.name == "Mia Trainer"


def test_solo_trainer_is_provisioned_once(session: Session):
    first = resolve_or_create_default_trainer(session, allow_provision=True)
    session.commit()
    second = resolve_or_create_default_trainer(session, allow_provision=True)

    assert first.id == second.id
    assert first.email == config.SOLO_TRAINER_EMAIL
    assert first.role == "OWNER"
    assert len(session.exec(select(User)).all()) == 1


def test_provisioning_disabled_raises(session: Session, monkeypatch):
    monkeypatch.setattr(config, "AUTO_PROVISION_TRAINER", False)

    with pytest.raises(NotFoundError, match="No trainer available to assign to session."):
        resolve_or_create_default_trainer(session)
    assert session.exec(select(User)).all() == []
