"""
Trainer resolution for new sessions.

Sessions always need a trainer. When the caller names none, the first
trainer/owner (by name) is used; when the account has no such user at all, a
"Solo Trainer" owner is provisioned. Provisioning can be switched off with
AUTO_PROVISION_TRAINER=false for deployments where implicit user creation is
unwanted.
"""
import logging
from typing import Optional

from sqlmodel import Session, select

from pawdesk import config
from pawdesk.errors import NotFoundError
from pawdesk.models.user import TRAINER_ROLES, User, UserRole

logger = logging.getLogger(__name__)


def get_trainer(session: Session, trainer_id: int) -> User:
    trainer = session.get(User, trainer_id)
    if not trainer:
        raise NotFoundError("Trainer not found.")
    return trainer


def resolve_or_create_default_trainer(
    session: Session,
    trainer_id: Optional[int] = None,
    *,
    allow_provision: Optional[bool] = None,
) -> User:
    """
    Return the trainer a new session should be assigned to.

    Order:
      1. the explicit trainer_id (404 if it doesn't resolve)
      2. the first TRAINER/OWNER user ordered by name
      3. the Solo Trainer owner, created on first use (if provisioning allowed)
    """
    if trainer_id is not None:
        return get_trainer(session, trainer_id)

    fallback = session.exec(
        select(User).where(User.role.in_(TRAINER_ROLES)).order_by(User.name, User.id)
    ).first()
    if fallback:
        return fallback

    if allow_provision is None:
        allow_provision = config.AUTO_PROVISION_TRAINER
    if not allow_provision:
        raise NotFoundError("No trainer available to assign to session.")

    solo = session.exec(select(User).where(User.email == config.SOLO_TRAINER_EMAIL)).first()
    if solo:
        return solo

    solo = User(name=config.SOLO_TRAINER_NAME, email=config.SOLO_TRAINER_EMAIL, role=UserRole.OWNER.value)
    session.add(solo)
    session.flush()
    logger.warning("No trainer on file; provisioned %s <%s> as user %s", solo.name, solo.email, solo.id)
    return solo
