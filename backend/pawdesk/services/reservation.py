"""
Reservation protocol: ties session lifecycle transitions to ledger mutations.

Every session that references a package holds exactly one credit on it for as
long as the reference exists:

    unreserved   -> reserved(P)   P.used_credits += 1   (create, or patch null -> P)
    reserved(P)  -> unreserved    P.used_credits -= 1   (patch P -> null, or delete)
    reserved(P)  -> reserved(Q)   P -= 1, Q += 1        (patch P -> Q, same client)
    reserved(P)  -> reserved(P)   no-op

Assigning a template first materializes a client-owned clone and reserves the
clone. All functions here run inside the caller's unit of work; a raised error
leaves the transaction to be rolled back by ``atomic``.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlmodel import Session

from pawdesk.errors import NotFoundError, PolicyViolationError
from pawdesk.models.package import Package
from pawdesk.models.training_session import TrainingSession
from pawdesk.services.credit_ledger import release_credit, reserve_credit
from pawdesk.services.template_materializer import materialize_template

logger = logging.getLogger(__name__)


@dataclass
class PackageChange:
    """Outcome of a package reassignment on an existing session."""

    old_package_id: Optional[int]
    new_package_id: Optional[int]
    released: bool = False
    reserved: bool = False
    materialized_from: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.old_package_id != self.new_package_id


def _get_package(session: Session, package_id: int) -> Package:
    package = session.get(Package, package_id)
    if not package:
        raise NotFoundError("Package not found.")
    return package


def _resolve_package(
    session: Session,
    package_id: int,
    client_id: Optional[int],
    mismatch_message: str,
) -> Tuple[Package, Optional[int]]:
    """
    Return ``(package, materialized_from)`` for the package a session should reserve.

    Templates are materialized into a fresh package for ``client_id`` and
    ``materialized_from`` is the template's id; owned packages must belong to
    ``client_id``. Raises before any ledger mutation.
    """
    package = _get_package(session, package_id)

    if package.is_template:
        if client_id is None:
            raise PolicyViolationError(mismatch_message)
        return materialize_template(session, package, client_id), package.id

    if package.client_id != client_id:
        raise PolicyViolationError(mismatch_message)
    return package, None


def reserve_for_new_session(session: Session, package_id: int, client_id: int) -> Package:
    """Resolve (and materialize if needed) the package for a session being created.

    The caller reserves the returned package once the session row exists.
    """
    package, _ = _resolve_package(session, package_id, client_id, "Package does not belong to this client.")
    return package


def change_session_package(session: Session, row: TrainingSession, new_package_id: Optional[int]) -> PackageChange:
    """
    Move a session's reservation to ``new_package_id`` (None unlinks).

    The release side always uses ``row.package_id`` as loaded inside this
    transaction, never a value supplied by the client, so a retried request
    cannot release the same credit twice.
    """
    old_package_id = row.package_id

    if new_package_id == old_package_id:
        return PackageChange(old_package_id=old_package_id, new_package_id=new_package_id)

    target: Optional[Package] = None
    materialized_from = None
    if new_package_id is not None:
        # Validate (and materialize) before touching the ledger
        target, materialized_from = _resolve_package(
            session,
            new_package_id,
            row.effective_client_id,
            "Package does not belong to this session's client.",
        )

    change = PackageChange(
        old_package_id=old_package_id,
        new_package_id=target.id if target else None,
        materialized_from=materialized_from,
    )

    if old_package_id is not None:
        release_credit(session, old_package_id)
        change.released = True

    if target is not None:
        reserve_credit(session, target.id)
        change.reserved = True

    row.package_id = change.new_package_id
    session.add(row)

    logger.info(
        "Session %s package %s -> %s (released=%s reserved=%s)",
        row.id,
        old_package_id,
        change.new_package_id,
        change.released,
        change.reserved,
    )
    return change


def release_session_package(session: Session, row: TrainingSession) -> bool:
    """Release the credit held by ``row``, if any. Returns whether one was released."""
    if row.package_id is None:
        return False
    release_credit(session, row.package_id)
    logger.info("Session %s released package %s", row.id, row.package_id)
    return True
