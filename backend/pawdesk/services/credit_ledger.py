"""
Credit ledger adjustments on Package.used_credits.

Adjustments are relative UPDATE statements (used_credits = used_credits +/- 1)
so overlapping requests against the same package never lose an update, even
under read-committed isolation and without row locks.

No cap is applied: a package may be reserved beyond total_credits and its
remaining count goes negative. Billing reconciles over-booking out of band.
"""
import logging

from sqlalchemy import update
from sqlmodel import Session

from pawdesk.errors import NotFoundError
from pawdesk.models.package import Package

logger = logging.getLogger(__name__)


class LedgerEntryNotFoundError(NotFoundError):
    """Raised when an adjustment matched no client-owned package row."""


def _adjust_used_credits(session: Session, package_id: int, delta: int) -> None:
    result = session.exec(
        update(Package)
        .where(Package.id == package_id, Package.is_template == False)  # noqa: E712
        .values(used_credits=Package.used_credits + delta)
    )
    if result.rowcount == 0:
        # Templates are blueprints; they never carry reservations
        raise LedgerEntryNotFoundError("Package not found.")
    logger.debug("Package %s used_credits adjusted by %+d", package_id, delta)


def reserve_credit(session: Session, package_id: int) -> None:
    """Consume one credit from a client-owned package."""
    _adjust_used_credits(session, package_id, 1)


def release_credit(session: Session, package_id: int) -> None:
    """Give back one credit previously consumed by a session."""
    _adjust_used_credits(session, package_id, -1)


def remaining_credits(package: Package) -> int:
    """Credits left on a package. Negative when over-booked."""
    return package.remaining_credits
