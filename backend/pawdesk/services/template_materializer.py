"""Clone a package template into a client-owned package."""
import logging

from sqlmodel import Session

from pawdesk.models.package import Package

logger = logging.getLogger(__name__)


def materialize_template(session: Session, template: Package, client_id: int) -> Package:
    """
    Create a live package for ``client_id`` from a template.

    The clone copies type, credits, price, currency and expiry, starts with
    used_credits = 0 and is owned by the client. The template row itself is
    left untouched, so it can be materialized any number of times.
    """
    if not template.is_template:
        raise ValueError(f"Package {template.id} is not a template")

    clone = Package(
        client_id=client_id,
        is_template=False,
        type=template.type,
        total_credits=template.total_credits,
        used_credits=0,
        price_cents=template.price_cents,
        currency=template.currency,
        expires_on=template.expires_on,
    )
    session.add(clone)
    session.flush()  # Get the ID

    logger.info("Materialized template %s as package %s for client %s", template.id, clone.id, client_id)
    return clone
