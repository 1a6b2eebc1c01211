from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import field_validator
from sqlmodel import Session, func, select

from pawdesk import config
from pawdesk.database import get_session
from pawdesk.errors import NotFoundError, PolicyViolationError
from pawdesk.models.client import Client
from pawdesk.models.package import Package
from pawdesk.models.training_session import TrainingSession
from pawdesk.services import audit_trail
from pawdesk.utils.api_models import CamelModel
from pawdesk.utils.request_guards import handled_unit_of_work

router = APIRouter()

ENTITY_PACKAGE = "package"


def _parse_expiry(v):
    """Accept an ISO date or datetime string; blank or unparseable values mean no expiry."""
    if v is None or isinstance(v, date):
        return v
    raw = str(v).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _price_to_cents(price: float) -> int:
    return int(round(price * 100))


class PackageCreate(CamelModel):
    client_id: Optional[int] = None  # None creates a template
    type: str
    total_credits: int
    price: float
    currency: str = config.DEFAULT_CURRENCY
    expires_in_days: Optional[int] = None
    expires_on: Optional[date] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if not v or not v.strip():
            raise ValueError("Package type is required")
        return v.strip()

    @field_validator("total_credits")
    @classmethod
    def validate_total_credits(cls, v):
        if v <= 0:
            raise ValueError("Session count must be a positive number")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v <= 0:
            raise ValueError("Price must be positive")
        return v

    @field_validator("expires_in_days")
    @classmethod
    def validate_expires_in_days(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Expiry must be a positive number of days")
        return v

    @field_validator("expires_on", mode="before")
    @classmethod
    def validate_expires_on(cls, v):
        return _parse_expiry(v)


class PackageUpdate(CamelModel):
    type: Optional[str] = None
    total_credits: Optional[int] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    expires_on: Optional[date] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Package type is required")
        return v.strip() if v is not None else v

    @field_validator("total_credits")
    @classmethod
    def validate_total_credits(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Session count must be positive")
        return v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Price must be positive")
        return v

    @field_validator("expires_on", mode="before")
    @classmethod
    def validate_expires_on(cls, v):
        return _parse_expiry(v)


class PackageRead(CamelModel):
    id: int
    client_id: Optional[int] = None
    is_template: bool
    type: str
    total_credits: int
    used_credits: int
    remaining_credits: int
    price_cents: int
    currency: str
    expires_on: Optional[date] = None
    created_at: datetime


class PackageCreateResponse(CamelModel):
    success: bool = True
    package: PackageRead


class PackageListResponse(CamelModel):
    packages: List[PackageRead]


class TemplateRead(CamelModel):
    id: int
    name: str
    price_cents: int
    currency: str
    session_count: int
    expires_on: Optional[date] = None


class TemplateListResponse(CamelModel):
    templates: List[TemplateRead]


class SuccessResponse(CamelModel):
    success: bool = True


def _package_to_read(pkg: Package) -> PackageRead:
    return PackageRead(
        id=pkg.id,
        client_id=pkg.client_id,
        is_template=pkg.is_template,
        type=pkg.type,
        total_credits=pkg.total_credits,
        used_credits=pkg.used_credits,
        remaining_credits=pkg.remaining_credits,
        price_cents=pkg.price_cents,
        currency=pkg.currency,
        expires_on=pkg.expires_on,
        created_at=pkg.created_at,
    )


@router.post("/packages", response_model=PackageCreateResponse, status_code=201)
def create_package(payload: PackageCreate, session: Session = Depends(get_session)):
    """Sell a package to a client, or create a template when clientId is null"""
    is_template = payload.client_id is None

    if not is_template and not session.get(Client, payload.client_id):
        raise NotFoundError("Client not found.")

    expires_on = payload.expires_on
    if expires_on is None and payload.expires_in_days:
        expires_on = date.today() + timedelta(days=payload.expires_in_days)

    price_cents = _price_to_cents(payload.price)

    with handled_unit_of_work(session, "POST /packages", "Failed to create package."):
        pkg = Package(
            client_id=payload.client_id,
            is_template=is_template,
            type=payload.type,
            total_credits=payload.total_credits,
            used_credits=0,
            price_cents=price_cents,
            currency=payload.currency,
            expires_on=expires_on,
        )
        session.add(pkg)
        session.flush()  # Get the ID

        audit_trail.record(
            session,
            audit_trail.PACKAGE_TEMPLATE_CREATED if is_template else audit_trail.PACKAGE_CREATED,
            ENTITY_PACKAGE,
            pkg.id,
            f"Created {'template' if is_template else 'package'}: {payload.type} "
            f"({payload.total_credits} sessions, {payload.currency} {payload.price:.2f})",
        )

    session.refresh(pkg)
    return PackageCreateResponse(success=True, package=_package_to_read(pkg))


@router.get("/packages", response_model=PackageListResponse)
def list_packages(client_id: Optional[int] = Query(default=None, alias="clientId"), session: Session = Depends(get_session)):
    """List client packages (templates excluded), optionally for one client"""
    query = select(Package).where(Package.is_template == False)  # noqa: E712
    if client_id is not None:
        query = query.where(Package.client_id == client_id)
    packages = session.exec(query.order_by(Package.created_at.desc(), Package.id.desc())).all()
    return PackageListResponse(packages=[_package_to_read(p) for p in packages])


@router.get("/packages/templates", response_model=TemplateListResponse)
def list_templates(session: Session = Depends(get_session)):
    """List package templates"""
    templates = session.exec(
        select(Package).where(Package.is_template == True).order_by(Package.created_at.desc(), Package.id.desc())  # noqa: E712
    ).all()
    return TemplateListResponse(
        templates=[
            TemplateRead(
                id=t.id,
                name=t.type,
                price_cents=t.price_cents,
                currency=t.currency,
                session_count=t.total_credits,
                expires_on=t.expires_on,
            )
            for t in templates
        ]
    )


@router.patch("/packages/{package_id}", response_model=SuccessResponse)
def update_package(package_id: int, payload: PackageUpdate, session: Session = Depends(get_session)):
    """Edit a package or template. Reservations (usedCredits) are never touched here."""
    pkg = session.get(Package, package_id)
    if not pkg:
        raise NotFoundError("Package not found.")

    update_data = payload.model_dump(exclude_unset=True)

    with handled_unit_of_work(session, f"PATCH /packages/{package_id}", "Failed to update package."):
        for field in ("type", "total_credits", "currency"):
            if update_data.get(field) is not None:
                setattr(pkg, field, update_data[field])
        if update_data.get("price") is not None:
            pkg.price_cents = _price_to_cents(update_data["price"])
        if "expires_on" in update_data:
            pkg.expires_on = update_data["expires_on"]
        session.add(pkg)

        audit_trail.record(session, audit_trail.PACKAGE_UPDATED, ENTITY_PACKAGE, package_id, f"Updated package: {pkg.type}")

    return SuccessResponse(success=True)


@router.delete("/packages/{package_id}", response_model=SuccessResponse)
def delete_package(package_id: int, session: Session = Depends(get_session)):
    """Delete a package that no session references"""
    pkg = session.get(Package, package_id)
    if not pkg:
        raise NotFoundError("Package not found.")

    linked = session.exec(
        select(func.count(TrainingSession.id)).where(TrainingSession.package_id == package_id)
    ).one()
    if linked > 0:
        raise PolicyViolationError(
            f'Cannot delete package "{pkg.type}" because it is linked to {linked} session(s). '
            "Please remove all associations first."
        )

    package_type = pkg.type
    with handled_unit_of_work(session, f"DELETE /packages/{package_id}", "Failed to delete package."):
        session.delete(pkg)
        audit_trail.record(session, audit_trail.PACKAGE_DELETED, ENTITY_PACKAGE, package_id, f"Deleted package: {package_type}")

    return SuccessResponse(success=True)
