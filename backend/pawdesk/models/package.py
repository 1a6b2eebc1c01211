from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pawdesk.models.client import Client
    from pawdesk.models.training_session import TrainingSession


class Package(SQLModel, table=True):
    """Credit ledger entry: a bundle of sessions purchased by a client.

    Templates (is_template=True) have no client and are never reserved
    against; they are cloned into a client-owned package on first use.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: Optional[int] = Field(default=None, foreign_key="client.id", index=True)  # None only for templates
    is_template: bool = Field(default=False, index=True)
    type: str  # Display label, e.g. "10 Session Pack"
    total_credits: int = Field(default=0)
    used_credits: int = Field(default=0)  # May exceed total_credits (over-booking allowed)
    price_cents: int = Field(default=0)
    currency: str = Field(default="EUR")
    expires_on: Optional[date] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    client: Optional["Client"] = Relationship(back_populates="packages")
    sessions: List["TrainingSession"] = Relationship(back_populates="package")

    @property
    def remaining_credits(self) -> int:
        return (self.total_credits or 0) - (self.used_credits or 0)
