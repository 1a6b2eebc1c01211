from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pawdesk.models.dog import Dog
    from pawdesk.models.package import Package
    from pawdesk.models.training_session import TrainingSession


class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    dogs: List["Dog"] = Relationship(back_populates="client")
    packages: List["Package"] = Relationship(back_populates="client")
    sessions: List["TrainingSession"] = Relationship(back_populates="client")
