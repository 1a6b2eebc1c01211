from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class ClientNote(SQLModel, table=True):
    __tablename__ = "client_note"

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="client.id", index=True)
    body: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
