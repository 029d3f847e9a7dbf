from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4
from sqlalchemy import Column

from .types import JSONType

class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    action: str = Field(index=True)
    target_type: str
    target_id: UUID
    actor_id: Optional[UUID] = None
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSONType))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
