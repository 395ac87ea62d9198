from sqlalchemy import Column, DateTime, String, func

from cowork_ledger.core.database import Base
from cowork_ledger.models.shared import UUIDType, generate_uuid


class Member(Base):
    __tablename__ = "members"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
