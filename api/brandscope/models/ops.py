"""Operational tracking: background job failures."""
from brandscope.models.base import *


class ErrorLog(Base):
    __tablename__ = "error_logs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    source = Column(String, nullable=False)
    error_type = Column(String, nullable=True)
    message = Column(Text, nullable=True)
    context_json = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
