from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from pos_backend.core.database import Base


class ModifierAuditLog(Base):
    __tablename__ = "modifier_audit_log"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    action = Column(String(64), nullable=False)
    modifier_id = Column(Integer, nullable=True, index=True)
    # "option", "category" or "product"; NULL when the modifier itself changed
    target_type = Column(String(16), nullable=True)
    target_id = Column(Integer, nullable=True)
    changes_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
