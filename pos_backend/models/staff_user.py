from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from pos_backend.core.database import Base

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_CASHIER = "cashier"
MANAGER_ROLES = (ROLE_ADMIN, ROLE_OWNER)


class StaffUser(Base):
    """Till or back-office user; managers edit the modifier catalog."""

    __tablename__ = "staff_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_CASHIER)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def is_manager(self) -> bool:
        return (self.role or "").strip().lower() in MANAGER_ROLES
