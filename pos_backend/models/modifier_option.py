from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from pos_backend.core.database import Base


class ModifierOption(Base):
    __tablename__ = "modifier_options"

    id = Column(Integer, primary_key=True)
    modifier_id = Column(Integer, ForeignKey("modifiers.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    price_delta = Column(Numeric(10, 2), default=0, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    modifier = relationship("Modifier", back_populates="options")
