from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship

from pos_backend.core.database import Base

SELECTION_SINGLE = "single"
SELECTION_MULTIPLE = "multiple"
SELECTION_TYPES = (SELECTION_SINGLE, SELECTION_MULTIPLE)


class Modifier(Base):
    __tablename__ = "modifiers"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    selection_type = Column(String(16), default=SELECTION_SINGLE, nullable=False)
    min_choices = Column(Integer, default=0, nullable=False)
    # NULL means "no explicit maximum": single -> 1, multiple -> unbounded
    max_choices = Column(Integer, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    options = relationship(
        "ModifierOption",
        back_populates="modifier",
        cascade="all, delete-orphan",
    )
