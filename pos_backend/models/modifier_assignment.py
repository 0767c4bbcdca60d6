from sqlalchemy import Column, ForeignKey, Index, Integer, String, UniqueConstraint

from pos_backend.core.database import Base


class ModifierAssignment(Base):
    __tablename__ = "modifier_assignments"
    __table_args__ = (
        UniqueConstraint("modifier_id", "entity_type", "entity_id", name="uq_modifier_assignment"),
        Index("ix_modifier_assignments_entity", "entity_type", "entity_id"),
    )

    id = Column(Integer, primary_key=True)
    modifier_id = Column(Integer, ForeignKey("modifiers.id"), nullable=False, index=True)
    entity_type = Column(String(16), nullable=False)  # "category" | "product"
    entity_id = Column(Integer, nullable=False)
