"""
SQLAlchemy database models.
The products table is the authoritative source of truth for the benchmark.
"""
from sqlalchemy import Column, DateTime, Numeric, String, Text
from sqlalchemy.sql import func

from cachebench.core.models import Entity
from cachebench.data.database import Base


class ProductRow(Base):
    """Product catalog row. Immutable once inserted (no update path)."""
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    name = Column(Text, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=False, default="")
    company = Column(String(255), nullable=False, default="")
    avatar = Column(Text, nullable=False, default="")
    material = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)

    def to_entity(self) -> Entity:
        return Entity(
            id=self.id,
            name=self.name,
            price=float(self.price),
            description=self.description or "",
            company=self.company or "",
            avatar=self.avatar or "",
            material=self.material or "",
            created_at=self.created_at,
        )

    @classmethod
    def from_entity(cls, entity: Entity) -> "ProductRow":
        return cls(
            id=entity.id,
            name=entity.name,
            price=entity.price,
            description=entity.description,
            company=entity.company,
            avatar=entity.avatar,
            material=entity.material,
            created_at=entity.created_at,
        )
