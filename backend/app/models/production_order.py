"""
Production Order model

A production order lists the recipes to bake on a date, each with a planned
quantity in kg or units. Lifecycle: pending → in_progress → completed
(cancelled from any non-terminal status).
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class ProductionOrder(Base):
    __tablename__ = "production_orders"
    __table_args__ = (
        UniqueConstraint("company_id", "order_number", name="uq_production_orders_company_number"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    order_number = Column(String(50), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(50), default="pending", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    items = relationship(
        "ProductionOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="ProductionOrderItem.id",
    )

    def __repr__(self):
        return f"<ProductionOrder {self.order_number}: {self.status}>"

    @property
    def is_terminal(self):
        return self.status in ("completed", "cancelled")


class ProductionOrderItem(Base):
    """One recipe line of a production order."""
    __tablename__ = "production_order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("production_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    recipe_name = Column(String(255), nullable=False)  # name at planning time

    unit = Column(String(10), default="kg", nullable=False)  # kg | un
    planned_quantity_kg = Column(Numeric(18, 4), default=0, nullable=False)
    planned_quantity_units = Column(Numeric(18, 4), nullable=True)
    actual_quantity_kg = Column(Numeric(18, 4), nullable=True)
    actual_quantity_units = Column(Numeric(18, 4), nullable=True)

    order = relationship("ProductionOrder", back_populates="items")
    recipe = relationship("Recipe")

    def __repr__(self):
        return f"<ProductionOrderItem {self.recipe_name}: {self.planned_quantity_kg} kg>"

    @property
    def planned_quantity(self):
        """Planned quantity in the line's own unit."""
        if self.unit == "un":
            return self.planned_quantity_units
        return self.planned_quantity_kg
