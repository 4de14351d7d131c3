"""
Inventory models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class InventoryTransaction(Base):
    """Stock movement for a product. ``in`` adds stock, ``out`` removes it."""
    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    # References
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    production_order_id = Column(Integer, ForeignKey("production_orders.id", ondelete="SET NULL"), nullable=True, index=True)

    # Transaction details
    type = Column(String(10), nullable=False)  # in | out
    quantity = Column(Numeric(18, 4), nullable=False)
    cost = Column(Numeric(18, 4), nullable=True)  # unit cost for receipts
    date = Column(Date, nullable=False)

    invoice = Column(String(100), nullable=True)
    reason = Column(String(100), nullable=True)  # purchase, production, consumption, adjustment
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="inventory_transactions")
    production_order = relationship("ProductionOrder")

    def __repr__(self):
        return f"<InventoryTransaction {self.type} {self.quantity} product:{self.product_id}>"
