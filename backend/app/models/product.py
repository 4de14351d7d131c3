"""
Product model - raw materials and the catalog entries generated from recipes
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.db.base import Base


class Product(Base):
    """
    Catalog item for a company.

    - Raw materials (materia_prima) are bought from suppliers, cost per unit
    - Recipe products (receita / subreceita) are generated from a recipe and
      point back at it through recipe_id

    Weight fields depend on ``unit``:
    - UN: unit_weight is the weight of one unit in kg, kg_weight is NULL
    - Kg: kg_weight is the batch weight in kg, unit_weight is NULL
    """
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("company_id", "sku", name="uq_products_company_sku"),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    sku = Column(String(50), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    unit = Column(String(20), default="Kg", nullable=False)  # Kg | UN
    supplier = Column(String(255), nullable=True)

    # Cost & pricing
    cost = Column(Numeric(18, 4), default=0, nullable=False)
    unit_price = Column(Numeric(18, 4), nullable=True)

    # Weights (kg)
    unit_weight = Column(Numeric(18, 4), nullable=True)
    kg_weight = Column(Numeric(18, 4), nullable=True)

    # Stock
    current_stock = Column(Numeric(18, 4), default=0, nullable=False)
    min_stock = Column(Numeric(18, 4), default=0, nullable=False)

    # Weak back-reference to the recipe that generates this product
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True, index=True)

    # Classification
    product_type_id = Column(Integer, ForeignKey("product_types.id"), nullable=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="SET NULL"), nullable=True)
    subgroup_id = Column(Integer, ForeignKey("subgroups.id", ondelete="SET NULL"), nullable=True)

    is_deleted = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    product_type = relationship("ProductType")
    recipe = relationship("Recipe", foreign_keys=[recipe_id])
    inventory_transactions = relationship("InventoryTransaction", back_populates="product")

    def __repr__(self):
        return f"<Product {self.sku}: {self.name}>"

    @property
    def is_unit_based(self) -> bool:
        return (self.unit or "").upper() == "UN"
