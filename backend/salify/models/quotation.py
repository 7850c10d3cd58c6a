"""
报价单模型 - 不影响库存和现金
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, DECIMAL
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from salify.db.base import Base

QUOTATION_STATUSES = ("Draft", "Sent", "Accepted", "Declined", "Expired")

# 会被自动过期的状态
EXPIRABLE_STATUSES = ("Draft", "Sent")


class Quotation(Base):
    """报价单"""
    __tablename__ = "quotations"

    id = Column(Integer, primary_key=True, index=True)
    numeric_quotation_id = Column(Integer, unique=True, nullable=False, index=True)

    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)
    customer_name = Column(String(100), nullable=False)
    # 客户联系方式快照 {email, phone, address, companyName}
    customer_details = Column(JSON)

    quote_date = Column(Date, nullable=False)
    valid_till_date = Column(Date, nullable=False, index=True)

    sub_total = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    total_item_discount_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    total_item_tax_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    overall_discount_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    overall_tax_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    shipping_charges = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    extra_costs = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))
    grand_total = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"))

    terms_and_conditions = Column(Text)
    payment_methods = Column(Text)
    notes = Column(Text)
    status = Column(String(20), nullable=False, default="Draft", index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    last_updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.id"
    )

    def __repr__(self):
        return f"<Quotation #{self.numeric_quotation_id}: {self.status} {self.grand_total}>"


class QuotationItem(Base):
    """报价明细"""
    __tablename__ = "quotation_items"

    id = Column(Integer, primary_key=True, index=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"))
    product_code = Column(String(50))
    name = Column(String(200), nullable=False)
    quantity = Column(DECIMAL(12, 2), nullable=False)
    sale_price = Column(DECIMAL(12, 2), nullable=False)
    cost_price = Column(DECIMAL(12, 2))
    discount_percentage = Column(DECIMAL(5, 2), nullable=False, default=Decimal("0"))
    tax_percentage = Column(DECIMAL(5, 2), nullable=False, default=Decimal("0"))

    # 计算字段
    item_subtotal = Column(DECIMAL(12, 2), nullable=False)
    item_discount_amount = Column(DECIMAL(12, 2), nullable=False)
    price_after_item_discount = Column(DECIMAL(12, 2), nullable=False)
    item_tax_amount = Column(DECIMAL(12, 2), nullable=False)
    item_total = Column(DECIMAL(12, 2), nullable=False)

    quotation = relationship("Quotation", back_populates="items")
