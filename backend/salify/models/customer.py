"""
客户模型
散客（Walk-in）是系统内置客户，不可编辑、不可删除
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from salify.db.base import Base

WALK_IN_CUSTOMER_CODE = "CUST_WALK_IN"


class Customer(Base):
    """客户"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, index=True, comment="客户编码 CUST001")
    name = Column(String(100), nullable=False, default="", index=True)
    company_name = Column(String(100))
    phone = Column(String(30), nullable=False)
    email = Column(String(100))
    address = Column(String(200))
    joined_date = Column(DateTime, default=datetime.utcnow, index=True)
    is_walk_in = Column(Boolean, default=False, comment="是否系统散客")

    def __repr__(self):
        return f"<Customer {self.code}: {self.display_name}>"

    @property
    def display_name(self) -> str:
        return self.name or self.company_name or "Unknown Customer"
