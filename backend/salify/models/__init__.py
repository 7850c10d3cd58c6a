# models包初始化文件
# 导入全部模型，确保 Base.metadata 能创建所有表

from salify.models.app_settings import AppSettings
from salify.models.activity_log import ActivityLog
from salify.models.business_transaction import BusinessTransaction
from salify.models.product import Product
from salify.models.customer import Customer
from salify.models.supplier import Supplier
from salify.models.supplier_payment import SupplierPayment, PaymentAllocation
from salify.models.purchase import PurchaseInvoice, PurchaseItem
from salify.models.sale import Sale, SaleItem
from salify.models.sale_return import SaleReturn, ReturnItem
from salify.models.quotation import Quotation, QuotationItem

__all__ = [
    "AppSettings",
    "ActivityLog",
    "BusinessTransaction",
    "Product",
    "Customer",
    "Supplier",
    "SupplierPayment",
    "PaymentAllocation",
    "PurchaseInvoice",
    "PurchaseItem",
    "Sale",
    "SaleItem",
    "SaleReturn",
    "ReturnItem",
    "Quotation",
    "QuotationItem",
]
