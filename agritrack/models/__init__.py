from .activity_log import ActivityLog
from .product import Product
from .reference import Barangay, Category, StorageArea
from .report import Report
from .transaction import Transaction
from .user import User

__all__ = [
    "ActivityLog",
    "Barangay",
    "Category",
    "Product",
    "Report",
    "StorageArea",
    "Transaction",
    "User",
]
