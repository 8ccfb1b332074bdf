from .auth import User
from .catalog import Category, Product, PriceHistory, Supplier, Service
from .customers import Customer
from .sales import Sale, SaleLine
from .inventory import StockMovement

__all__ = [
    'User',
    'Category', 'Product', 'PriceHistory', 'Supplier', 'Service',
    'Customer',
    'Sale', 'SaleLine',
    'StockMovement',
]
