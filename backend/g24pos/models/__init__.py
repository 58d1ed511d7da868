from .inventory import Product, StockMovement, InventoryAlert, BulkOperation
from .customers import Customer
from .orders import Order, OrderLine
from .purchasing import PurchaseOrder, PurchaseOrderLine
from .settings import StoreSettings
from .documents import DocumentSequence
from .registers import HeldOrder, Shift, CashDrawerEvent

__all__ = [
    'Product', 'StockMovement', 'InventoryAlert', 'BulkOperation',
    'Customer',
    'Order', 'OrderLine',
    'PurchaseOrder', 'PurchaseOrderLine',
    'StoreSettings',
    'DocumentSequence',
    'HeldOrder', 'Shift', 'CashDrawerEvent',
]
