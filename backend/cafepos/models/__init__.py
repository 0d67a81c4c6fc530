from .catalog import Product, Discount
from .inventory import InventoryItem, StockMovement
from .orders import Order, OrderLine, OrderSequence

__all__ = [
    'Product', 'Discount',
    'InventoryItem', 'StockMovement',
    'Order', 'OrderLine', 'OrderSequence',
]
