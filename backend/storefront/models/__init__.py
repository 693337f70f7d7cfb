from .catalog import Category, Product
from .carts import Cart, CartItem
from .orders import Order, OrderItem, ORDER_STATUSES
from .auth import User, SessionToken, ROLES
from .reviews import Review
from .security import SecurityEvent

__all__ = [
    'Category', 'Product',
    'Cart', 'CartItem',
    'Order', 'OrderItem', 'ORDER_STATUSES',
    'User', 'SessionToken', 'ROLES',
    'Review',
    'SecurityEvent',
]
