from .auth import User, SessionToken, ROLES
from .catalog import Product, Ingredient, ProductIngredient
from .orders import Order, OrderItem, ORDER_STATUSES

__all__ = [
    'User', 'SessionToken', 'ROLES',
    'Product', 'Ingredient', 'ProductIngredient',
    'Order', 'OrderItem', 'ORDER_STATUSES',
]
