from .auth import User, SessionToken
from .catalog import Product
from .cart import CartItem
from .orders import Order, OrderStatusHistory, ReturnRequest
from .loyalty import LoyaltyAccount, LoyaltyTransaction, Referral

__all__ = [
    'User', 'SessionToken',
    'Product',
    'CartItem',
    'Order', 'OrderStatusHistory', 'ReturnRequest',
    'LoyaltyAccount', 'LoyaltyTransaction', 'Referral',
]
