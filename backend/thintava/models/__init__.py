from .orders import Order, OrderStatus, OrderHistory, AdminOrderHistory
from .auth import User, UserSession, SessionHistory
from .security import SecurityLog

__all__ = [
    'Order', 'OrderStatus', 'OrderHistory', 'AdminOrderHistory',
    'User', 'UserSession', 'SessionHistory',
    'SecurityLog',
]
