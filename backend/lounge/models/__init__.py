from .auth import User, AuthToken, USER_ROLES
from .devices import Device, PlaySession, DEVICE_TYPES, DEVICE_STATUSES, SESSION_STATUSES, BILLING_MODES
from .sales import Product, Sale, PRODUCT_CATEGORIES
from .accounting import Expense, Debt, DailySummary, EXPENSE_CATEGORIES, DEBT_STATUSES

__all__ = [
    'User', 'AuthToken',
    'Device', 'PlaySession',
    'Product', 'Sale',
    'Expense', 'Debt', 'DailySummary',
    'USER_ROLES', 'DEVICE_TYPES', 'DEVICE_STATUSES', 'SESSION_STATUSES', 'BILLING_MODES',
    'PRODUCT_CATEGORIES', 'EXPENSE_CATEGORIES', 'DEBT_STATUSES',
]
