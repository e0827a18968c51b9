from .tenancy import Organization, Member
from .auth import User, SessionToken
from .catalog import Product, Discount
from .sales import Transaction, TransactionItem
from .expenses import Expense

__all__ = [
    'Organization', 'Member',
    'User', 'SessionToken',
    'Product', 'Discount',
    'Transaction', 'TransactionItem',
    'Expense',
]
