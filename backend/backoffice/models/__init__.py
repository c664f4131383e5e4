from .auth import User, DeviceToken
from .catalog import Item, ItemSerial, StockReceipt, Service
from .customers import Customer
from .billing import Bill, BillLine, BillPayment
from .work_orders import WorkOrder
from .banking import BankAccount
from .documents import DocumentSequence

__all__ = [
    'User', 'DeviceToken',
    'Item', 'ItemSerial', 'StockReceipt', 'Service',
    'Customer',
    'Bill', 'BillLine', 'BillPayment',
    'WorkOrder',
    'BankAccount',
    'DocumentSequence',
]
