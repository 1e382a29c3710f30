from .user import User
from .book import Book
from .borrow_request import BorrowRequest
from .checkout import Checkout
from .audit_log import AuditLog
from .security_event import SecurityEvent


__all__ = ["User", "Book", "BorrowRequest", "Checkout", "AuditLog", "SecurityEvent"]
