"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .log_notifier import LogOnlyNotifier
from .notifier import BookingNotifier

__all__ = ['BookingNotifier', 'LogOnlyNotifier']
