from tablerewards.models.user import User, UserRole
from tablerewards.models.restaurant import Restaurant
from tablerewards.models.booking import Booking, BookingStatus
from tablerewards.models.booking_slot import BookingSlot
from tablerewards.models.reward import Reward
from tablerewards.models.notification import EmailNotification, NotificationKind
from tablerewards.models.menu_item import MenuItem, MenuCategory

__all__ = [
    "User", "UserRole",
    "Restaurant",
    "Booking", "BookingStatus",
    "BookingSlot",
    "Reward",
    "EmailNotification", "NotificationKind",
    "MenuItem", "MenuCategory",
]
