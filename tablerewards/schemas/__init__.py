from tablerewards.schemas.user import UserCreate, UserResponse, UserLogin, UserUpdate, UserRoleUpdate, Token
from tablerewards.schemas.restaurant import (
    RestaurantCreate, RestaurantUpdate, RestaurantResponse, RestaurantListResponse, AvailabilityResponse,
)
from tablerewards.schemas.booking import (
    BookingCreate, BookingStatusUpdate, BookingResponse, BookingCreatedResponse, BookingTransitionResponse,
)
from tablerewards.schemas.menu import MenuItemCreate, MenuItemUpdate, MenuItemResponse
from tablerewards.schemas.reward import RewardResponse, RewardSummaryResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "UserUpdate", "UserRoleUpdate", "Token",
    "RestaurantCreate", "RestaurantUpdate", "RestaurantResponse", "RestaurantListResponse",
    "AvailabilityResponse",
    "BookingCreate", "BookingStatusUpdate", "BookingResponse", "BookingCreatedResponse",
    "BookingTransitionResponse",
    "MenuItemCreate", "MenuItemUpdate", "MenuItemResponse",
    "RewardResponse", "RewardSummaryResponse",
]
