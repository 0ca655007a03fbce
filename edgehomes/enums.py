from enum import Enum


class PropertyTypeValue(str, Enum):
    SHORT_LET = "Short-let"
    LONG_STAY = "Long-stay"


class PropertyCurrency(str, Enum):
    NGN = "₦"
    USD = "$"
    GBP = "£"
    EUR = "€"


class PropertyDuration(str, Enum):
    NIGHT = "night"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    DAY = "day"


class RevalidateTag(str, Enum):
    HEADER_DETAILS = "HEADER_DETAILS"
    PROPERTIES = "PROPERTIES"
    PROPERTY = "PROPERTY"
    BOOKINGS = "BOOKINGS"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class TransactionType(str, Enum):
    CREDIT_PURCHASE = "CREDIT_PURCHASE"
    UNLIMITED_YEARLY = "UNLIMITED_YEARLY"
    BOOKING_PAYMENT = "BOOKING_PAYMENT"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
