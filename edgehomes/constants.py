import re

from .config import settings

USER_COOKIE_NAME = "user-auth-cookie-name"
ADMIN_COOKIE_NAME = "admin-auth-cookie-name"

# UI preference, not a credential
SIDEBAR_COOKIE_NAME = "sidebar-collapsed"
FLASH_COOKIE_NAME = "flash"

META_DATA = {
    "app_name": "Edge Homes",
    "title": "Edge Homes",
    "description": (
        "We redefine modern living by connecting you with the finest short-lets "
        "and luxury homes. Comfort, security, and class."
    ),
    "url": settings.BASE_URL,
    "open_graph_image": f"{settings.BASE_URL}/og-image.jpg",
}

SUPPORT_EMAIL = "bookings@edgehomes.com"
OFFICE_ADDRESS = "17 Petrocam Plaza, Elf-Bus-stop, Lagos"
OFFICE_PHONE = "+2348001234567"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")
COMMON_PASSWORD_PATTERN = re.compile(r"(password|123456|admin|qwerty)", re.IGNORECASE)

MAX_PROPERTY_IMAGES = 3
OTP_LENGTH = 6
OTP_RESEND_COOLDOWN_SECONDS = 30
SEARCH_MIN_QUERY_LENGTH = 2
