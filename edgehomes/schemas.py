from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional
import datetime

from .enums import (
    BookingStatus,
    PropertyCurrency,
    PropertyDuration,
    PropertyTypeValue,
    TransactionStatus,
    TransactionType,
)


class BackendModel(BaseModel):
    # Backend payloads grow fields faster than we mirror them
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# --- Session ---

class TokenClaims(BackendModel):
    sub: str
    name: str = ""
    email: str = ""
    isAdmin: bool = False
    iat: Optional[int] = None
    exp: int


class UserProfile(BackendModel):
    id: str = Field(default="", alias="_id")
    name: str = ""
    email: str = ""
    phone: str = ""
    isAdmin: bool = False
    avatar: Optional[str] = None
    listingCredits: int = 0
    isUnlimited: bool = False
    unlimitedExpiryDate: Optional[datetime.datetime] = None


# --- Properties ---

class PropertyPrice(BackendModel):
    amount: float
    currency: PropertyCurrency = PropertyCurrency.NGN
    duration: PropertyDuration = PropertyDuration.NIGHT


class PropertyImage(BackendModel):
    url: str
    placeholderUrl: Optional[str] = None
    publicId: Optional[str] = None
    order: int = 0


class PropertyVideo(BackendModel):
    url: str
    placeholderUrl: Optional[str] = None
    publicId: Optional[str] = None


class PropertyOwner(BackendModel):
    id: str = Field(default="", alias="_id")
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    isAdmin: bool = False
    avatar: Optional[str] = None


class BookingStats(BackendModel):
    totalBookings: int = 0
    confirmedBookings: int = 0
    pendingBookings: int = 0
    cancelledBookings: int = 0
    revenueGenerated: float = 0
    occupancyRate: float = 0
    totalOccupiedDays: int = 0
    averageStayDuration: float = 0


class Property(BackendModel):
    id: str = Field(alias="_id")
    title: str
    location: str
    type: PropertyTypeValue = PropertyTypeValue.SHORT_LET
    price: PropertyPrice
    images: List[PropertyImage] = []
    video: Optional[PropertyVideo] = None
    beds: int = 0
    baths: int = 0
    available: bool = True
    isVerified: bool = False
    features: List[str] = []
    bookingStats: Optional[BookingStats] = None
    createdBy: Optional[PropertyOwner] = None
    blockedDates: Optional[Any] = None

    @property
    def cover_image(self) -> Optional[PropertyImage]:
        if not self.images:
            return None
        return sorted(self.images, key=lambda img: img.order)[0]


class Pagination(BackendModel):
    page: int = 1
    limit: int = 10
    itemCount: int = 0
    totalPages: int = 1
    hasNextPage: bool = False
    hasPreviousPage: bool = False


class PropertyList(BackendModel):
    properties: List[Property] = []
    pagination: Optional[Pagination] = None


class AdminPropertyList(PropertyList):
    totalProperties: int = 0
    availableProperties: int = 0
    bookedProperties: int = 0


# --- Bookings ---

class BookingProperty(BackendModel):
    id: str = Field(default="", alias="_id")
    title: str = ""
    location: str = ""


class Booking(BackendModel):
    id: str = Field(alias="_id")
    userId: Optional[str] = None
    propertyTitle: Optional[str] = None
    property: Optional[BookingProperty] = None
    customerName: str
    customerEmail: str
    customerPhone: str
    checkInDate: datetime.datetime
    checkOutDate: datetime.datetime
    totalAmount: float = 0
    status: BookingStatus = BookingStatus.PENDING
    createdAt: Optional[datetime.datetime] = None


class BookingList(BackendModel):
    bookings: List[Booking] = []
    pagination: Pagination = Pagination()


# --- Payments ---

class Transaction(BackendModel):
    id: str = Field(default="", alias="_id")
    userId: Optional[str] = None
    amount: float = 0
    creditsPurchased: int = 0
    paymentReference: str = ""
    type: TransactionType
    status: TransactionStatus
    createdAt: Optional[datetime.datetime] = None


class TransactionList(BackendModel):
    transactions: List[Transaction] = []
    pagination: Optional[Pagination] = None
    credit: int = 0


class TransactionStats(BaseModel):
    totalTransactions: int = 0
    successfulTransactions: int = 0
    totalAmount: float = 0
    pendingTransactions: int = 0
    creditsPurchased: int = 0


class PaymentInitialization(BackendModel):
    authorization_url: Optional[str] = None
    authorizationUrl: Optional[str] = None
    reference: Optional[str] = None

    @property
    def redirect_url(self) -> Optional[str]:
        # Booking and credit endpoints disagree on the casing
        return self.authorization_url or self.authorizationUrl


class VerificationResult(BaseModel):
    success: bool
    message: str
    data: Optional[Transaction] = None
    error: Optional[str] = None


# --- Auth ---

class SignInResponse(BackendModel):
    user: UserProfile
    accessToken: str
