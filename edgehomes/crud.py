"""
Typed wrappers around the backend endpoints the pages use.

Read helpers raise BackendError like everything else; the routers decide
whether a failed read degrades to an empty page or a redirect.
"""
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .backend import BackendClient
from .enums import RevalidateTag, TransactionStatus, TransactionType
from .exceptions import BackendError
from .schemas import (
    AdminPropertyList,
    BookingList,
    Pagination,
    PaymentInitialization,
    Property,
    PropertyList,
    SignInResponse,
    Transaction,
    TransactionList,
    TransactionStats,
    UserProfile,
    VerificationResult,
)

M = TypeVar("M", bound=BaseModel)


def _parse(model: Type[M], body) -> M:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise BackendError(
            f"Unexpected response from the server ({e.error_count()} invalid fields)",
            status_code=502,
        ) from e


# --- Auth ---

async def sign_in(backend: BackendClient, email: str, password: str) -> SignInResponse:
    body = await backend.post("/auth/sign-in", json={"email": email, "password": password})
    return _parse(SignInResponse, body)


async def register(backend: BackendClient, name: str, email: str, phone: str, password: str) -> UserProfile:
    body = await backend.post(
        "/auth/register",
        json={"name": name, "email": email, "phone": phone, "password": password},
    )
    return _parse(UserProfile, body)


async def forgot_password(backend: BackendClient, email: str) -> str:
    body = await backend.post("/auth/forgot-password", json={"email": email})
    return (body or {}).get("message") or "Reset code sent! Check your email."


async def verify_otp(backend: BackendClient, email: str, code: str) -> dict:
    """Exchanges the emailed code for a password reset token."""
    return await backend.post("/otp/verify", json={"email": email, "code": code}) or {}


async def validate_reset_token(backend: BackendClient, token: str) -> bool:
    try:
        await backend.post("/otp/validate-reset-token", json={"token": token})
    except BackendError:
        return False
    return True


async def reset_password(backend: BackendClient, token: str, password: str) -> None:
    await backend.post("/auth/reset-password", json={"token": token, "password": password})


# --- Users ---

async def get_profile(backend: BackendClient, token: str) -> UserProfile:
    body = await backend.get("/user/profile", token=token, tags=[RevalidateTag.HEADER_DETAILS])
    return _parse(UserProfile, body)


async def get_dashboard_summary(backend: BackendClient, token: str) -> dict:
    return await backend.get("/user/dashboard/summary", token=token) or {}


async def get_admin_overview(backend: BackendClient, token: str) -> dict:
    return await backend.get("/user/admin-dashboard-overview", token=token) or {}


async def get_subscription_details(backend: BackendClient, token: str) -> dict:
    return await backend.get("/user/subscription-details", token=token) or {}


# --- Properties ---

async def list_public_properties(
        backend: BackendClient,
        location: str = "",
        property_type: str = "",
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        page: int = 1,
        limit: int = 6,
) -> PropertyList:
    params = {
        "location": location.strip(),
        "type": property_type,
        "min": min_price,
        "max": max_price,
        "page": page,
        "limit": limit,
    }
    body = await backend.get("/property", params=params, tags=[RevalidateTag.PROPERTIES])
    return _parse(PropertyList, body or {})


async def search_properties(backend: BackendClient, query: str) -> List[Property]:
    """Uncached lookup used by the debounced admin search box."""
    body = await backend.get("/property", params={"location": query})
    return _parse(PropertyList, body or {}).properties


async def list_admin_properties(
        backend: BackendClient,
        token: str,
        search: str = "",
        property_type: str = "",
        available: str = "",
        page: int = 1,
) -> AdminPropertyList:
    params = {"search": search, "type": property_type, "available": available, "page": page}
    body = await backend.get("/property/fetch-all", token=token, params=params, tags=[RevalidateTag.PROPERTIES])
    return _parse(AdminPropertyList, body or {})


async def list_user_properties(
        backend: BackendClient,
        token: str,
        location: str = "",
        property_type: str = "",
        min_price: Optional[str] = None,
        max_price: Optional[str] = None,
        page: int = 1,
) -> PropertyList:
    params = {
        "location": location.strip(),
        "type": property_type,
        "min": min_price,
        "max": max_price,
        "page": page,
    }
    body = await backend.get("/property/user", token=token, params=params)
    return _parse(PropertyList, body or {})


async def list_my_properties(backend: BackendClient, token: str, page: int = 1) -> PropertyList:
    body = await backend.get("/property/my-properties", token=token, params={"page": page})
    return _parse(PropertyList, body or {})


async def get_property(backend: BackendClient, token: Optional[str], property_id: str, as_admin: bool = False) -> Property:
    path = f"/property/{property_id}/admin" if as_admin else f"/property/{property_id}"
    body = await backend.get(path, token=token, tags=[RevalidateTag.PROPERTY])
    return _parse(Property, body)


async def create_property(backend: BackendClient, token: str, data: dict, files: list) -> dict:
    return await backend.post("/property", token=token, data=data, files=files) or {}


async def update_property(
        backend: BackendClient,
        token: str,
        property_id: str,
        data: dict,
        files: list,
        as_admin: bool = False,
) -> None:
    path = f"/property/{property_id}" if as_admin else f"/property/{property_id}/user"
    if not files:
        # The backend only reads this body as multipart, uploads or not
        files = [(name, (None, value)) for name, value in data.items()]
        data = None
    await backend.patch(path, token=token, data=data, files=files)


async def delete_property(backend: BackendClient, token: str, property_id: str, as_admin: bool = False) -> None:
    path = f"/property/{property_id}" if as_admin else f"/property/{property_id}/user"
    await backend.delete(path, token=token)


async def set_property_availability(backend: BackendClient, token: str, property_id: str, available: bool) -> None:
    await update_property(backend, token, property_id, {"available": str(available).lower()}, [], as_admin=True)


async def set_property_verification(backend: BackendClient, token: str, property_id: str, is_verified: bool) -> None:
    await backend.patch(f"/property/{property_id}/verify", token=token, json={"isVerified": is_verified})


async def renew_property(backend: BackendClient, token: str, property_id: str) -> None:
    await backend.post(f"/property/{property_id}/renew", token=token)


# --- Bookings ---

async def list_bookings(
        backend: BackendClient,
        token: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: str = "",
        search: str = "",
) -> BookingList:
    params = {"page": page, "limit": limit, "status": status, "search": search}
    body = await backend.get("/bookings", token=token, params=params, tags=[RevalidateTag.BOOKINGS])
    return _parse(BookingList, body or {})


async def get_booking_stats(backend: BackendClient, token: str) -> dict:
    return await backend.get("/bookings/stats", token=token, tags=[RevalidateTag.BOOKINGS]) or {}


async def list_user_bookings(backend: BackendClient, token: str, page: int = 1) -> BookingList:
    body = await backend.get("/bookings/user", token=token, params={"page": page})
    return _parse(BookingList, body or {})


async def create_booking(backend: BackendClient, token: str, payload: dict) -> dict:
    return await backend.post("/bookings", token=token, json=payload) or {}


async def confirm_booking(backend: BackendClient, token: str, booking_id: str) -> None:
    await backend.patch(f"/bookings/{booking_id}/confirm", token=token)


async def cancel_booking(backend: BackendClient, token: str, booking_id: str) -> None:
    await backend.patch(f"/bookings/{booking_id}/cancel", token=token)


# --- Payments ---

async def initialize_booking_payment(backend: BackendClient, payload: dict) -> PaymentInitialization:
    body = await backend.post("/payments/booking/initialize", json=payload)
    return _parse(PaymentInitialization, body or {})


async def initialize_credit_purchase(backend: BackendClient, token: str, credits: int, amount: float) -> PaymentInitialization:
    body = await backend.post(
        "/payments/credit/initialize",
        token=token,
        json={"type": TransactionType.CREDIT_PURCHASE.value, "creditCount": credits, "amount": amount},
    )
    return _parse(PaymentInitialization, body or {})


async def initialize_unlimited_plan(backend: BackendClient, token: str, amount: float) -> PaymentInitialization:
    body = await backend.post(
        "/payments/initialize",
        token=token,
        json={"type": TransactionType.UNLIMITED_YEARLY.value, "creditCount": 1, "amount": amount},
    )
    return _parse(PaymentInitialization, body or {})


async def _verify_payment(backend: BackendClient, token: Optional[str], path: str) -> VerificationResult:
    try:
        body = await backend.get(path, token=token)
        transaction = _parse(Transaction, body)
    except BackendError as e:
        if e.status_code is None:
            return VerificationResult(
                success=False,
                message="Failed to verify payment. Please try again.",
                error=e.message,
            )
        return VerificationResult(success=False, message=e.message, error=e.message)

    return VerificationResult(
        success=True,
        message="Verification successful",
        data=transaction,
    )


async def verify_booking_payment(backend: BackendClient, token: Optional[str], reference: str) -> VerificationResult:
    return await _verify_payment(backend, token, f"/payments/booking/verify/{reference}")


async def verify_credit_payment(backend: BackendClient, token: str, reference: str) -> VerificationResult:
    return await _verify_payment(backend, token, f"/payments/credit/verify/{reference}")


async def list_transactions(
        backend: BackendClient,
        token: str,
        page: int = 1,
        status: str = "",
        transaction_type: str = "",
) -> TransactionList:
    params = {"page": page, "status": status, "type": transaction_type}
    body = await backend.get("/transaction", token=token, params=params)
    return _parse(TransactionList, body or {})


def summarize_transactions(transactions: List[Transaction], pagination: Optional[Pagination]) -> TransactionStats:
    successful = [t for t in transactions if t.status == TransactionStatus.SUCCESS]
    return TransactionStats(
        totalTransactions=pagination.itemCount if pagination and pagination.itemCount else len(transactions),
        successfulTransactions=len(successful),
        totalAmount=sum(t.amount for t in successful),
        pendingTransactions=sum(1 for t in transactions if t.status == TransactionStatus.PENDING),
        creditsPurchased=sum(t.creditsPurchased for t in successful),
    )


def verification_state(result: VerificationResult) -> str:
    """`success`, `pending` or `failed`, as shown on the verification pages."""
    if not result.success or result.data is None:
        return "failed"
    if result.data.status == TransactionStatus.SUCCESS:
        return "success"
    if result.data.status == TransactionStatus.PENDING:
        return "pending"
    return "failed"
