"""
The "book this property" wizard shared by the home page and the user
dashboard.

    options --pay--> pay --submit--> payment gateway
       |                 +--back--> options
       +--owner--> owner --back--> options

The page is server rendered, so the wizard's step and the visitor's draft
travel with every POST as form fields. Going back keeps the draft.
"""
import datetime
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import List, Mapping, Optional

from . import crud
from .backend import BackendClient
from .config import settings
from .exceptions import BackendError, BackendUnavailableError
from .schemas import Property
from .validation import is_valid_email, is_valid_phone

logger = logging.getLogger("edgehomes.web")

SUBMIT_FAILED_MESSAGE = "Failed to submit booking"


class BookingStep(str, Enum):
    OPTIONS = "options"
    PAY = "pay"
    OWNER = "owner"


class BookingAction(str, Enum):
    PAY = "pay"
    OWNER = "owner"
    BACK = "back"
    SUBMIT = "submit"


_TRANSITIONS = {
    (BookingStep.OPTIONS, BookingAction.PAY): BookingStep.PAY,
    (BookingStep.OPTIONS, BookingAction.OWNER): BookingStep.OWNER,
    (BookingStep.PAY, BookingAction.BACK): BookingStep.OPTIONS,
    (BookingStep.OWNER, BookingAction.BACK): BookingStep.OPTIONS,
}


def next_step(step: BookingStep, action: BookingAction) -> BookingStep:
    try:
        return _TRANSITIONS[(step, action)]
    except KeyError:
        raise ValueError(f"Cannot {action.value} from the {step.value} step") from None


@dataclass
class BookingDraft:
    name: str = ""
    email: str = ""
    phone: str = ""
    check_in: str = ""
    check_out: str = ""

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> "BookingDraft":
        return cls(**{f.name: str(form.get(f.name, "")).strip() for f in fields(cls)})

    def as_form(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class BookingOutcome:
    step: BookingStep
    draft: BookingDraft
    errors: List[str] = field(default_factory=list)
    redirect_url: Optional[str] = None
    toast: Optional[str] = None


def _parse_date(value: str) -> Optional[datetime.date]:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        return None


def validate_draft(draft: BookingDraft, today: Optional[datetime.date] = None) -> List[str]:
    today = today or datetime.date.today()
    errors = []

    if not draft.name:
        errors.append("Full name is required")
    if not draft.email:
        errors.append("Email is required")
    elif not is_valid_email(draft.email):
        errors.append("Email must be a valid email address")
    if not draft.phone:
        errors.append("Phone number is required")
    elif not is_valid_phone(draft.phone):
        errors.append("Phone number must be valid")

    check_in = _parse_date(draft.check_in) if draft.check_in else None
    check_out = _parse_date(draft.check_out) if draft.check_out else None

    if not draft.check_in:
        errors.append("Check-in date is required")
    elif check_in is None:
        errors.append("Check-in date is invalid")
    elif check_in < today:
        errors.append("Check-in date cannot be in the past")

    if not draft.check_out:
        errors.append("Check-out date is required")
    elif check_out is None:
        errors.append("Check-out date is invalid")
    elif check_in is not None and check_out <= check_in:
        errors.append("Check-out date must be after check-in date")

    return errors


def total_amount(prop: Property) -> float:
    return float(prop.price.amount) + settings.INSURANCE_FEE


def build_payment_payload(prop: Property, draft: BookingDraft, is_dashboard: bool = False) -> dict:
    payload = {
        "propertyId": prop.id,
        "customerName": draft.name,
        "customerEmail": draft.email,
        "customerPhone": draft.phone,
        "checkInDate": draft.check_in,
        "checkOutDate": draft.check_out,
        "totalAmount": total_amount(prop),
    }
    if is_dashboard:
        payload["isDashboard"] = "true"
    return payload


async def submit_payment(
        backend: BackendClient,
        prop: Property,
        draft: BookingDraft,
        is_dashboard: bool = False,
        today: Optional[datetime.date] = None,
) -> BookingOutcome:
    """
    Validates the draft and, only if it is clean, asks the backend to start a
    payment. On success the outcome carries the gateway URL to redirect to.
    """
    errors = validate_draft(draft, today=today)
    if errors:
        return BookingOutcome(step=BookingStep.PAY, draft=draft, errors=errors)

    try:
        init = await crud.initialize_booking_payment(backend, build_payment_payload(prop, draft, is_dashboard))
    except BackendUnavailableError:
        return BookingOutcome(step=BookingStep.PAY, draft=draft, toast=SUBMIT_FAILED_MESSAGE)
    except BackendError as e:
        return BookingOutcome(step=BookingStep.PAY, draft=draft, errors=e.messages)

    if not init.redirect_url:
        logger.error(f"Payment initialization for property {prop.id} returned no authorization URL")
        return BookingOutcome(step=BookingStep.PAY, draft=draft, toast=SUBMIT_FAILED_MESSAGE)

    logger.info(f"Booking payment initialized for property {prop.id}")
    return BookingOutcome(step=BookingStep.PAY, draft=draft, redirect_url=init.redirect_url)


async def handle_action(
        backend: BackendClient,
        prop: Property,
        step: BookingStep,
        action: BookingAction,
        draft: BookingDraft,
        is_dashboard: bool = False,
) -> BookingOutcome:
    if action == BookingAction.SUBMIT:
        if step != BookingStep.PAY:
            raise ValueError("Bookings can only be submitted from the pay step")
        return await submit_payment(backend, prop, draft, is_dashboard=is_dashboard)
    return BookingOutcome(step=next_step(step, action), draft=draft)


def parse_step(value: str) -> BookingStep:
    try:
        return BookingStep(value)
    except ValueError:
        return BookingStep.OPTIONS
