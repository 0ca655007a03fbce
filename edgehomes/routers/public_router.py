import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from .. import crud, urls
from ..backend import BackendClient, get_backend
from ..booking_flow import BookingAction, BookingDraft, BookingOutcome, BookingStep, handle_action, parse_step, total_amount
from ..config import settings
from ..enums import PropertyTypeValue
from ..exceptions import BackendError
from ..limits import payment_limiter
from ..pages import page_number
from ..pagination import build_pagination_view
from ..schemas import Property, PropertyList
from ..templates import redirect, render

logger = logging.getLogger("edgehomes.web")

router = APIRouter(tags=["Public"])

HOME_PAGE_SIZE = 6


async def _load_home_listing(request: Request, backend: BackendClient):
    query = request.query_params
    listing, error = PropertyList(), None
    try:
        listing = await crud.list_public_properties(
            backend,
            location=query.get("location", ""),
            property_type=query.get("type", ""),
            page=page_number(query.get("page")),
            limit=HOME_PAGE_SIZE,
        )
    except BackendError as e:
        logger.warning(f"Home listing unavailable: {e.message}")
        error = f"Failed to fetch properties: {e.message}"
    return {
        "properties": listing.properties,
        "pagination": build_pagination_view(listing.pagination, urls.HOME, query),
        "filters": {"location": query.get("location", ""), "type": query.get("type", "")},
        "property_types": list(PropertyTypeValue),
        "listing_error": error,
    }


async def _get_property_or_404(backend: BackendClient, property_id: str, token: Optional[str] = None) -> Property:
    try:
        return await crud.get_property(backend, token, property_id)
    except BackendError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
        raise


def booking_modal_context(prop: Optional[Property], outcome: Optional[BookingOutcome]) -> dict:
    if prop is None:
        return {"booking": None}
    outcome = outcome or BookingOutcome(step=BookingStep.OPTIONS, draft=BookingDraft())
    return {
        "booking": {
            "property": prop,
            "step": outcome.step.value,
            "draft": outcome.draft,
            "errors": outcome.errors,
            "toast": outcome.toast,
            "insurance_fee": settings.INSURANCE_FEE,
            "total": total_amount(prop),
        }
    }


@router.get("/")
async def home(request: Request, book: str = "", backend: BackendClient = Depends(get_backend)):
    """Landing page with the public listing; `?book=<id>` opens the booking modal."""
    context = await _load_home_listing(request, backend)
    prop = None
    if book:
        try:
            prop = await crud.get_property(backend, None, book)
        except BackendError as e:
            logger.warning(f"Could not open booking for {book}: {e.message}")
    context.update(booking_modal_context(prop, None))
    context["booking_action"] = f"/book/{book}" if prop else None
    return render(request, "home.html", context)


@router.post("/book/{property_id}", dependencies=[Depends(payment_limiter)])
async def book(request: Request, property_id: str, backend: BackendClient = Depends(get_backend)):
    form = await request.form()
    try:
        action = BookingAction(form.get("action", ""))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown booking action")

    prop = await _get_property_or_404(backend, property_id)
    try:
        outcome = await handle_action(backend, prop, parse_step(form.get("step", "")), action, BookingDraft.from_form(form))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if outcome.redirect_url:
        return RedirectResponse(url=outcome.redirect_url, status_code=303)

    context = await _load_home_listing(request, backend)
    context.update(booking_modal_context(prop, outcome))
    context["booking_action"] = f"/book/{property_id}"
    status_code = 422 if outcome.errors else 200
    return render(request, "home.html", context, status_code=status_code)


@router.get("/property/{property_id}")
async def property_detail(request: Request, property_id: str, backend: BackendClient = Depends(get_backend)):
    prop = await _get_property_or_404(backend, property_id)
    return render(
        request,
        "property.html",
        {
            "property": prop,
            "share_url": f"{settings.BASE_URL}{urls.Public.PROPERTY.format(property_id=prop.id)}",
            "book_url": f"{urls.HOME}?book={prop.id}",
        },
    )


@router.get(urls.Public.VERIFY_BOOKING_PAYMENT)
async def verify_booking_payment(
        request: Request,
        reference: str = "",
        trxref: str = "",
        backend: BackendClient = Depends(get_backend),
):
    """Where the payment gateway sends guests back after paying for a booking."""
    reference = reference or trxref
    if not reference:
        return redirect(urls.HOME)

    result = await crud.verify_booking_payment(backend, None, reference)
    state = crud.verification_state(result)
    return render(
        request,
        "verify_payment.html",
        {
            "state": state,
            "message": result.message,
            "result": result,
            "reference": reference,
            "back_url": urls.HOME,
            "refresh_seconds": settings.PAYMENT_PENDING_REFRESH_SECONDS if state == "pending" else None,
        },
    )
