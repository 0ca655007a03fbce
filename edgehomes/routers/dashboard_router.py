import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from .. import crud, urls
from ..auth import AuthSession, require_user_session
from ..backend import BackendClient, get_backend
from ..booking_flow import BookingAction, BookingDraft, handle_action, parse_step
from ..config import settings
from ..enums import (
    PropertyCurrency,
    PropertyDuration,
    PropertyTypeValue,
    RevalidateTag,
    TransactionStatus,
    TransactionType,
)
from ..exceptions import BackendError
from ..icons import resolve_icon
from ..limits import payment_limiter
from ..media import MediaStaging
from ..pages import (
    layout_context,
    page_number,
    parse_price_range,
    raise_if_unauthorized,
    save_new_property,
    save_property_edit,
)
from ..pagination import build_pagination_view
from ..schemas import BookingList, PropertyList, TransactionList
from ..templates import redirect, render
from .public_router import booking_modal_context

logger = logging.getLogger("edgehomes.web")

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

PROPERTY_FORM_CHOICES = {
    "property_types": list(PropertyTypeValue),
    "currencies": list(PropertyCurrency),
    "durations": list(PropertyDuration),
}


def _default_summary(session: AuthSession) -> dict:
    return {
        "userProfile": {"name": session.claims.name or "User", "email": session.claims.email, "credits": 0},
        "stats": {
            "totalBookings": 0,
            "upcomingBookings": 0,
            "totalSpent": 0,
            "creditsAvailable": 0,
            "propertiesListed": 0,
        },
        "upcomingBookings": [],
        "recentBookings": [],
        "quickActions": [
            {"label": "Browse Properties", "icon": "Home", "href": urls.User.PROPERTIES},
            {"label": "My Bookings", "icon": "Calendar", "href": urls.User.BOOKINGS},
            {"label": "My Subscriptions", "icon": "CreditCard", "href": urls.User.SUBSCRIPTION},
        ],
    }


@router.get("")
async def summary(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    data = None
    try:
        data = await crud.get_dashboard_summary(backend, session.token)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Dashboard summary unavailable for {session.claims.sub}: {e.message}")

    data = data or _default_summary(session)
    quick_actions = [
        {**action, "icon": resolve_icon(action.get("icon"))}
        for action in data.get("quickActions", [])
    ]
    context.update({"summary": data, "quick_actions": quick_actions})
    return render(request, "dashboard/summary.html", context)


# --- Browse and book ---

async def _browse_context(request: Request, backend: BackendClient, session: AuthSession) -> dict:
    query = request.query_params
    min_price, max_price = parse_price_range(query.get("price", ""))
    listing = PropertyList()
    context = {}
    try:
        listing = await crud.list_user_properties(
            backend,
            session.token,
            location=query.get("location", ""),
            property_type=query.get("type", ""),
            min_price=min_price,
            max_price=max_price,
            page=page_number(query.get("page")),
        )
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Property browse unavailable: {e.message}")
        context["listing_error"] = e.message

    context.update({
        "properties": listing.properties,
        "pagination": build_pagination_view(listing.pagination, urls.User.PROPERTIES, query),
        "filters": {k: query.get(k, "") for k in ("location", "type", "price")},
        "property_types": list(PropertyTypeValue),
    })
    return context


@router.get("/properties")
async def browse_properties(
        request: Request,
        book: str = "",
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    context.update(await _browse_context(request, backend, session))

    prop = None
    if book:
        try:
            prop = await crud.get_property(backend, session.token, book)
        except BackendError as e:
            raise_if_unauthorized(e, request, session)
            logger.warning(f"Could not open booking for {book}: {e.message}")
    context.update(booking_modal_context(prop, None))
    context["booking_action"] = f"{urls.User.PROPERTIES}/{book}/book" if prop else None
    return render(request, "dashboard/properties.html", context)


@router.post("/properties/{property_id}/book", dependencies=[Depends(payment_limiter)])
async def book_property(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    try:
        action = BookingAction(form.get("action", ""))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown booking action")

    prop = await _user_property(request, backend, session, property_id)
    try:
        outcome = await handle_action(
            backend, prop, parse_step(form.get("step", "")), action, BookingDraft.from_form(form), is_dashboard=True
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if outcome.redirect_url:
        return RedirectResponse(url=outcome.redirect_url, status_code=303)

    context = await layout_context(request, backend, session)
    context.update(await _browse_context(request, backend, session))
    context.update(booking_modal_context(prop, outcome))
    context["booking_action"] = f"{urls.User.PROPERTIES}/{property_id}/book"
    return render(request, "dashboard/properties.html", context, status_code=422 if outcome.errors else 200)


async def _user_property(request: Request, backend: BackendClient, session: AuthSession, property_id: str):
    try:
        return await crud.get_property(backend, session.token, property_id)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        if e.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
        raise


@router.get("/properties/{property_id}")
async def property_detail(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    prop = await _user_property(request, backend, session, property_id)
    context.update({
        "property": prop,
        "book_url": f"{urls.User.PROPERTIES}?book={prop.id}",
        "share_url": f"{settings.BASE_URL}{urls.Public.PROPERTY.format(property_id=prop.id)}",
    })
    return render(request, "dashboard/property.html", context)


# --- My properties ---

@router.get("/my-properties")
async def my_properties(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    query = request.query_params
    context = await layout_context(request, backend, session)
    listing = PropertyList()
    try:
        listing = await crud.list_my_properties(backend, session.token, page=page_number(query.get("page")))
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"My properties unavailable for {session.claims.sub}: {e.message}")
        context["listing_error"] = e.message

    editing = None
    edit_id = query.get("edit", "")
    if edit_id:
        editing = next((p for p in listing.properties if p.id == edit_id), None)

    profile = context.get("profile")
    context.update({
        "properties": listing.properties,
        "pagination": build_pagination_view(listing.pagination, request.url.path, query),
        "credits": profile.listingCredits if profile else 0,
        "show_add_form": query.get("add-property") == "true",
        "editing": editing,
        "media": MediaStaging.from_property(editing) if editing else None,
        **PROPERTY_FORM_CHOICES,
    })
    return render(request, "dashboard/my_properties.html", context)


@router.post("/my-properties")
async def create_my_property(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    result = await save_new_property(request, backend, session, form)
    if result.errors:
        return redirect(f"{urls.User.MY_PROPERTIES}?add-property=true", result.errors[0], error=True)
    await backend.revalidate(RevalidateTag.HEADER_DETAILS)
    return redirect(urls.User.MY_PROPERTIES, "Property created successfully!")


@router.post("/my-properties/{property_id}/edit")
async def edit_my_property(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    prop = await _user_property(request, backend, session, property_id)
    form = await request.form()
    result = await save_property_edit(request, backend, session, prop, form, as_admin=False)
    if result.errors:
        return redirect(f"{urls.User.MY_PROPERTIES}?edit={property_id}", result.errors[0], error=True)
    if not result.saved:
        return redirect(urls.User.MY_PROPERTIES)
    return redirect(urls.User.MY_PROPERTIES, "Property updated successfully!")


@router.post("/my-properties/{property_id}/delete")
async def delete_my_property(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    try:
        await crud.delete_property(backend, session.token, property_id, as_admin=False)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(urls.User.MY_PROPERTIES, e.message, error=True)

    await backend.revalidate(RevalidateTag.PROPERTIES, RevalidateTag.PROPERTY)
    return redirect(urls.User.MY_PROPERTIES, "Property deleted successfully")


@router.post("/my-properties/{property_id}/renew")
async def renew_my_property(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    back_to = urls.safe_redirect_target((await request.form()).get("next"), urls.User.SUBSCRIPTION)
    try:
        await crud.renew_property(backend, session.token, property_id)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(back_to, e.message or "Failed to renew subscription. Ensure you have enough credits.", error=True)

    await backend.revalidate(RevalidateTag.PROPERTIES, RevalidateTag.PROPERTY, RevalidateTag.HEADER_DETAILS)
    return redirect(back_to, "Property listing renewed successfully")


# --- Bookings ---

@router.get("/bookings")
async def my_bookings(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    query = request.query_params
    context = await layout_context(request, backend, session)
    booking_list = BookingList()
    try:
        booking_list = await crud.list_user_bookings(backend, session.token, page=page_number(query.get("page")))
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Bookings unavailable for {session.claims.sub}: {e.message}")
        context["listing_error"] = e.message

    context.update({
        "bookings": booking_list.bookings,
        "pagination": build_pagination_view(booking_list.pagination, request.url.path, query),
    })
    return render(request, "dashboard/bookings.html", context)


def _verification_page(request: Request, context: dict, result, reference: str, back_url: str, kind: str):
    state = crud.verification_state(result)
    context.update({
        "state": state,
        "message": result.message,
        "result": result,
        "reference": reference,
        "back_url": back_url,
        "kind": kind,
        "refresh_seconds": settings.PAYMENT_PENDING_REFRESH_SECONDS if state == "pending" else None,
    })
    return render(request, "dashboard/verify_payment.html", context)


@router.get("/bookings/payment/verify")
async def verify_booking_payment(
        request: Request,
        reference: str = "",
        trxref: str = "",
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    reference = reference or trxref
    if not reference:
        return redirect(urls.User.PROPERTIES)

    context = await layout_context(request, backend, session)
    result = await crud.verify_booking_payment(backend, session.token, reference)
    if crud.verification_state(result) == "success":
        await backend.revalidate(RevalidateTag.BOOKINGS)
    return _verification_page(request, context, result, reference, urls.User.BOOKINGS, "booking")


# --- Payments and subscription ---

@router.get("/payment")
async def transactions(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    query = request.query_params
    context = await layout_context(request, backend, session)
    history = TransactionList()
    try:
        history = await crud.list_transactions(
            backend,
            session.token,
            page=page_number(query.get("page")),
            status=query.get("status", ""),
            transaction_type=query.get("type", ""),
        )
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Transactions unavailable for {session.claims.sub}: {e.message}")
        context["listing_error"] = e.message

    context.update({
        "transactions": history.transactions,
        "stats": crud.summarize_transactions(history.transactions, history.pagination),
        "credits": history.credit,
        "statuses": list(TransactionStatus),
        "types": list(TransactionType),
        "filters": {k: query.get(k, "") for k in ("status", "type")},
        "pagination": build_pagination_view(history.pagination, request.url.path, query),
    })
    return render(request, "dashboard/transactions.html", context)


async def _subscription_details(request: Request, backend: BackendClient, session: AuthSession) -> dict:
    try:
        return await crud.get_subscription_details(backend, session.token)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        raise


@router.get("/subscription")
async def subscription(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    details, error = {}, None
    try:
        details = await _subscription_details(request, backend, session)
    except BackendError as e:
        logger.warning(f"Subscription details unavailable for {session.claims.sub}: {e.message}")
        error = e.message

    credits = (details.get("userProfile") or {}).get("credits", 0)
    credit_options = [o for o in details.get("creditOptions", []) if o.get("credits", 0) > (credits or 0)]
    context.update({
        "details": details,
        "credits": credits,
        "credit_options": credit_options,
        "unlimited_option": details.get("unlimitedOption"),
        "listing_error": error,
    })
    return render(request, "dashboard/subscription.html", context)


@router.post("/subscription/credits", dependencies=[Depends(payment_limiter)])
async def purchase_credits(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    try:
        credits = int(form.get("credits", ""))
    except ValueError:
        return redirect(urls.User.SUBSCRIPTION, "Select a credit package", error=True)

    try:
        details = await _subscription_details(request, backend, session)
        # Price comes from the backend's own package list, never from the form
        option = next((o for o in details.get("creditOptions", []) if o.get("credits") == credits), None)
        if option is None:
            return redirect(urls.User.SUBSCRIPTION, "Select a credit package", error=True)
        init = await crud.initialize_credit_purchase(backend, session.token, credits, option["price"])
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(urls.User.SUBSCRIPTION, e.message or "Failed to initialize payment", error=True)

    if not init.redirect_url:
        return redirect(urls.User.SUBSCRIPTION, "Failed to initialize payment", error=True)
    logger.info(f"Credit purchase of {credits} started for {session.claims.sub}")
    return RedirectResponse(url=init.redirect_url, status_code=303)


@router.post("/subscription/unlimited", dependencies=[Depends(payment_limiter)])
async def purchase_unlimited(
        request: Request,
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    try:
        details = await _subscription_details(request, backend, session)
        option = details.get("unlimitedOption")
        if not option:
            return redirect(urls.User.SUBSCRIPTION, "The unlimited plan is not available", error=True)
        init = await crud.initialize_unlimited_plan(backend, session.token, option["price"])
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(urls.User.SUBSCRIPTION, e.message or "Failed to initialize payment", error=True)

    if not init.redirect_url:
        return redirect(urls.User.SUBSCRIPTION, "Failed to initialize payment", error=True)
    logger.info(f"Unlimited plan purchase started for {session.claims.sub}")
    return RedirectResponse(url=init.redirect_url, status_code=303)


@router.get("/subscription/verify-payment")
async def verify_credit_payment(
        request: Request,
        reference: str = "",
        trxref: str = "",
        session: AuthSession = Depends(require_user_session),
        backend: BackendClient = Depends(get_backend),
):
    reference = reference or trxref
    if not reference:
        return redirect(urls.User.SUBSCRIPTION)

    context = await layout_context(request, backend, session)
    result = await crud.verify_credit_payment(backend, session.token, reference)
    if crud.verification_state(result) == "success":
        await backend.revalidate(RevalidateTag.HEADER_DETAILS)
    return _verification_page(request, context, result, reference, urls.User.SUBSCRIPTION, "subscription")
