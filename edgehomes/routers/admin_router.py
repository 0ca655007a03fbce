import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect, status

from .. import crud, urls
from ..auth import AuthSession, decode_session, require_admin_session
from ..backend import BackendClient, get_backend
from ..booking_flow import BookingDraft, validate_draft
from ..config import settings
from ..constants import ADMIN_COOKIE_NAME
from ..enums import BookingStatus, PropertyCurrency, PropertyDuration, PropertyTypeValue, RevalidateTag
from ..exceptions import BackendError
from ..media import MediaStaging
from ..pages import layout_context, page_number, raise_if_unauthorized, save_new_property, save_property_edit
from ..pagination import build_pagination_view
from ..schemas import AdminPropertyList, BookingList
from ..search import DebouncedSearch
from ..templates import redirect, render

logger = logging.getLogger("edgehomes.web")

router = APIRouter(prefix="/admin", tags=["Admin"])

BOOKINGS_PAGE_SIZE = 10

PROPERTY_FORM_CHOICES = {
    "property_types": list(PropertyTypeValue),
    "currencies": list(PropertyCurrency),
    "durations": list(PropertyDuration),
}


@router.get("")
async def overview(
        request: Request,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    overview_data, error = None, False
    try:
        overview_data = await crud.get_admin_overview(backend, session.token)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Admin overview unavailable: {e.message}")
        error = True

    context.update({"overview": overview_data or {}, "error": error})
    return render(request, "admin/overview.html", context)


# --- Properties ---

@router.get("/properties")
async def properties(
        request: Request,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    query = request.query_params
    context = await layout_context(request, backend, session)
    listing = AdminPropertyList()
    try:
        listing = await crud.list_admin_properties(
            backend,
            session.token,
            search=query.get("search", ""),
            property_type=query.get("type", ""),
            available=query.get("available", ""),
            page=page_number(query.get("page")),
        )
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Admin property list unavailable: {e.message}")
        context["listing_error"] = e.message

    context.update({
        "listing": listing,
        "filters": {k: query.get(k, "") for k in ("search", "type", "available")},
        "pagination": build_pagination_view(listing.pagination, request.url.path, query),
        "show_add_form": query.get("add-property") == "true",
        "form_errors": [],
        **PROPERTY_FORM_CHOICES,
    })
    return render(request, "admin/properties.html", context)


@router.post("/properties")
async def create_property(
        request: Request,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    result = await save_new_property(request, backend, session, form)
    if result.errors:
        return redirect(f"{urls.Admin.PROPERTIES}?add-property=true", result.errors[0], error=True)
    return redirect(urls.Admin.PROPERTIES, "Property created successfully!")


async def _admin_property(request: Request, backend: BackendClient, session: AuthSession, property_id: str):
    try:
        return await crud.get_property(backend, session.token, property_id, as_admin=True)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        if e.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
        raise


@router.get("/properties/{property_id}")
async def property_detail(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    prop = await _admin_property(request, backend, session, property_id)
    context.update({
        "property": prop,
        "media": MediaStaging.from_property(prop),
        "share_url": f"{settings.BASE_URL}{urls.Public.PROPERTY.format(property_id=prop.id)}",
        "show_edit_form": request.query_params.get("edit") == "true",
        **PROPERTY_FORM_CHOICES,
    })
    return render(request, "admin/property.html", context)


@router.post("/properties/{property_id}/edit")
async def edit_property(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    prop = await _admin_property(request, backend, session, property_id)
    form = await request.form()
    result = await save_property_edit(request, backend, session, prop, form, as_admin=True)

    detail_url = urls.Admin.PROPERTY.format(property_id=property_id)
    if result.errors:
        return redirect(f"{detail_url}?edit=true", result.errors[0], error=True)
    if not result.saved:
        return redirect(detail_url)
    return redirect(detail_url, "Property updated successfully!")


@router.post("/properties/{property_id}/delete")
async def delete_property(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    try:
        await crud.delete_property(backend, session.token, property_id, as_admin=True)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(urls.Admin.PROPERTIES, e.message, error=True)

    await backend.revalidate(RevalidateTag.PROPERTIES, RevalidateTag.PROPERTY)
    logger.info(f"Property {property_id} deleted by admin {session.claims.sub}")
    return redirect(urls.Admin.PROPERTIES, "Property deleted successfully")


@router.post("/properties/{property_id}/availability")
async def toggle_availability(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    available = form.get("available") == "true"
    detail_url = urls.Admin.PROPERTY.format(property_id=property_id)
    try:
        await crud.set_property_availability(backend, session.token, property_id, available)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(detail_url, e.message or "Something went wrong. Please try again.", error=True)

    await backend.revalidate(RevalidateTag.PROPERTY, RevalidateTag.PROPERTIES)
    return redirect(detail_url, f"Property marked as {'available' if available else 'booked'}!")


@router.post("/properties/{property_id}/verification")
async def toggle_verification(
        request: Request,
        property_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    is_verified = form.get("is_verified") == "true"
    detail_url = urls.Admin.PROPERTY.format(property_id=property_id)
    try:
        await crud.set_property_verification(backend, session.token, property_id, is_verified)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(detail_url, e.message, error=True)

    await backend.revalidate(RevalidateTag.PROPERTY, RevalidateTag.PROPERTIES)
    return redirect(detail_url, f"Property {'verified' if is_verified else 'unverified'} successfully")


# --- Bookings ---

@router.get("/bookings")
async def bookings(
        request: Request,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    query = request.query_params
    context = await layout_context(request, backend, session)
    booking_list, stats = BookingList(), {}
    try:
        booking_list = await crud.list_bookings(
            backend,
            session.token,
            page=page_number(query.get("page")),
            limit=BOOKINGS_PAGE_SIZE,
            status=query.get("status", ""),
            search=query.get("search", ""),
        )
        stats = await crud.get_booking_stats(backend, session.token)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Admin bookings unavailable: {e.message}")
        context["listing_error"] = e.message

    context.update({
        "bookings": booking_list.bookings,
        "stats": stats,
        "statuses": list(BookingStatus),
        "filters": {k: query.get(k, "") for k in ("search", "status")},
        "pagination": build_pagination_view(booking_list.pagination, request.url.path, query),
        "show_add_form": query.get("add-booking") == "true",
        "search_socket": f"{urls.Admin.BOOKINGS}/property-search",
        "draft": BookingDraft(),
        "form_errors": [],
    })
    return render(request, "admin/bookings.html", context)


@router.post("/bookings")
async def create_booking(
        request: Request,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    """Manual booking entered by an admin; no payment is taken."""
    form = await request.form()
    property_id = str(form.get("property_id", "")).strip()
    draft = BookingDraft.from_form(form)

    errors = validate_draft(draft)
    if not property_id:
        errors.insert(0, "Select a property")
    if errors:
        return redirect(f"{urls.Admin.BOOKINGS}?add-booking=true", errors[0], error=True)

    payload = {
        "propertyId": property_id,
        "customerName": draft.name,
        "customerEmail": draft.email,
        "customerPhone": draft.phone,
        "checkInDate": draft.check_in,
        "checkOutDate": draft.check_out,
    }
    try:
        await crud.create_booking(backend, session.token, payload)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(f"{urls.Admin.BOOKINGS}?add-booking=true", e.messages[0], error=True)

    await backend.revalidate(RevalidateTag.BOOKINGS)
    return redirect(urls.Admin.BOOKINGS, "Booking created successfully")


async def _change_booking(request: Request, backend: BackendClient, session: AuthSession, booking_id: str, confirm: bool):
    change = crud.confirm_booking if confirm else crud.cancel_booking
    try:
        await change(backend, session.token, booking_id)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return redirect(urls.Admin.BOOKINGS, e.message, error=True)

    await backend.revalidate(RevalidateTag.BOOKINGS)
    return redirect(urls.Admin.BOOKINGS, f"Booking {'confirmed' if confirm else 'cancelled'} successfully")


@router.post("/bookings/{booking_id}/confirm")
async def confirm_booking(
        request: Request,
        booking_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    return await _change_booking(request, backend, session, booking_id, confirm=True)


@router.post("/bookings/{booking_id}/cancel")
async def cancel_booking(
        request: Request,
        booking_id: str,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    return await _change_booking(request, backend, session, booking_id, confirm=False)


@router.websocket("/bookings/property-search")
async def property_search(websocket: WebSocket):
    """
    Typeahead for the manual booking form. Each message is the current text of
    the search box; results are pushed back once typing pauses.
    """
    claims = decode_session(websocket.cookies.get(ADMIN_COOKIE_NAME))
    if claims is None or not claims.isAdmin:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    backend: BackendClient = websocket.app.state.backend
    await websocket.accept()

    async def fetch(query: str):
        try:
            return await crud.search_properties(backend, query)
        except BackendError as e:
            logger.warning(f"Property search for {query!r} failed: {e.message}")
            return []

    async def push(query: str, results):
        await websocket.send_text(json.dumps({
            "query": query,
            "results": [{"id": p.id, "title": p.title, "location": p.location} for p in results],
        }))

    search = DebouncedSearch(fetch, delay=settings.SEARCH_DEBOUNCE_SECONDS, on_results=push)
    try:
        while True:
            query = await websocket.receive_text()
            if search.submit(query) is None:
                await push(search.last_query, [])
    except WebSocketDisconnect:
        logger.debug("Property search socket closed")
    finally:
        search.cancel()


@router.get("/notifications")
async def notifications(
        request: Request,
        session: AuthSession = Depends(require_admin_session),
        backend: BackendClient = Depends(get_backend),
):
    context = await layout_context(request, backend, session)
    context.update({"notifications": [], "filters": {k: request.query_params.get(k, "") for k in ("type", "status")}})
    return render(request, "admin/notifications.html", context)
