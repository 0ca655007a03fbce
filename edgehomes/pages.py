"""
Helpers shared by the admin and user dashboard pages.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from fastapi import Request
from starlette.datastructures import FormData, UploadFile

from . import crud
from .auth import SIGN_IN_URLS, AuthSession, current_destination
from .backend import BackendClient
from .enums import RevalidateTag, Role
from .exceptions import BackendError, MediaStagingError, SessionRequiredError
from .media import PropertyFields, UploadedFile, build_create_form, stage_edits
from .navigation import ADMIN_NAV, USER_NAV, NavItem
from .schemas import Property

logger = logging.getLogger("edgehomes.web")


def raise_if_unauthorized(error: BackendError, request: Request, session: AuthSession) -> None:
    """A 401/403 from the backend means the session died under us."""
    if error.is_unauthorized:
        raise SessionRequiredError(SIGN_IN_URLS[session.role], current_destination(request))


def page_number(value: Optional[str]) -> int:
    try:
        return max(int(value or 1), 1)
    except ValueError:
        return 1


def nav_for(role: Role) -> List[NavItem]:
    return ADMIN_NAV if role == Role.ADMIN else USER_NAV


async def layout_context(request: Request, backend: BackendClient, session: AuthSession) -> dict:
    """Header and sidebar data; the profile falls back to the token claims if the backend is down."""
    profile = None
    try:
        profile = await crud.get_profile(backend, session.token)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        logger.warning(f"Profile unavailable for {session.claims.sub}: {e.message}")

    return {
        "session": session.claims,
        "profile": profile,
        "display_name": profile.name if profile and profile.name else session.claims.name,
        "role": session.role.value,
        "nav_items": nav_for(session.role),
    }


async def read_uploads(items) -> List[UploadedFile]:
    """Reads the multipart file fields into memory; empty file inputs are skipped."""
    uploads = []
    for item in items:
        if not isinstance(item, UploadFile) or not item.filename:
            continue
        content = await item.read()
        if content:
            uploads.append(UploadedFile(
                filename=item.filename,
                content=content,
                content_type=item.content_type or "application/octet-stream",
            ))
    return uploads


@dataclass
class SaveResult:
    errors: List[str] = field(default_factory=list)
    saved: bool = False


async def save_property_edit(
        request: Request,
        backend: BackendClient,
        session: AuthSession,
        prop: Property,
        form: FormData,
        as_admin: bool,
) -> SaveResult:
    uploads = await read_uploads(form.getlist("media"))
    try:
        fields = PropertyFields.from_form(form, form.getlist("features"))
        staging = stage_edits(
            prop,
            uploads,
            deleted_image_ids=form.getlist("delete_images"),
            image_order=form.getlist("image_order"),
            delete_video=form.get("delete_video") == "true",
        )
        if not (fields.changed_from(prop) or fields.price_changed_from(prop) or staging.has_changes()):
            return SaveResult()
        data, files = staging.build_update_form(fields, prop)
    except MediaStagingError as e:
        return SaveResult(errors=[str(e)])

    try:
        await crud.update_property(backend, session.token, prop.id, data, files, as_admin=as_admin)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return SaveResult(errors=e.messages)

    await backend.revalidate(RevalidateTag.PROPERTY, RevalidateTag.PROPERTIES)
    logger.info(f"Property {prop.id} updated by {session.claims.sub}")
    return SaveResult(saved=True)


async def save_new_property(
        request: Request,
        backend: BackendClient,
        session: AuthSession,
        form: FormData,
) -> SaveResult:
    uploads = await read_uploads(form.getlist("media"))
    try:
        fields = PropertyFields.from_form(form, form.getlist("features"))
        data, files = build_create_form(fields, uploads)
    except MediaStagingError as e:
        return SaveResult(errors=[str(e)])

    try:
        await crud.create_property(backend, session.token, data, files)
    except BackendError as e:
        raise_if_unauthorized(e, request, session)
        return SaveResult(errors=e.messages)

    await backend.revalidate(RevalidateTag.PROPERTIES)
    logger.info(f"Property '{fields.title}' created by {session.claims.sub}")
    return SaveResult(saved=True)


def parse_price_range(value: str) -> Tuple[Optional[str], Optional[str]]:
    """`"100000-500000"` -> (min, max); `"1000000+"` -> (min, None)."""
    value = (value or "").strip()
    if not value:
        return None, None
    if "-" in value:
        low, high = value.split("-", 1)
        return low or None, high or None
    if value.endswith("+"):
        return value[:-1] or None, None
    return None, None
