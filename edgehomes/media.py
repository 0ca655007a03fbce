"""
Property media staging for the create and edit forms.

`MediaStaging` starts from a property's saved images/video, applies what the
visitor did in the form (uploads, deletions, drag reordering) and turns the
result into the multipart body the backend expects. Nothing is sent until
`validate` comes back clean.
"""
import json
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from .constants import MAX_PROPERTY_IMAGES
from .enums import PropertyCurrency, PropertyDuration, PropertyTypeValue
from .exceptions import MediaStagingError
from .schemas import Property

CURRENCY_CODES = {
    "NGN": PropertyCurrency.NGN,
    "USD": PropertyCurrency.USD,
    "GBP": PropertyCurrency.GBP,
    "EUR": PropertyCurrency.EUR,
}

# (field name, (filename, content, content type)) as httpx expects for multipart
MultipartFile = Tuple[str, Tuple[str, bytes, str]]


@dataclass
class UploadedFile:
    filename: str
    content: bytes
    content_type: str

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")

    def as_multipart(self, name: str) -> MultipartFile:
        return name, (self.filename, self.content, self.content_type)


@dataclass
class EditableImage:
    url: str = ""
    order: int = 0
    public_id: Optional[str] = None
    placeholder_url: Optional[str] = None
    file: Optional[UploadedFile] = None
    is_deleted: bool = False


@dataclass
class EditableVideo:
    url: str = ""
    public_id: Optional[str] = None
    placeholder_url: Optional[str] = None
    file: Optional[UploadedFile] = None
    is_deleted: bool = False


def parse_currency(value: str) -> PropertyCurrency:
    if value in CURRENCY_CODES:
        return CURRENCY_CODES[value]
    try:
        return PropertyCurrency(value)
    except ValueError:
        return PropertyCurrency.NGN


@dataclass
class PropertyFields:
    """The non-media half of the property form."""
    title: str = ""
    location: str = ""
    type: PropertyTypeValue = PropertyTypeValue.SHORT_LET
    beds: int = 0
    baths: int = 0
    available: bool = True
    amount: float = 0
    currency: PropertyCurrency = PropertyCurrency.NGN
    duration: PropertyDuration = PropertyDuration.NIGHT
    features: List[str] = field(default_factory=list)

    @classmethod
    def from_property(cls, prop: Property) -> "PropertyFields":
        return cls(
            title=prop.title,
            location=prop.location,
            type=prop.type,
            beds=prop.beds,
            baths=prop.baths,
            available=prop.available,
            amount=prop.price.amount,
            currency=prop.price.currency,
            duration=prop.price.duration,
            features=list(prop.features),
        )

    @classmethod
    def from_form(cls, form: Mapping[str, str], features: List[str]) -> "PropertyFields":
        try:
            beds = int(form.get("beds") or 0)
            baths = int(form.get("baths") or 0)
            amount = float(form.get("price_amount") or 0)
        except ValueError as e:
            raise MediaStagingError("Beds, baths and price must be numbers") from e
        try:
            duration = PropertyDuration(form.get("price_duration") or PropertyDuration.NIGHT.value)
            prop_type = PropertyTypeValue(form.get("type") or PropertyTypeValue.SHORT_LET.value)
        except ValueError as e:
            raise MediaStagingError(str(e)) from e
        return cls(
            title=(form.get("title") or "").strip(),
            location=(form.get("location") or "").strip(),
            type=prop_type,
            beds=beds,
            baths=baths,
            available=form.get("available") in ("true", "on", "1"),
            amount=amount,
            currency=parse_currency(form.get("price_currency") or ""),
            duration=duration,
            features=[f.strip() for f in features if f.strip()],
        )

    def changed_from(self, prop: Property) -> dict:
        """Scalar fields that differ from the saved property, in backend form names."""
        changed = {}
        if self.title != prop.title:
            changed["title"] = self.title
        if self.location != prop.location:
            changed["location"] = self.location
        if self.type != prop.type:
            changed["type"] = self.type.value
        if self.beds != prop.beds:
            changed["beds"] = str(self.beds)
        if self.baths != prop.baths:
            changed["baths"] = str(self.baths)
        if self.available != prop.available:
            changed["available"] = str(self.available).lower()
        return changed

    def price_changed_from(self, prop: Property) -> bool:
        return (
            self.amount != prop.price.amount
            or self.currency != prop.price.currency
            or self.duration != prop.price.duration
            or self.features != [f for f in prop.features if f.strip()]
        )

    def price_and_features(self) -> dict:
        amount = int(self.amount) if float(self.amount).is_integer() else self.amount
        return {
            "price[amount]": str(amount),
            "price[currency]": self.currency.value,
            "price[duration]": self.duration.value,
            "features": json.dumps(self.features),
        }


class MediaStaging:
    def __init__(self, images: Optional[List[EditableImage]] = None, video: Optional[EditableVideo] = None):
        self.images = images or []
        self.video = video
        self._original_video = video.public_id if video else None

    @classmethod
    def from_property(cls, prop: Property) -> "MediaStaging":
        images = [
            EditableImage(
                url=img.url,
                order=img.order,
                public_id=img.publicId,
                placeholder_url=img.placeholderUrl,
            )
            for img in sorted(prop.images, key=lambda img: img.order)
        ]
        video = None
        if prop.video:
            video = EditableVideo(
                url=prop.video.url,
                public_id=prop.video.publicId,
                placeholder_url=prop.video.placeholderUrl,
            )
        return cls(images=images, video=video)

    @property
    def visible_images(self) -> List[EditableImage]:
        return sorted((img for img in self.images if not img.is_deleted), key=lambda img: img.order)

    def add_files(self, files: List[UploadedFile]) -> None:
        """
        Stages new uploads. Images are appended after the visible ones; a video
        replaces the current one. More than one video in a batch is an error.
        """
        new_videos = [f for f in files if f.is_video]
        staged_video = self.video is not None and self.video.file is not None
        if len(new_videos) > 1 or (new_videos and staged_video):
            raise MediaStagingError("Only one video can be uploaded")

        next_order = len(self.visible_images)
        new_images = [
            EditableImage(url=f.filename, order=next_order + i, file=f)
            for i, f in enumerate(f for f in files if f.is_image)
        ]
        if new_images:
            self.images.extend(new_images)

        if new_videos:
            if self.video and self.video.public_id:
                self.video.is_deleted = True
            self.video = EditableVideo(url=new_videos[0].filename, file=new_videos[0])

    def delete_image(self, index: int) -> None:
        """Removes the image at `index` of the visible list."""
        visible = self.visible_images
        if not 0 <= index < len(visible):
            raise MediaStagingError(f"No image at position {index}")
        target = visible[index]
        if target.public_id:
            target.is_deleted = True
        else:
            self.images = [img for img in self.images if img is not target]
        self._renumber()

    def delete_image_by_public_id(self, public_id: str) -> None:
        for index, img in enumerate(self.visible_images):
            if img.public_id == public_id:
                self.delete_image(index)
                return
        raise MediaStagingError(f"Unknown image {public_id}")

    def delete_video(self) -> None:
        if self.video is None:
            return
        if self.video.public_id:
            self.video.is_deleted = True
        else:
            self.video = None

    def reorder(self, source: int, destination: int) -> None:
        visible = self.visible_images
        if not (0 <= source < len(visible) and 0 <= destination < len(visible)):
            raise MediaStagingError("Image position out of range")
        moved = visible.pop(source)
        visible.insert(destination, moved)
        for order, img in enumerate(visible):
            img.order = order

    def _renumber(self) -> None:
        for order, img in enumerate(self.visible_images):
            img.order = order

    @property
    def new_images(self) -> List[EditableImage]:
        return [img for img in self.visible_images if img.file is not None]

    @property
    def replaced_public_ids(self) -> List[str]:
        return [img.public_id for img in self.images if img.public_id and img.is_deleted]

    def has_changes(self) -> bool:
        if any(img.file is not None or img.is_deleted for img in self.images):
            return True
        if self.video is not None and (self.video.file is not None or self.video.is_deleted):
            return True
        return self.video is None and self._original_video is not None

    def validate(self) -> List[str]:
        count = len(self.visible_images)
        if count > MAX_PROPERTY_IMAGES:
            return [f"Maximum of {MAX_PROPERTY_IMAGES} images allowed"]
        if count == 0:
            return ["Property must have at least one image"]
        return []

    def multipart_files(self) -> List[MultipartFile]:
        files = [img.file.as_multipart("images") for img in self.new_images]
        if self.video is not None and self.video.file is not None:
            files.append(self.video.file.as_multipart("video"))
        return files

    def build_update_form(self, fields: PropertyFields, prop: Property) -> Tuple[dict, List[MultipartFile]]:
        """
        Multipart body for PATCHing `prop`: changed scalar fields, the price and
        feature list, and only the newly uploaded files.
        """
        errors = self.validate()
        if errors:
            raise MediaStagingError(errors[0])

        data = fields.changed_from(prop)
        data.update(fields.price_and_features())
        if self.replaced_public_ids:
            data["replaceImages"] = json.dumps(self.replaced_public_ids)
        return data, self.multipart_files()


def build_create_form(fields: PropertyFields, files: List[UploadedFile]) -> Tuple[dict, List[MultipartFile]]:
    images = [f for f in files if f.is_image]
    videos = [f for f in files if f.is_video]

    if not images or not videos:
        raise MediaStagingError("At least 1 image and 1 video are required.")
    if len(images) > MAX_PROPERTY_IMAGES:
        raise MediaStagingError(f"Maximum of {MAX_PROPERTY_IMAGES} images allowed.")
    if len(videos) > 1:
        raise MediaStagingError("Only one video is allowed.")

    data = {
        "title": fields.title,
        "location": fields.location,
        "type": fields.type.value,
        "beds": str(fields.beds),
        "baths": str(fields.baths),
        "available": str(fields.available).lower(),
    }
    data.update(fields.price_and_features())
    multipart = [img.as_multipart("images") for img in images]
    multipart.append(videos[0].as_multipart("video"))
    return data, multipart


def stage_edits(
        prop: Property,
        uploads: List[UploadedFile],
        deleted_image_ids: List[str] = (),
        image_order: List[str] = (),
        delete_video: bool = False,
) -> MediaStaging:
    """
    Replays an edit form against the saved media: deletions first, then the
    submitted order of the remaining saved images, then the new uploads.
    """
    staging = MediaStaging.from_property(prop)
    for public_id in deleted_image_ids:
        staging.delete_image_by_public_id(public_id)

    for target, public_id in enumerate(pid for pid in image_order if pid not in deleted_image_ids):
        current = next(
            (i for i, img in enumerate(staging.visible_images) if img.public_id == public_id),
            None,
        )
        if current is None:
            raise MediaStagingError(f"Unknown image {public_id}")
        if current != target:
            staging.reorder(current, target)

    if delete_video:
        staging.delete_video()
    staging.add_files([f for f in uploads if f.content])
    return staging
