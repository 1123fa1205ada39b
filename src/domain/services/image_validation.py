"""Upload validation for image assets."""

from collections.abc import Collection

from core.exceptions import FileTooLargeError, InvalidMediaTypeError

DEFAULT_ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def validate_image(
    media_type: str | None,
    size_bytes: int,
    *,
    allowed_types: Collection[str] = DEFAULT_ALLOWED_IMAGE_TYPES,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> None:
    """
    Check a candidate upload against the media-type allow-list and size limit.

    The media type is checked first, so a disallowed type is reported as such
    regardless of size.

    Raises:
        InvalidMediaTypeError: media type is not in ``allowed_types``
        FileTooLargeError: ``size_bytes`` exceeds ``max_bytes``
    """
    normalized = (media_type or "").split(";", 1)[0].strip().lower()
    if normalized not in {t.lower() for t in allowed_types}:
        raise InvalidMediaTypeError(media_type or "")

    if size_bytes > max_bytes:
        raise FileTooLargeError(size_bytes, max_bytes)
