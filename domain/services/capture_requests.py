from __future__ import annotations

from domain.errors import ValidationError
from domain.models import (
    MAX_SEQUENCE_LENGTH,
    MIN_SEQUENCE_LENGTH,
    CaptureFormat,
    CaptureRequest,
)
from domain.services.keys import normalize_url

_URL_REQUIRED = "`url` is required."
_FORMAT_INVALID = '`format` must be "png" or "webp".'
_LENGTH_REQUIRED = "`length` is required for webp."
_LENGTH_RANGE = (
    f"`length` must be integer {MIN_SEQUENCE_LENGTH}–{MAX_SEQUENCE_LENGTH}."
)


def build_capture_request(
    url: str | None,
    format: str | None = None,
    length: str | None = None,
    nocache: str | None = None,
) -> CaptureRequest:
    """
    Validate raw query values into a ``CaptureRequest``.

    ``nocache`` is a presence flag: any value, including the empty string,
    bypasses the cache lookup. ``length`` is ignored for still captures.
    """
    if url is None or not url.strip():
        raise ValidationError(_URL_REQUIRED)

    fmt = CaptureFormat.STILL
    if format is not None:
        try:
            fmt = CaptureFormat.parse(format)
        except ValueError:
            raise ValidationError(_FORMAT_INVALID) from None

    sequence_length: int | None = None
    if fmt.requires_length:
        if length is None:
            raise ValidationError(_LENGTH_REQUIRED)
        sequence_length = _parse_length(length)

    return CaptureRequest(
        url=normalize_url(url),
        format=fmt,
        length=sequence_length,
        bypass_cache=nocache is not None,
    )


def _parse_length(raw: str) -> int:
    # Integral decimal forms such as "3.0" are accepted.
    try:
        value = float(raw.strip())
    except ValueError:
        raise ValidationError(_LENGTH_RANGE) from None
    if not value.is_integer() or not MIN_SEQUENCE_LENGTH <= value <= MAX_SEQUENCE_LENGTH:
        raise ValidationError(_LENGTH_RANGE)
    return int(value)
