"""
Custom exception hierarchy for imagetools.

All imagetools exceptions inherit from ImageToolsError so callers can catch
the entire family with a single except clause.

User-facing failures are OperationError instances.  Each subclass carries a
fixed message key; the host renders the key and its positional parameters
through a message catalog (see :mod:`imagetools.i18n`).
"""

from __future__ import annotations

from typing import Any, Sequence

ERROR_NAMESPACE = "image-tools.errors"


class ImageToolsError(Exception):
    """Base exception for all imagetools errors."""


class DecodeError(ImageToolsError):
    """Raised when encoded bytes cannot be turned into frames."""


class EncodeError(ImageToolsError):
    """Raised when frames cannot be written to the target format."""


class FetchError(ImageToolsError):
    """Raised by fetch collaborators on network-class failures."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class OperationError(ImageToolsError):
    """Typed user-facing error: a message key plus substitution values."""

    key: str = "operation-error"

    def __init__(self, *params: Any, key: str | None = None) -> None:
        if key is not None:
            self.key = key
        self.params: list[Any] = list(params)
        super().__init__(self.i18n_path)

    @property
    def i18n_path(self) -> str:
        return f"{ERROR_NAMESPACE}.{self.key}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r}, params={self.params!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OperationError):
            return NotImplemented
        return self.key == other.key and self.params == other.params

    __hash__ = Exception.__hash__


class MissingImage(OperationError):
    key = "missing-image"


class FetchImageFailed(OperationError):
    key = "fetch-image-failed"


class InvalidImage(OperationError):
    key = "invalid-image"


class ImageMustBeAnimated(OperationError):
    key = "image-must-animated"


class InvalidArgFormat(OperationError):
    key = "invalid-arg-format"


class ValueTooSmall(OperationError):
    """Params: (value, minimum)."""
    key = "value-too-small"


class GridTooSmall(ValueTooSmall):
    """Params: (shorter image side, cells per row)."""
    key = "grid-too-small"


class ValueTooBig(OperationError):
    """Params: (value, maximum)."""
    key = "value-too-big"


class InvalidRange(OperationError):
    """Params: (value, minimum, maximum)."""
    key = "invalid-range"


class InvalidColor(OperationError):
    key = "invalid-color"


class AlphaNotSupported(OperationError):
    key = "alpha-not-supported"


class InvalidAngle(OperationError):
    key = "invalid-angle"


class FpsExceedsRangeWarning(OperationError):
    """Params: (average frame duration in ms,)."""
    key = "fps-exceed-range-warn"


class ImageNotEnough(OperationError):
    """Params: (required minimum,)."""
    key = "image-not-enough"


class ImageAnimatedWarning(OperationError):
    key = "image-animated-warn"


class ZipFailed(OperationError):
    key = "zip-failed"


OPERATION_ERRORS: dict[str, type[OperationError]] = {
    cls.key: cls
    for cls in (
        MissingImage, FetchImageFailed, InvalidImage, ImageMustBeAnimated,
        InvalidArgFormat, ValueTooSmall, GridTooSmall, ValueTooBig,
        InvalidRange, InvalidColor, AlphaNotSupported, InvalidAngle,
        FpsExceedsRangeWarning, ImageNotEnough, ImageAnimatedWarning,
        ZipFailed,
    )
}


def error_from_key(key: str, params: Sequence[Any] = ()) -> OperationError:
    """Build the OperationError subclass registered for *key*."""
    cls = OPERATION_ERRORS.get(key)
    if cls is None:
        return OperationError(*params, key=key)
    return cls(*params)
