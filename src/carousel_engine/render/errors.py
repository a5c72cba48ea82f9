from __future__ import annotations

__all__ = [
    "CarouselError",
    "DecodeError",
    "EncodeError",
    "InvalidInputError",
    "MissingOriginalError",
    "UnknownPresetError",
]


class CarouselError(RuntimeError):
    """Base class for failures raised by the rendering and export pipeline."""


class InvalidInputError(CarouselError, ValueError):
    """Raised when dimensions, surfaces or parameters violate a precondition."""


class UnknownPresetError(InvalidInputError, KeyError):
    """Raised when an aspect, resolution or compression id is not in its catalog."""

    def __str__(self) -> str:
        # KeyError.__str__ quotes the message; keep the plain text.
        return str(self.args[0]) if self.args else ""


class DecodeError(CarouselError):
    """Raised when source bytes cannot be decoded as an image."""


class MissingOriginalError(CarouselError):
    """Raised when an export is requested for an artifact without its original source."""


class EncodeError(CarouselError):
    """Raised when a rendered surface cannot be written as JPEG."""
