"""Exception and warning types raised by the mosaic pipeline."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for all dice mosaic failures."""


class InputError(MosaicError, ValueError):
    """A caller supplied an image, setting or edit outside the contract."""


class DecodeError(MosaicError):
    """The supplied bytes or file could not be decoded as an image."""


class DegenerateRegionWarning(UserWarning):
    """A sampling region held no usable pixels and was filled by fallback."""
