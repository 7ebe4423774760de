"""Exception types shared across the toolkit."""


class AugmentStatsError(Exception):
    """Base class for toolkit errors."""


class ImageDecodeError(AugmentStatsError, ValueError):
    """A screenshot could not be read or decoded into pixels."""


class OCRError(AugmentStatsError, RuntimeError):
    """The OCR engine failed while reading a region."""
