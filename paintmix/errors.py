# paintmix/errors.py
from __future__ import annotations


class PaintmixError(Exception):
    """Base class for errors raised by the engine."""


class ConversionError(PaintmixError, ValueError):
    """A color value is malformed or outside its channel range."""


class TransactionError(PaintmixError):
    """A persistence failure aborted a multi-row write; nothing was applied."""
