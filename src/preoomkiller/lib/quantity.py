"""
quantity.py
- Parses Kubernetes memory quantities ("512Mi", "1Gi", "1e9") into byte counts.
- Thresholds and usage readings both go through here so they are compared in bytes.
"""

import re
from decimal import Decimal, InvalidOperation

from kubernetes.utils import parse_quantity

from preoomkiller.core.errors import ThresholdInvalid

BINARY_SUFFIXES = [("Ei", 2**60), ("Pi", 2**50), ("Ti", 2**40), ("Gi", 2**30), ("Mi", 2**20), ("Ki", 2**10)]

# signed number, then an exponent or one suffix (never both), as resource.ParseQuantity accepts
QUANTITY_PATTERN = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+|[KMGTPE]i|[numkMGTPE])?")


def to_bytes(raw):
    """
    Convert a quantity string to a Decimal byte count.

    Raises:
        ValueError: If the string is not a valid, finite, non-negative quantity.
    """
    text = str(raw)
    if not QUANTITY_PATTERN.fullmatch(text):
        raise ValueError(f"not a Kubernetes quantity: {raw!r}")
    try:
        value = parse_quantity(text)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"not a quantity: {raw!r}") from e
    if not value.is_finite():
        raise ValueError(f"not a finite quantity: {raw!r}")
    if value < 0:
        raise ValueError(f"negative quantity: {raw!r}")
    return value


def parse_threshold(raw):
    """
    Parse a pod's memory-threshold annotation.

    Args:
        raw (str | None): Annotation value, None when the annotation is absent.

    Returns:
        Decimal: Threshold in bytes.

    Raises:
        ThresholdInvalid: On missing, empty or malformed values.
    """
    if raw is None:
        raise ThresholdInvalid(raw, "annotation is missing")
    text = str(raw).strip()
    if not text:
        raise ThresholdInvalid(raw, "annotation is empty")
    try:
        return to_bytes(text)
    except ValueError as e:
        raise ThresholdInvalid(raw, str(e)) from None


def format_bytes(value):
    """Render a byte count with the largest exact binary suffix, e.g. 536870912 -> "512Mi"."""
    value = Decimal(value)
    if value == value.to_integral_value():
        for suffix, factor in BINARY_SUFFIXES:
            if value >= factor and value % factor == 0:
                return f"{int(value // factor)}{suffix}"
        return str(int(value))
    return str(value.normalize())
