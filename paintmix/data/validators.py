# paintmix/data/validators.py
from __future__ import annotations

import re
from dataclasses import dataclass

from paintmix.formula.tokenizer import is_quantity_token

RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


@dataclass
class ValidationResult:
    ok: bool
    message: str = ""


def validate_pigment_name(name: str) -> ValidationResult:
    """A pigment name must survive a round trip through the formula tokenizer."""
    s = name or ""
    if not s.strip():
        return ValidationResult(False, "Pigment name cannot be empty.")
    if any(ch.isspace() for ch in s):
        return ValidationResult(False, "Pigment name cannot contain whitespace.")
    if is_quantity_token(s):
        return ValidationResult(False, "Pigment name cannot look like a quantity (e.g. '5g').")
    return ValidationResult(True, "")


def validate_record_id(id_str: str) -> ValidationResult:
    s = (str(id_str) if id_str is not None else "").strip()
    if not s:
        return ValidationResult(False, "ID cannot be empty.")
    if "/" in s or "\\" in s:
        return ValidationResult(False, "ID cannot contain path separators.")
    if not RECORD_ID_PATTERN.match(s):
        return ValidationResult(False, "ID may contain letters, numbers, hyphen, underscore, and dot only.")
    return ValidationResult(True, "")
