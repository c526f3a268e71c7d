"""
Admission numbers and student login ids.

A school issues admission numbers as <SCHOOLCODE>/<1-4 digits> (e.g. AHS/12).
The student signs in with the same number written without the slash and
zero-padded to 4 digits (ahs0012), which maps onto a generated login email.
Leading zeros are not significant: AHS/0012 is stored as AHS/12.
"""

import re
from typing import Optional


SCHOOL_CODE_REGEX = re.compile(r"^[A-Z]{2,6}$")
LOGIN_ID_REGEX = re.compile(r"^[A-Z]{2,6}[0-9]{4}$")
STUDENT_USERNAME_REGEX = re.compile(r"^[A-Za-z]{2,6}\d{4}$")
_ADMISSION_PARTS = re.compile(r"^([A-Z]+)/?(\d+)$")
_CANONICAL_ADMISSION = re.compile(r"^([A-Z]{2,6})/(\d{1,4})$")


def normalize_school_code(code: str) -> str:
    """Upper-case and validate a school code (2-6 letters)."""
    normalized = (code or "").strip().upper()
    if not SCHOOL_CODE_REGEX.match(normalized):
        raise ValueError("School code must be 2-6 letters")
    return normalized


def admission_pattern(school_code: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(school_code)}/\d{{1,4}}$")


def clean_admission_number(value: Optional[str]) -> str:
    """
    Upper-case an admission number and drop leading zeros from its digits,
    so "ahs/0012" and "AHS/12" are stored as the same "AHS/12".
    """
    cleaned = (value or "").strip().upper()
    parts = _CANONICAL_ADMISSION.match(cleaned)
    if parts:
        return f"{parts.group(1)}/{int(parts.group(2))}"
    return cleaned


def is_valid_admission_number(value: Optional[str], school_code: str) -> bool:
    """True if value is SCHOOLCODE/0 - SCHOOLCODE/9999 for this school."""
    return bool(admission_pattern(school_code).match(clean_admission_number(value)))


def admission_format_hint(school_code: str) -> str:
    return f"Admission number must be in format {school_code}/0 – {school_code}/9999"


def normalize_admission_number(value: str) -> str:
    """
    Convert an admission number into its login id form.

    "ahs/12" -> "AHS0012", "AHS/2000" -> "AHS2000"

    Raises:
        ValueError if the result is not 2-6 letters followed by 4 digits
    """
    compact = (value or "").replace("/", "").strip().upper()
    parts = _ADMISSION_PARTS.match(compact)
    if parts and len(parts.group(2)) <= 4:
        compact = parts.group(1) + parts.group(2).zfill(4)

    if not LOGIN_ID_REGEX.match(compact):
        raise ValueError("Invalid admission number format")
    return compact


def student_login_email(admission_number: str, domain: str) -> str:
    """Login email generated for a student account."""
    return f"{normalize_admission_number(admission_number).lower()}@{domain}"


def is_valid_student_username(value: Optional[str]) -> bool:
    """Student portal login ids look like ahs2000."""
    return bool(STUDENT_USERNAME_REGEX.match((value or "").strip()))
