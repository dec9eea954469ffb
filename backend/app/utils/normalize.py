import re
from typing import List, Optional


def digits_only(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def phone_key(phone: Optional[str]) -> Optional[str]:
    """
    Formatting-independent match key: the last 10 digits.

    "(202) 555-0147", "+1 202-555-0147" and "12025550147" all -> "2025550147"
    """
    digits = digits_only(phone)
    return digits[-10:] if digits else None


def phone_variants(phone: Optional[str]) -> List[str]:
    """
    Stored forms a caller number may have been written in, for rows that
    predate the phone key columns.

    "+1 (202) 555-0147" -> ["+1 (202) 555-0147", "12025550147", "+12025550147", "2025550147"]
    Order is stable and duplicates are dropped.
    """
    if not phone:
        return []
    raw = phone.strip()
    digits = digits_only(raw)
    if not digits:
        return [raw] if raw else []

    last10 = digits[-10:]
    candidates = [raw, digits, "+" + digits, last10, "+1" + last10, "1" + last10]

    out: List[str] = []
    for c in candidates:
        if c and c not in out:
            out.append(c)
    return out


def normalize_outcome(raw: Optional[str]) -> str:
    s = (raw or "").strip().lower()
    return re.sub(r"[\s\-]+", "_", s)
