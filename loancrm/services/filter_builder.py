import calendar
import logging
import math
import re
from datetime import datetime
from typing import Any, Mapping, Optional, Tuple

from loancrm.core.errors import ValidationError
from loancrm.database.predicates import Eq, Or, Predicate, Range, Regex, all_of

logger = logging.getLogger(__name__)

CREATED_AT = "createdAt"
LOAN_AMOUNT = "loanamount"
SEARCH_FIELDS = ("firstname", "lastname", "email", "phone")


def _param(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_int(name: str, raw: str) -> int:
    # Plain decimal only; int() would also take "1_0" or non-ASCII digits
    digits = raw[1:] if raw.startswith(("+", "-")) else raw
    if not (digits.isascii() and digits.isdigit()):
        raise ValidationError(f"Invalid {name}: {raw!r}", error=f"{name} must be an integer")
    return int(raw)


# Parses an amount bound; anything that is not a finite number is ignored
def _parse_amount(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        amount = float(raw)
    except ValueError:
        logger.debug("Ignoring unparseable amount bound: %r", raw)
        return None
    if not math.isfinite(amount):
        logger.debug("Ignoring non-finite amount bound: %r", raw)
        return None
    return amount


def month_window(year: int, month: Optional[int] = None) -> Tuple[datetime, datetime]:
    """Inclusive ``(start, end)`` window for a month, or the whole year when
    ``month`` is None. ``month`` is 1-indexed; values outside 1-12 are rejected.
    """
    if month is not None and not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}", error="month must be between 1 and 12")
    if not 1 <= year <= 9999:
        raise ValidationError(f"Invalid year: {year}", error="year must be between 1 and 9999")

    first_month = month or 1
    last_month = month or 12
    start = datetime(year, first_month, 1)
    last_day = calendar.monthrange(year, last_month)[1]
    end = datetime(year, last_month, last_day, 23, 59, 59, 999000)
    return start, end


def build_customer_filter(params: Mapping[str, Any], now: Optional[datetime] = None) -> Predicate:
    """Translate filter query parameters into a single predicate.

    Supported keys: ``month``, ``year``, ``loantype``, ``minAmount``,
    ``maxAmount``, ``status``. Every supplied constraint is ANDed; missing or
    blank values add nothing, so an empty mapping yields ``MatchAll``.
    """
    clauses = []

    month_raw = _param(params, "month")
    year_raw = _param(params, "year")
    if month_raw is not None or year_raw is not None:
        year = _parse_int("year", year_raw) if year_raw is not None else (now or datetime.utcnow()).year
        month = _parse_int("month", month_raw) if month_raw is not None else None
        start, end = month_window(year, month)
        clauses.append(Range(CREATED_AT, gte=start, lte=end))

    loantype = _param(params, "loantype")
    if loantype is not None:
        clauses.append(Eq("loantype", loantype))

    min_amount = _parse_amount(_param(params, "minAmount"))
    max_amount = _parse_amount(_param(params, "maxAmount"))
    if min_amount is not None or max_amount is not None:
        clauses.append(Range(LOAN_AMOUNT, gte=min_amount, lte=max_amount))

    status = _param(params, "status")
    if status is not None:
        clauses.append(Eq("status", status))

    predicate = all_of(clauses)
    logger.debug("Customer filter built: %s", predicate.to_mongo())
    return predicate


def build_search_filter(query: Optional[str]) -> Predicate:
    """Case-insensitive substring match over name, email and phone."""
    term = (query or "").strip()
    if not term:
        raise ValidationError("Search query is required")
    pattern = re.escape(term)
    return Or.of(*[Regex(field, pattern) for field in SEARCH_FIELDS])


def build_profile_filter(email: Optional[str], phone: Optional[str]) -> Predicate:
    email = (email or "").strip()
    phone = (phone or "").strip()
    if not email or not phone:
        raise ValidationError("Email and phone are required")
    return Eq("email", email) & Eq("phone", phone)


def build_duplicate_filter(email: Optional[str] = None, phone: Optional[str] = None) -> Predicate:
    """Records sharing the email OR the phone."""
    clauses = []
    if email:
        clauses.append(Eq("email", email))
    if phone:
        clauses.append(Eq("phone", phone))
    if not clauses:
        raise ValueError("email or phone is required for a duplicate check")
    return Or.of(*clauses)
