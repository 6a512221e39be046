"""Order form rules: validation, numbering and the submit sequence."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Tuple

from config import CASE_LABEL, CURRENCY_LABEL, ORDER_NUMBER_PREFIX, REQUIRE_PERMIT_FOR_ALCOHOL
from models import OrderDraft

LOGGER = logging.getLogger("drinkmix")

SWEDISH_MONTHS = [
    "januari", "februari", "mars", "april", "maj", "juni",
    "juli", "augusti", "september", "oktober", "november", "december",
]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    title: str = ""
    description: str = ""


VALID = ValidationOutcome(ok=True)


@dataclass
class SubmissionResult:
    ok: bool
    order_number: str = ""
    order_id: Optional[int] = None
    email_sent: bool = False
    validation: ValidationOutcome = VALID
    error: str = ""


class SubmissionError(RuntimeError):
    pass


def validate_order(draft: OrderDraft) -> ValidationOutcome:
    if not draft.lines:
        return ValidationOutcome(False, "Empty Order", "Add at least one product before submitting.")

    if not draft.signature:
        return ValidationOutcome(
            False,
            "Signature Required",
            "Please have the customer sign the order before submitting.",
        )

    c = draft.customer
    if not c.company_name.strip() or not c.contact_person.strip() or not c.email.strip():
        return ValidationOutcome(
            False,
            "Missing Information",
            "Please fill in company name, contact person, and email.",
        )

    if not _EMAIL_RE.match(c.email.strip()):
        return ValidationOutcome(False, "Invalid Email", f"'{c.email.strip()}' is not a valid email address.")

    if REQUIRE_PERMIT_FOR_ALCOHOL and draft.has_alcohol and draft.permit is None:
        return ValidationOutcome(
            False,
            "Permit Required",
            "The order contains alcoholic products. Upload the customer's alcohol permit (PDF or image).",
        )

    return VALID


def make_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    millis = int(round(now.timestamp() * 1000))
    return f"{ORDER_NUMBER_PREFIX}{str(millis)[-6:]}"


def format_order_date(d: Optional[date] = None) -> str:
    d = d or date.today()
    return f"{d.day} {SWEDISH_MONTHS[d.month - 1]} {d.year}"


def order_lines_text(draft: OrderDraft) -> str:
    return "\n".join(f"{line.product.name} - {line.quantity} {CASE_LABEL}" for line in draft.lines)


def email_params(draft: OrderDraft, order_number: str, order_date: str) -> Dict[str, Any]:
    c = draft.customer
    total = draft.total
    return {
        "to_email": c.email.strip(),
        "company": c.company_name.strip(),
        "contact": c.contact_person.strip(),
        "order_number": order_number,
        "order_date": order_date,
        "delivery_date": c.delivery_date or "",
        "order_details": order_lines_text(draft),
        "total_price": f"{int(total) if float(total).is_integer() else round(total, 2)} {CURRENCY_LABEL}",
        "notes": c.notes.strip() or "No notes",
    }


def submit_order(
    draft: OrderDraft,
    *,
    persist: Callable[[OrderDraft, str, str], Optional[int]],
    send_email: Callable[[Dict[str, Any]], Tuple[bool, str]],
    last_error: Callable[[], str] = lambda: "",
    now: Optional[datetime] = None,
) -> SubmissionResult:
    """Validate, store, then email. A failed email never un-stores the order."""
    outcome = validate_order(draft)
    if not outcome.ok:
        LOGGER.info("Order blocked by validation", extra={"ctx": {"component": "order", "reason": outcome.title}})
        return SubmissionResult(ok=False, validation=outcome, error=outcome.description)

    now = now or datetime.now()
    order_number = make_order_number(now)
    order_date = format_order_date(now.date())

    try:
        order_id = persist(draft, order_number, order_date)
        if order_id is None:
            raise SubmissionError(last_error() or "The order could not be saved.")
    except SubmissionError as e:
        LOGGER.error("Order submission failed", extra={"ctx": {"component": "order", "order_number": order_number}})
        return SubmissionResult(ok=False, order_number=order_number, error=str(e))

    email_sent, email_err = send_email(email_params(draft, order_number, order_date))
    if not email_sent:
        LOGGER.warning(
            "Order stored but confirmation email failed",
            extra={"ctx": {"component": "order", "order_number": order_number, "error": email_err}},
        )

    LOGGER.info(
        "Order submitted",
        extra={"ctx": {"component": "order", "order_number": order_number, "email_sent": email_sent}},
    )
    return SubmissionResult(
        ok=True,
        order_number=order_number,
        order_id=order_id,
        email_sent=email_sent,
        error=email_err if not email_sent else "",
    )
