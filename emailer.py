"""Order confirmation email through the EmailJS REST API."""

import logging
from typing import Any, Dict, Tuple

import requests

from config import (
    EMAIL_TIMEOUT_SECONDS,
    EMAILJS_API_URL,
    EMAILJS_PRIVATE_KEY,
    EMAILJS_PUBLIC_KEY,
    EMAILJS_SERVICE_ID,
    EMAILJS_TEMPLATE_ID,
)

LOGGER = logging.getLogger("drinkmix")


def email_ready() -> bool:
    return bool(EMAILJS_SERVICE_ID and EMAILJS_TEMPLATE_ID and EMAILJS_PUBLIC_KEY)


def build_payload(template_params: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "service_id": EMAILJS_SERVICE_ID,
        "template_id": EMAILJS_TEMPLATE_ID,
        "user_id": EMAILJS_PUBLIC_KEY,
        "template_params": {k: ("" if v is None else v) for k, v in template_params.items()},
    }
    if EMAILJS_PRIVATE_KEY:
        payload["accessToken"] = EMAILJS_PRIVATE_KEY
    return payload


def send_templated_email(template_params: Dict[str, Any]) -> Tuple[bool, str]:
    """Returns (ok, error_message)."""
    if not email_ready():
        return False, "Email service not configured."
    try:
        resp = requests.post(EMAILJS_API_URL, json=build_payload(template_params), timeout=EMAIL_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        LOGGER.error("Email send failed", extra={"ctx": {"component": "email", "error": type(e).__name__}})
        return False, f"{type(e).__name__}: {e}"

    if resp.status_code != 200:
        LOGGER.error(
            "Email send rejected",
            extra={"ctx": {"component": "email", "status": resp.status_code, "body": (resp.text or "")[:200]}},
        )
        return False, f"Email service returned {resp.status_code}: {(resp.text or '').strip()[:200]}"

    LOGGER.info("Email sent", extra={"ctx": {"component": "email", "to": template_params.get("to_email")}})
    return True, ""
