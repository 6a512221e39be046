import unittest
from datetime import date, datetime
from unittest import mock

from models import CartLine, CustomerInfo, OrderDraft, PermitFile, Product
from orders import (
    email_params,
    format_order_date,
    make_order_number,
    submit_order,
    validate_order,
)
from signature_pad import SignaturePad

LEMONADE = Product(id="1", name="Citronlemonad box", unit_price=180, case_price=720, case_size=4)
LIMONCELLO = Product(id="5", name="Limoncello", case_price=1674, case_size=6, category="liquers", has_alcohol=True)


def _signed() -> str:
    pad = SignaturePad()
    pad.begin((10, 10))
    pad.extend((60, 40))
    pad.end()
    return pad.signature_value


def _draft(**overrides) -> OrderDraft:
    values = dict(
        customer=CustomerInfo(company_name="Café Stockholm", contact_person="Anna", email="anna@cafe.se", notes=""),
        lines=[CartLine(LEMONADE, 2)],
        signature=_signed(),
        permit=None,
    )
    values.update(overrides)
    return OrderDraft(**values)


class ValidationTests(unittest.TestCase):
    def test_valid_order(self) -> None:
        self.assertTrue(validate_order(_draft()).ok)

    def test_empty_cart_comes_first(self) -> None:
        outcome = validate_order(_draft(lines=[], signature=""))
        self.assertEqual(outcome.title, "Empty Order")

    def test_signature_required(self) -> None:
        outcome = validate_order(_draft(signature="", customer=CustomerInfo()))
        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.title, "Signature Required")
        self.assertEqual(outcome.description, "Please have the customer sign the order before submitting.")

    def test_missing_information(self) -> None:
        outcome = validate_order(_draft(customer=CustomerInfo(company_name="X", email="a@b.se")))
        self.assertEqual(outcome.title, "Missing Information")

    def test_invalid_email(self) -> None:
        outcome = validate_order(_draft(customer=CustomerInfo(company_name="X", contact_person="Y", email="nope")))
        self.assertEqual(outcome.title, "Invalid Email")

    def test_alcohol_needs_permit(self) -> None:
        outcome = validate_order(_draft(lines=[CartLine(LIMONCELLO, 1)]))
        self.assertEqual(outcome.title, "Permit Required")

        permit = PermitFile(name="tillstand.pdf", data=b"%PDF-1.4", content_type="application/pdf")
        self.assertTrue(validate_order(_draft(lines=[CartLine(LIMONCELLO, 1)], permit=permit)).ok)


class NumberingTests(unittest.TestCase):
    def test_order_number_uses_last_six_millisecond_digits(self) -> None:
        now = datetime.fromtimestamp(1_760_000_123.5)
        self.assertEqual(make_order_number(now), "DM-123500")

    def test_swedish_date(self) -> None:
        self.assertEqual(format_order_date(date(2026, 10, 19)), "19 oktober 2026")
        self.assertEqual(format_order_date(date(2025, 5, 1)), "1 maj 2025")

    def test_email_params(self) -> None:
        params = email_params(_draft(), "DM-000001", "19 oktober 2026")
        self.assertEqual(params["to_email"], "anna@cafe.se")
        self.assertEqual(params["order_details"], "Citronlemonad box - 2 flak")
        self.assertEqual(params["total_price"], "1440 kr")
        self.assertEqual(params["notes"], "No notes")


class SubmitOrderTests(unittest.TestCase):
    def test_blank_signature_never_reaches_persistence(self) -> None:
        persist = mock.Mock()
        send_email = mock.Mock()
        result = submit_order(_draft(signature=""), persist=persist, send_email=send_email)
        self.assertFalse(result.ok)
        self.assertEqual(result.validation.title, "Signature Required")
        persist.assert_not_called()
        send_email.assert_not_called()

    def test_cleared_pad_blocks_submit(self) -> None:
        values = []
        pad = SignaturePad(on_change=values.append)
        pad.begin((1, 1))
        pad.extend((50, 50))
        pad.end()
        pad.clear()
        persist = mock.Mock()
        result = submit_order(_draft(signature=values[-1]), persist=persist, send_email=mock.Mock())
        self.assertEqual(result.validation.title, "Signature Required")
        persist.assert_not_called()

    def test_successful_submit(self) -> None:
        draft = _draft()
        persist = mock.Mock(return_value=42)
        send_email = mock.Mock(return_value=(True, ""))
        now = datetime(2026, 10, 19, 12, 0, 0)

        result = submit_order(draft, persist=persist, send_email=send_email, now=now)

        self.assertTrue(result.ok)
        self.assertEqual(result.order_id, 42)
        self.assertTrue(result.email_sent)
        self.assertTrue(result.order_number.startswith("DM-"))
        persist.assert_called_once_with(draft, result.order_number, "19 oktober 2026")
        sent = send_email.call_args[0][0]
        self.assertEqual(sent["order_number"], result.order_number)

    def test_signature_is_passed_through_verbatim(self) -> None:
        draft = _draft()
        seen = {}

        def persist(d, number, when):
            seen["signature"] = d.signature
            return 1

        submit_order(draft, persist=persist, send_email=lambda p: (True, ""))
        self.assertEqual(seen["signature"], draft.signature)
        self.assertTrue(seen["signature"].startswith("data:image/png;base64,"))

    def test_persist_failure_reports_last_error(self) -> None:
        send_email = mock.Mock()
        result = submit_order(
            _draft(),
            persist=mock.Mock(return_value=None),
            send_email=send_email,
            last_error=lambda: "Insert Order Error: boom",
        )
        self.assertFalse(result.ok)
        self.assertTrue(result.validation.ok)
        self.assertEqual(result.error, "Insert Order Error: boom")
        send_email.assert_not_called()

    def test_email_failure_keeps_order(self) -> None:
        result = submit_order(
            _draft(),
            persist=mock.Mock(return_value=7),
            send_email=mock.Mock(return_value=(False, "Email service returned 400: bad")),
        )
        self.assertTrue(result.ok)
        self.assertFalse(result.email_sent)
        self.assertEqual(result.order_id, 7)
        self.assertIn("400", result.error)


if __name__ == "__main__":
    unittest.main()
