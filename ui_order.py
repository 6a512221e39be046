from typing import List, Optional

import streamlit as st
from streamlit_drawable_canvas import st_canvas

from catalog import cart_has_alcohol, cart_lines, decrement, format_price, increment
from components import signature_canvas, signature_canvas_available
from components.ui import render_callout, render_empty_state, render_page_header
from config import (
    CASE_LABEL,
    CURRENCY_LABEL,
    PERMIT_FILE_TYPES,
    PERMIT_MAX_MB,
    SIGNATURE_BG_HEX,
    SIGNATURE_HEIGHT,
    SIGNATURE_PEN_COLOR,
    SIGNATURE_PEN_WIDTH,
    SIGNATURE_WIDTH,
)
from db import last_error, persist_order
from emailer import send_templated_email
from image_utils import prepare_permit_file
from models import CustomerInfo, OrderDraft, PermitFile, Product
from orders import format_order_date, submit_order
from session import ShopSession
from signature_bridge import strokes_from_fabric_json, sync_pad_from_payload
from signature_pad import PadState


def render_signature_section(shop: ShopSession) -> None:
    pad = shop.signature_pad
    pad.bind(shop.set_signature)

    st.markdown("#### Customer Approval")
    st.caption("Sign with finger, stylus or mouse.")

    if signature_canvas_available():
        payload = signature_canvas(
            width=SIGNATURE_WIDTH,
            height=SIGNATURE_HEIGHT,
            stroke_width=SIGNATURE_PEN_WIDTH,
            stroke_color=SIGNATURE_PEN_COLOR,
            background_color=SIGNATURE_BG_HEX,
            key=shop.canvas_key,
        )
        sync_pad_from_payload(pad, payload)
    else:
        canvas_result = st_canvas(
            stroke_width=int(round(SIGNATURE_PEN_WIDTH)),
            stroke_color=SIGNATURE_PEN_COLOR,
            background_color=SIGNATURE_BG_HEX,
            height=SIGNATURE_HEIGHT,
            width=SIGNATURE_WIDTH,
            drawing_mode="freedraw",
            key=f"signature_fallback_{shop.canvas_nonce}",
            display_toolbar=False,
            update_streamlit=True,
        )
        if canvas_result is not None and getattr(canvas_result, "json_data", None):
            sync_pad_from_payload(pad, {
                "strokes": strokes_from_fabric_json(canvas_result.json_data),
                "display_width": SIGNATURE_WIDTH,
                "display_height": SIGNATURE_HEIGHT,
                "pixel_ratio": pad.geometry.pixel_ratio,
            })

    c1, c2 = st.columns([3, 1])
    with c1:
        if pad.state == PadState.HAS_SIGNATURE:
            st.caption(f"✅ Signed ({len(pad.committed_strokes)} strokes)")
        else:
            st.caption("No signature yet.")
    c2.button("🗑️ Clear", on_click=shop.clear_signature, key="signature_clear", use_container_width=True)


def _render_summary(shop: ShopSession, products: List[Product]) -> float:
    def _inc(pid: str):
        shop.cart = increment(shop.cart, pid)

    def _dec(pid: str):
        shop.cart = decrement(shop.cart, pid)

    st.markdown("#### Order Summary")
    lines = cart_lines(shop.cart, products)
    total = 0.0
    for line in lines:
        p = line.product
        row = st.columns([4, 1, 1, 1, 2])
        row[0].markdown(f"**{p.name}**  \n{format_price(p.unit_price, CURRENCY_LABEL)} / {p.unit_label} • Min order 1 {CASE_LABEL}")
        row[1].button("−", key=f"order_dec_{p.id}", on_click=_dec, args=(p.id,))
        row[2].markdown(f"**{line.quantity}x**")
        row[3].button("+", key=f"order_inc_{p.id}", on_click=_inc, args=(p.id,))
        row[4].markdown(f"**{format_price(line.line_total, CURRENCY_LABEL)}**  \n{format_price(p.price_each, CURRENCY_LABEL)} / {CASE_LABEL}")
        total += line.line_total
    st.divider()
    st.markdown(f"### Total: {format_price(total, CURRENCY_LABEL)}")
    st.caption("excl. VAT")
    return total


def _read_permit(uploaded) -> Optional[PermitFile]:
    if uploaded is None:
        return None
    raw = uploaded.getvalue()
    ok, data, ct, err = prepare_permit_file(uploaded.name, raw, getattr(uploaded, "type", "") or "", PERMIT_MAX_MB)
    if not ok:
        st.error(err)
        return None
    return PermitFile(name=uploaded.name, data=data, content_type=ct)


def render_order_page(shop: ShopSession, products: List[Product]):
    def _back():
        shop.go("catalog")

    render_page_header("New Order", format_order_date())
    st.button("← Back to catalog", on_click=_back, key="order_back")

    lines = cart_lines(shop.cart, products)
    if not lines:
        render_empty_state("Your order is empty", "Add products from the catalog first.", icon="🛒")
        return

    left, right = st.columns(2)
    with left:
        st.markdown("#### Customer Information")
        company = st.text_input("Restaurant / Café Name *", placeholder="e.g., Café Stockholm", key="f_company")
        contact = st.text_input("Contact Person *", placeholder="Full name", key="f_contact")
        e1, e2 = st.columns(2)
        email = e1.text_input("Email *", placeholder="email@example.com", key="f_email")
        phone = e2.text_input("Phone", placeholder="+46 70 123 4567", key="f_phone")
        address = st.text_input("Delivery Address", placeholder="Street, City, Postal Code", key="f_address")
        o1, o2 = st.columns(2)
        org_number = o1.text_input("Org. number", key="f_org")
        delivery = o2.date_input("Delivery date", value=None, key="f_delivery")
        invoice = st.text_input("Invoice reference / email", key="f_invoice")
        notes = st.text_area("Order Notes", placeholder="Any special requests or delivery instructions...", key="f_notes")

        has_alcohol = cart_has_alcohol(shop.cart, products)
        label = "Alcohol permit (Alkoholtillstånd) *" if has_alcohol else "Alcohol permit (optional)"
        uploaded = st.file_uploader(label, type=PERMIT_FILE_TYPES, key=shop.permit_key)

        render_signature_section(shop)

    with right:
        _render_summary(shop, products)
        submitted = st.button("📨 Submit Order", type="primary", use_container_width=True, key="order_submit")
        st.caption(f"Order confirmation will be sent to {email.strip() or 'the customer email'}")

    if not submitted:
        return

    draft = OrderDraft(
        customer=CustomerInfo(
            company_name=company,
            contact_person=contact,
            email=email,
            phone=phone,
            address=address,
            notes=notes,
            invoice=invoice,
            org_number=org_number,
            delivery_date=delivery.isoformat() if delivery else "",
        ),
        lines=cart_lines(shop.cart, products),
        signature=shop.signature_value,
        permit=_read_permit(uploaded),
    )

    with st.spinner("Submitting Order..."):
        result = submit_order(draft, persist=persist_order, send_email=send_templated_email, last_error=last_error)

    if not result.ok:
        if not result.validation.ok:
            render_callout(result.validation.title, result.validation.description, kind="error")
        else:
            render_callout("Order could not be saved", result.error or "Something went wrong. Please try again.", kind="error")
        return

    shop.finish_order(result.order_number, result.email_sent)
    st.rerun()


def render_success_page(shop: ShopSession):
    render_page_header("Order Submitted!", shop.last_order_number or None)
    if shop.last_email_sent:
        st.success("The order has been sent and a confirmation email is on its way.")
    else:
        st.warning("The order was saved, but the confirmation email could not be sent.")
    st.button("Start a new order", type="primary", on_click=shop.start_new_order, key="new_order")
