from typing import List, Optional

import streamlit as st

from auth import sign_in, sign_out
from catalog import format_price
from components.ui import render_callout, render_empty_state, render_page_header
from config import CATEGORY_TABS, CURRENCY_LABEL
from customers import (
    CustomerGroup,
    export_csv,
    export_orders_csv,
    group_customers,
    groups_to_dataframe,
    orders_to_dataframe,
)
from db import (
    delete_product,
    fetch_all_orders,
    fetch_customers_with_orders,
    fetch_order_items,
    fetch_orders_for_customers,
    last_error,
    save_product,
    supabase_ready,
)
from image_utils import data_url_to_image, image_has_ink, permit_preview_kind
from models import OrderRow, PricingMode, Product
from session import ShopSession


def render_admin_login(shop: ShopSession):
    def _back():
        shop.go("catalog")

    render_page_header("Admin", "Sign in to see customers and orders.")
    st.button("← Back to catalog", on_click=_back, key="login_back")

    if not supabase_ready():
        st.error("Supabase is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY in secrets.")
        return

    with st.form("admin_login_form"):
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if shop.admin.error:
        st.error(shop.admin.error)

    if submitted:
        with st.spinner("Signing in..."):
            shop.admin = sign_in(email, password)
        if shop.admin.authorized:
            shop.go("admin")
        st.rerun()


def render_admin_page(shop: ShopSession, products: List[Product]):
    if not shop.admin.authorized:
        shop.go("admin_login")
        st.rerun()

    def _back():
        shop.go("catalog")

    def _sign_out():
        shop.admin = sign_out(shop.admin)
        shop.go("catalog")

    render_page_header("Admin", f"Signed in as {shop.admin.email or 'admin'}", tag="Admin")
    nav = st.columns([1, 1, 4])
    nav[0].button("← Catalog", on_click=_back, key="admin_back")
    nav[1].button("Sign out", on_click=_sign_out, key="admin_sign_out")

    tab_customers, tab_orders, tab_export, tab_products = st.tabs(
        ["👥 Customers", "📦 All orders", "⬇️ Export", "🍋 Products"]
    )
    with tab_customers:
        _render_customers_tab()
    with tab_orders:
        _render_all_orders_tab()
    with tab_export:
        _render_export_tab()
    with tab_products:
        _render_products_tab(products)


# -------------------------
# Customers
# -------------------------
def _render_customers_tab():
    groups = group_customers(fetch_customers_with_orders())
    if last_error():
        st.caption(f"Last database message: {last_error()}")
    if not groups:
        render_empty_state("No customers yet", "Customers appear here after their first order.", icon="👥")
        return

    search = st.text_input("Search company", key="admin_customer_search").strip().casefold()
    shown = [g for g in groups if not search or search in g.display_name.casefold()]
    if not shown:
        st.info("No companies match the search.")
        return

    labels = [f"{g.display_name} ({len(g.customers)} contact{'s' if len(g.customers) != 1 else ''})" for g in shown]
    pick = st.selectbox("Company", list(range(len(shown))), format_func=lambda i: labels[i], key="admin_customer_pick")
    group: CustomerGroup = shown[pick]

    for contact in group.contacts:
        st.caption(contact)

    orders = fetch_orders_for_customers(group.customer_ids)
    if not orders:
        st.info("No orders for this company.")
        return
    for order in orders:
        _render_order(order)


def _render_order(order: OrderRow):
    title = f"{order.order_number or '#' + str(order.id)} • {order.order_date or ''}"
    if order.total_price is not None:
        title += f" • {format_price(order.total_price, CURRENCY_LABEL)}"
    with st.expander(title):
        items = fetch_order_items(order.id)
        if items:
            for it in items:
                price = format_price(it.price_per_case, CURRENCY_LABEL) if it.price_per_case is not None else "-"
                st.write(f"{it.product_name or it.product_id} • {it.quantity or 0} × {price}")
        else:
            st.caption("No order items stored.")
        if order.delivery_date:
            st.write(f"**Delivery date:** {order.delivery_date}")
        if order.notes:
            st.write(f"**Notes:** {order.notes}")
        _render_signature(order.signature)
        _render_permit(order.permit_url)


def _render_signature(signature: Optional[str]):
    st.markdown("**Signature**")
    if not signature:
        st.caption("No signature stored.")
        return
    img = data_url_to_image(signature, background=(255, 255, 255))
    if img is None:
        st.warning("Stored signature could not be decoded.")
        return
    st.image(img, width=300)
    if not image_has_ink(img):
        st.warning("The stored signature looks blank.")


def _render_permit(url: Optional[str]):
    kind = permit_preview_kind(url)
    if kind == "none":
        st.caption("No permit uploaded.")
        return
    st.markdown(f"**Permit:** [{url.rsplit('/', 1)[-1]}]({url})")
    if kind == "image":
        st.image(url, width=300)
    elif kind == "pdf":
        st.caption("PDF permit. Open the link to view it.")
    else:
        st.caption("Unknown file type. Download to inspect.")


# -------------------------
# All orders
# -------------------------
def _render_all_orders_tab():
    records = fetch_all_orders()
    if not records:
        if last_error():
            st.error(f"Database Error: {last_error()}")
        render_empty_state("No orders yet", "Submitted orders are listed here.", icon="📦")
        return
    df = orders_to_dataframe(records)
    c1, c2, c3 = st.columns(3)
    c1.metric("Orders", len(records))
    c2.metric("Companies", int(df["company"].nunique()))
    c3.metric("Revenue", format_price(sum(r.order.total_price or 0 for r in records), CURRENCY_LABEL))
    st.dataframe(df.drop(columns=["has_signature"]), width="stretch", hide_index=True)


# -------------------------
# Export
# -------------------------
def _render_export_tab():
    st.write("Download CSV files for bookkeeping (opens in Excel).")
    records = fetch_all_orders()
    groups = group_customers(fetch_customers_with_orders())
    c1, c2 = st.columns(2)
    c1.download_button(
        "Orders (CSV)",
        data=export_orders_csv(records),
        file_name="orders.csv",
        mime="text/csv",
        disabled=not records,
        key="export_orders",
    )
    c2.download_button(
        "Customers (CSV)",
        data=export_csv(groups_to_dataframe(groups)),
        file_name="customers.csv",
        mime="text/csv",
        disabled=not groups,
        key="export_customers",
    )


# -------------------------
# Products
# -------------------------
def _render_products_tab(products: List[Product]):
    categories = [k for k in CATEGORY_TABS if k not in ("all", "gallery")]
    options = ["new"] + [p.id for p in products]
    by_id = {p.id: p for p in products}
    pick = st.selectbox(
        "Product",
        options,
        format_func=lambda pid: "➕ New product" if pid == "new" else f"{by_id[pid].name} [id {pid}]",
        key="admin_product_pick",
    )
    current = by_id.get(pick) or Product(id="", name="")
    if current.alcohol_flag_missing:
        render_callout("Alcohol flag missing", "This product has no explicit alcohol flag. Check and save it.", kind="warning")

    with st.form(f"product_form_{pick}"):
        name = st.text_input("Name", value=current.name)
        description = st.text_area("Description", value=current.description, height=80)
        c1, c2, c3 = st.columns(3)
        unit_price = c1.number_input("Unit price", min_value=0.0, value=float(current.unit_price), step=1.0)
        case_price = c2.number_input("Case price", min_value=0.0, value=float(current.case_price), step=1.0)
        case_size = c3.number_input("Case size", min_value=0, value=int(current.case_size), step=1)
        c4, c5, c6 = st.columns(3)
        unit_label = c4.text_input("Unit label", value=current.unit_label)
        category = c5.selectbox(
            "Category",
            categories,
            index=categories.index(current.category) if current.category in categories else 0,
        )
        pricing_mode = c6.selectbox(
            "Pricing",
            [m.value for m in PricingMode],
            index=[m.value for m in PricingMode].index(current.pricing_mode.value),
        )
        unit = st.text_input("Unit text", value=current.unit)
        image = st.text_input("Image URL", value=current.image)
        a1, a2, a3 = st.columns(3)
        has_alcohol = a1.checkbox("Contains alcohol", value=current.has_alcohol)
        alcohol_percent = a2.number_input(
            "Alcohol %", min_value=0.0, max_value=100.0, value=float(current.alcohol_percent or 0.0), step=0.5
        )
        show_in_all = a3.checkbox("Show in 'Alla'", value=current.show_in_all)
        saved = st.form_submit_button("Save product", type="primary")

    if saved:
        if not name.strip():
            st.warning("Name is required.")
        else:
            product = Product(
                id=current.id,
                name=name.strip(),
                description=description,
                unit_price=float(unit_price),
                case_price=float(case_price),
                case_size=int(case_size),
                unit_label=unit_label.strip() or "st",
                unit=unit.strip(),
                category=category,
                image=image.strip(),
                pricing_mode=PricingMode.parse(pricing_mode),
                show_in_all=show_in_all,
                has_alcohol=has_alcohol,
                alcohol_percent=float(alcohol_percent) if has_alcohol and alcohol_percent > 0 else None,
            )
            stored = save_product(product)
            if stored is None:
                st.error(f"Save failed: {last_error()}")
            else:
                st.success(f"Saved {stored.name}.")
                st.rerun()

    if pick != "new":
        with st.expander("Delete product"):
            confirm = st.checkbox("I understand this cannot be undone", key=f"confirm_delete_{pick}")
            if st.button("Delete", disabled=not confirm, key=f"delete_{pick}"):
                if delete_product(pick):
                    st.success("Product deleted.")
                    st.rerun()
                else:
                    st.error(f"Delete failed: {last_error()}")
