from typing import List

import streamlit as st

from catalog import (
    cart_item_count,
    cart_total,
    decrement,
    filter_products,
    format_price,
    increment,
)
from components.ui import alcohol_badge_html, render_empty_state, render_page_header
from config import CASE_LABEL, CATEGORY_TABS, CURRENCY_LABEL
from models import PricingMode, Product
from session import ShopSession


def _displayable_image(src: str) -> bool:
    return src.startswith(("http://", "https://", "data:image/"))


def render_catalog_page(shop: ShopSession, products: List[Product], from_db: bool = True):
    render_page_header("DrinkMix", "Beställ lemonad, likör och sockerlag till din verksamhet.", tag="B2B")

    if not from_db:
        st.warning("Could not reach the product database. Showing the offline catalog.")

    def _inc(pid: str):
        shop.cart = increment(shop.cart, pid)

    def _dec(pid: str):
        shop.cart = decrement(shop.cart, pid)

    def _to_order():
        shop.go("order")

    def _to_admin():
        shop.go("admin")

    top = st.columns([3, 1])
    n_items = cart_item_count(shop.cart)
    with top[0]:
        if n_items > 0:
            st.button(
                f"🛒 Order ({n_items}) - {format_price(cart_total(shop.cart, products), CURRENCY_LABEL)}",
                type="primary",
                on_click=_to_order,
                key="btn_to_order",
            )
    with top[1]:
        st.button("⚙️ Admin", on_click=_to_admin, key="btn_to_admin", use_container_width=True)

    if not products:
        render_empty_state("No products", "The catalog is empty right now.", icon="🍋")
        return

    tab_keys = list(CATEGORY_TABS.keys())
    tabs = st.tabs([CATEGORY_TABS[k] for k in tab_keys])
    for tab_key, tab in zip(tab_keys, tabs):
        with tab:
            items = filter_products(products, tab_key)
            if tab_key == "gallery":
                _render_gallery(items)
                continue
            if not items:
                st.caption("No products in this category.")
                continue
            cols = st.columns(3)
            for i, p in enumerate(items):
                with cols[i % 3]:
                    _render_product_card(p, shop.cart.get(p.id, 0), tab_key, _inc, _dec)


def _render_product_card(p: Product, qty: int, tab_key: str, on_inc, on_dec) -> None:
    with st.container(border=True):
        if _displayable_image(p.image):
            st.image(p.image, use_container_width=True)
        st.markdown(alcohol_badge_html(p.has_alcohol, p.alcohol_label), unsafe_allow_html=True)
        st.markdown(f"**{p.name}**  \n_{p.category}_")
        if p.description:
            with st.expander("Details"):
                st.write(p.description)
                st.caption(p.unit)
        if p.pricing_mode == PricingMode.PER_CASE:
            st.caption(
                f"{format_price(p.unit_price, CURRENCY_LABEL)} / {p.unit_label} • "
                f"Min order: 1 {CASE_LABEL} ({p.case_size} {p.unit_label}) • "
                f"{format_price(p.case_price, CURRENCY_LABEL)} / {CASE_LABEL}"
            )
        else:
            st.caption(f"{format_price(p.unit_price, CURRENCY_LABEL)} / {p.unit_label}")
        c1, c2, c3 = st.columns([1, 1, 1])
        c1.button("−", key=f"dec_{tab_key}_{p.id}", on_click=on_dec, args=(p.id,), disabled=qty == 0)
        c2.markdown(f"<div style='text-align:center;font-weight:600'>{qty}</div>", unsafe_allow_html=True)
        c3.button("+", key=f"inc_{tab_key}_{p.id}", on_click=on_inc, args=(p.id,))


def _render_gallery(items: List[Product]) -> None:
    shown = [p for p in items if _displayable_image(p.image)]
    if not shown:
        st.caption("No product pictures available.")
        return
    cols = st.columns(4)
    for i, p in enumerate(shown):
        with cols[i % 4]:
            st.image(p.image, caption=p.name, use_container_width=True)
