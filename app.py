import streamlit as st

from log_utils import setup_logging

LOGGER = setup_logging()

# =========================
# --- PAGE CONFIG ---
# =========================
st.set_page_config(
    page_title="DrinkMix Orders",
    page_icon="🍋",
    layout="wide"
)

from components.ui import inject_css  # noqa: E402
from db import load_products  # noqa: E402
from session import get_shop_session  # noqa: E402
from ui_admin import render_admin_login, render_admin_page  # noqa: E402
from ui_catalog import render_catalog_page  # noqa: E402
from ui_order import render_order_page, render_success_page  # noqa: E402

inject_css()

shop = get_shop_session()
products, from_db = load_products()
shop.sync_cart(products)

if shop.view == "order":
    render_order_page(shop, products)
elif shop.view == "success":
    render_success_page(shop)
elif shop.view == "admin_login":
    render_admin_login(shop)
elif shop.view == "admin":
    render_admin_page(shop, products)
else:
    render_catalog_page(shop, products, from_db=from_db)
