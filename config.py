import json
import os
from pathlib import Path
from typing import Any, Dict, List

import streamlit as st


def _safe_secret(key: str, default: str | None = None) -> str | None:
    try:
        value = st.secrets.get(key, None)
    except Exception:
        value = None
    if value is None or value == "":
        value = os.getenv(key, default)
    return value

# ============================================================
# BACKEND (Supabase tables + storage + auth)
# ============================================================
# Deployment pattern:
#   - set SUPABASE_URL and SUPABASE_ANON_KEY in Streamlit Secrets (or environment)
#   - the service role key is accepted as a fallback for local admin tooling
SUPABASE_URL = (_safe_secret("SUPABASE_URL", "") or "").strip()
SUPABASE_KEY = (
    _safe_secret("SUPABASE_ANON_KEY", "") or _safe_secret("SUPABASE_SERVICE_ROLE_KEY", "") or ""
).strip()

PERMIT_BUCKET = (_safe_secret("PERMIT_BUCKET", "permits") or "permits").strip()

# Upsert target for the customers table.
# NOTE: kept configurable until the product owner confirms (email, company_name) is the real key.
CUSTOMER_CONFLICT_TARGET = "email,company_name"

# ============================================================
# EMAIL (EmailJS templated send)
# ============================================================
EMAILJS_API_URL = "https://api.emailjs.com/api/v1.0/email/send"
EMAILJS_SERVICE_ID = (_safe_secret("EMAILJS_SERVICE_ID", "") or "").strip()
EMAILJS_TEMPLATE_ID = (_safe_secret("EMAILJS_TEMPLATE_ID", "") or "").strip()
EMAILJS_PUBLIC_KEY = (_safe_secret("EMAILJS_PUBLIC_KEY", "") or "").strip()
EMAILJS_PRIVATE_KEY = (_safe_secret("EMAILJS_PRIVATE_KEY", "") or "").strip()
EMAIL_TIMEOUT_SECONDS = 15

# ============================================================
# SIGNATURE SURFACE
# ============================================================
SIGNATURE_WIDTH = 600
SIGNATURE_HEIGHT = 200
SIGNATURE_PIXEL_RATIO = 2.0
SIGNATURE_PEN_COLOR = "#1f2937"
SIGNATURE_PEN_WIDTH = 2.5
SIGNATURE_BG_HEX = "#ffffff"

# ============================================================
# ORDERS / PERMITS
# ============================================================
ORDER_NUMBER_PREFIX = "DM-"
CURRENCY_LABEL = "kr"
CASE_LABEL = "flak"
MIN_ORDER_QUANTITY = 1
REQUIRE_PERMIT_FOR_ALCOHOL = True

MAX_DIM_PX = 4000
PERMIT_MAX_MB = 10.0
PERMIT_IMAGE_TYPES = ["png", "jpg", "jpeg", "webp"]
PERMIT_FILE_TYPES = PERMIT_IMAGE_TYPES + ["pdf"]

UNNAMED_CUSTOMER = "(Namnlös kund)"

# Catalog tabs: key -> label. "all" honours Product.show_in_all.
CATEGORY_TABS = {
    "all": "Alla",
    "lemonade": "Lemonad",
    "liquers": "Likör",
    "Sockerlag": "Sockerlag",
    "gallery": "Produktbilder",
}


# ============================================================
# SEED CATALOG (used when the products table is unreachable)
# ============================================================
@st.cache_data(show_spinner=False)
def _load_seed_catalog(path_str: str) -> List[Dict[str, Any]]:
    path = Path(path_str)
    if not path.exists():
        raise FileNotFoundError(f"Missing seed catalog: {path}")
    raw = json.loads(path.read_text(encoding="utf-8"))
    products = raw.get("products", []) if isinstance(raw, dict) else raw
    return [p for p in products if isinstance(p, dict)]


SEED_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "products.json"


def load_seed_catalog() -> List[Dict[str, Any]]:
    return list(_load_seed_catalog(str(SEED_CATALOG_PATH)))
