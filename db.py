import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import streamlit as st

from catalog import normalize_product, product_to_row, seed_products
from config import CUSTOMER_CONFLICT_TARGET, PERMIT_BUCKET, SUPABASE_KEY, SUPABASE_URL
from models import (
    CartLine,
    CustomerInfo,
    CustomerList,
    CustomerRow,
    JoinedCustomer,
    NoCustomer,
    OrderDraft,
    OrderItemRow,
    OrderRecord,
    OrderRow,
    PermitFile,
    Product,
    SingleCustomer,
)

LOGGER = logging.getLogger("drinkmix")

# ============================================================
#  SUPABASE CLIENT (CACHED)
# ============================================================

@st.cache_resource
def get_supabase_client():
    if not SUPABASE_URL or not SUPABASE_KEY:
        return None
    try:
        from supabase import create_client
        return create_client(SUPABASE_URL, SUPABASE_KEY)
    except Exception as e:
        LOGGER.error("Supabase client init failed", extra={"ctx": {"component": "supabase", "error": type(e).__name__}})
        return None


def supabase_ready() -> bool:
    return get_supabase_client() is not None


def _set_last_error(msg: str) -> None:
    st.session_state["db_last_error"] = msg


def last_error() -> str:
    return st.session_state.get("db_last_error", "") or ""


def _rows(res: Any) -> List[Dict[str, Any]]:
    data = getattr(res, "data", None)
    if data is None and isinstance(res, dict):
        data = res.get("data")
    if isinstance(data, dict):
        return [data]
    return [r for r in (data or []) if isinstance(r, dict)]


# ============================================================
# PRODUCTS
# ============================================================

@st.cache_data(ttl=60, show_spinner=False)
def _fetch_product_rows() -> List[Dict[str, Any]]:
    sb = get_supabase_client()
    if sb is None:
        raise RuntimeError("Supabase not configured.")
    res = sb.table("products").select("*").order("id").execute()
    return _rows(res)


def fetch_products() -> List[Product]:
    """Raises when the backend is missing or the query fails."""
    return [normalize_product(r) for r in _fetch_product_rows()]


def _forget_products() -> None:
    _fetch_product_rows.clear()


def load_products() -> Tuple[List[Product], bool]:
    """Products from the DB, or the seed catalog when the DB fails. Second item is True for DB data."""
    try:
        return fetch_products(), True
    except Exception as e:
        _set_last_error(f"Load Products Error: {type(e).__name__}: {e}")
        LOGGER.error("Failed to load products from DB", extra={"ctx": {"component": "db", "error": type(e).__name__}})
        return seed_products(), False


def save_product(product: Product) -> Optional[Product]:
    sb = get_supabase_client()
    if sb is None:
        _set_last_error("Supabase not configured.")
        return None
    payload = product_to_row(product)
    try:
        if "id" in payload:
            res = sb.table("products").update(payload).eq("id", payload["id"]).execute()
        else:
            res = sb.table("products").insert(payload).execute()
        rows = _rows(res)
        if not rows:
            raise RuntimeError("No row inserted/updated.")
        _forget_products()
        return normalize_product(rows[0])
    except Exception as e:
        _set_last_error(f"Save Product Error: {type(e).__name__}: {e}")
        LOGGER.error("Product save failed", extra={"ctx": {"component": "db", "table": "products", "error": type(e).__name__}})
        return None


def delete_product(product_id: str) -> bool:
    if not str(product_id).isdigit():
        _set_last_error(f"Delete Product Error: product id must be numeric, got {product_id!r}")
        return False
    sb = get_supabase_client()
    if sb is None:
        _set_last_error("Supabase not configured.")
        return False
    try:
        sb.table("products").delete().eq("id", int(product_id)).execute()
        _forget_products()
        return True
    except Exception as e:
        _set_last_error(f"Delete Product Error: {type(e).__name__}: {e}")
        LOGGER.error("Product delete failed", extra={"ctx": {"component": "db", "table": "products", "error": type(e).__name__}})
        return False


# ============================================================
# STORAGE (permit files)
# ============================================================
def slugify(s: str) -> str:
    s = (s or "").strip().lower()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = re.sub(r"-{2,}", "-", s).strip("-")
    return s or "untitled"


def _clean_storage_path(path: str) -> str:
    if not isinstance(path, str):
        return ""
    p = path.strip().lstrip("/")
    p = p.replace("\\", "/")
    p = re.sub(r"/{2,}", "/", p)
    return p


def permit_storage_path(order_number: str, filename: str) -> str:
    stem, dot, ext = (filename or "").rpartition(".")
    if not dot:
        stem, ext = ext, "bin"
    return _clean_storage_path(f"{slugify(order_number)}/{slugify(stem)}.{ext.lower() or 'bin'}")


def upload_permit(order_number: str, permit: PermitFile) -> Optional[str]:
    """Upload a permit file and return its public URL."""
    sb = get_supabase_client()
    if sb is None:
        _set_last_error("Supabase Storage not configured.")
        return None

    p = permit_storage_path(order_number, permit.name)

    # Header values must be strings (avoid booleans).
    file_options = {
        "content-type": str(permit.content_type or "application/octet-stream"),
        "cache-control": "3600",
        "upsert": "true",
    }

    try:
        bucket = sb.storage.from_(PERMIT_BUCKET)
        res = bucket.upload(p, permit.data, file_options)
        err = None
        if hasattr(res, "error"):
            err = getattr(res, "error")
        elif isinstance(res, dict):
            err = res.get("error")
        if err:
            raise RuntimeError(str(err))
        url = bucket.get_public_url(p)
        if isinstance(url, dict):
            url = (url.get("data") or {}).get("publicUrl") or url.get("publicURL")
        return str(url or "").rstrip("?") or None
    except Exception as e:
        _set_last_error(f"Storage Upload Error: {type(e).__name__}: {e}")
        LOGGER.error(
            "Storage upload failed",
            extra={"ctx": {"component": "storage", "op": "upload", "path": p, "error": type(e).__name__}},
        )
        return None


# ============================================================
# ORDERS (write path)
# ============================================================

def upsert_customer(info: CustomerInfo) -> Optional[int]:
    sb = get_supabase_client()
    if sb is None:
        _set_last_error("Supabase not configured.")
        return None
    payload = {
        "company_name": info.company_name.strip(),
        "contact_person": info.contact_person.strip(),
        "email": info.email.strip().lower(),
        "phone": (info.phone or "").strip() or None,
        "address": (info.address or "").strip() or None,
        "org_number": (info.org_number or "").strip() or None,
    }
    try:
        res = sb.table("customers").upsert(payload, on_conflict=CUSTOMER_CONFLICT_TARGET).execute()
        rows = _rows(res)
        if not rows or rows[0].get("id") is None:
            raise RuntimeError("Customer upsert returned no id.")
        return int(rows[0]["id"])
    except Exception as e:
        _set_last_error(f"Customer Upsert Error: {type(e).__name__}: {e}")
        LOGGER.error("Customer upsert failed", extra={"ctx": {"component": "db", "table": "customers", "error": type(e).__name__}})
        return None


def insert_order(row: Dict[str, Any]) -> Optional[int]:
    sb = get_supabase_client()
    if sb is None:
        _set_last_error("Supabase not configured.")
        return None
    try:
        res = sb.table("orders").insert(row).execute()
        rows = _rows(res)
        if not rows or rows[0].get("id") is None:
            raise RuntimeError("Order insert returned no id.")
        return int(rows[0]["id"])
    except Exception as e:
        _set_last_error(f"Insert Order Error: {type(e).__name__}: {e}")
        LOGGER.error("Order insert failed", extra={"ctx": {"component": "db", "table": "orders", "error": type(e).__name__}})
        return None


def order_item_rows(order_id: int, lines: List[CartLine]) -> List[Dict[str, Any]]:
    return [
        {
            "order_id": order_id,
            "product_id": line.product.id,
            "product_name": line.product.name,
            "quantity": int(line.quantity),
            "price_per_case": line.product.price_each,
            "case_price": line.product.case_price,
        }
        for line in lines
    ]


def insert_order_items(order_id: int, lines: List[CartLine]) -> bool:
    sb = get_supabase_client()
    if sb is None:
        _set_last_error("Supabase not configured.")
        return False
    rows = order_item_rows(order_id, lines)
    if not rows:
        return True
    try:
        sb.table("order_items").insert(rows).execute()
        return True
    except Exception as e:
        _set_last_error(f"Insert Order Items Error: {type(e).__name__}: {e}")
        LOGGER.error("Order items insert failed", extra={"ctx": {"component": "db", "table": "order_items", "error": type(e).__name__}})
        return False


def discard_order(order_id: int, order_number: str = "", permit: Optional[PermitFile] = None) -> None:
    """Remove an order row, and its uploaded permit, whose items could not be stored."""
    sb = get_supabase_client()
    if sb is None:
        return
    try:
        sb.table("orders").delete().eq("id", int(order_id)).execute()
    except Exception as e:
        LOGGER.error(
            "Orphan order cleanup failed",
            extra={"ctx": {"component": "db", "table": "orders", "order_id": order_id, "error": type(e).__name__}},
        )
    if permit is not None:
        p = permit_storage_path(order_number, permit.name)
        try:
            sb.storage.from_(PERMIT_BUCKET).remove([p])
        except Exception as e:
            LOGGER.error(
                "Orphan permit cleanup failed",
                extra={"ctx": {"component": "storage", "op": "remove", "path": p, "error": type(e).__name__}},
            )


def persist_order(draft: OrderDraft, order_number: str, order_date: str) -> Optional[int]:
    """Customer upsert, permit upload, order row, order items. Returns the order id."""
    customer_id = upsert_customer(draft.customer)
    if customer_id is None:
        return None

    permit_url = None
    if draft.permit is not None:
        permit_url = upload_permit(order_number, draft.permit)
        if permit_url is None:
            return None

    order_id = insert_order({
        "customer_id": customer_id,
        "order_number": order_number,
        "order_date": order_date,
        "delivery_date": (draft.customer.delivery_date or "").strip() or None,
        "invoice": (draft.customer.invoice or "").strip() or None,
        "notes": (draft.customer.notes or "").strip() or None,
        "total_price": draft.total,
        "signature": draft.signature,
        "permit_url": permit_url,
    })
    if order_id is None:
        return None

    if not insert_order_items(order_id, draft.lines):
        discard_order(order_id, order_number, draft.permit)
        return None

    LOGGER.info(
        "Order stored",
        extra={"ctx": {"component": "db", "order_number": order_number, "order_id": order_id, "items": len(draft.lines)}},
    )
    return order_id


# ============================================================
# ADMIN (read path)
# ============================================================

def resolve_joined_customer(value: Any) -> JoinedCustomer:
    if isinstance(value, dict) and value.get("id") is not None:
        return SingleCustomer(CustomerRow.from_row(value))
    if isinstance(value, list):
        rows = tuple(CustomerRow.from_row(v) for v in value if isinstance(v, dict) and v.get("id") is not None)
        if rows:
            return CustomerList(rows)
    return NoCustomer()


def fetch_customers_with_orders() -> List[CustomerRow]:
    """Customers that have at least one order, one entry per customer id."""
    _set_last_error("")
    sb = get_supabase_client()
    if sb is None:
        return []
    try:
        res = (
            sb.table("customers")
            .select("id, company_name, contact_person, email, phone, address, org_number, orders!inner(id)")
            .order("company_name")
            .execute()
        )
        by_id: Dict[int, CustomerRow] = {}
        for r in _rows(res):
            if r.get("id") is None:
                continue
            c = CustomerRow.from_row(r)
            by_id[c.id] = c
        return list(by_id.values())
    except Exception as e:
        _set_last_error(f"Load Customers Error: {type(e).__name__}: {e}")
        LOGGER.error("Customer load failed", extra={"ctx": {"component": "db", "table": "customers", "error": type(e).__name__}})
        return []


ORDER_COLUMNS = "id, customer_id, order_number, order_date, delivery_date, notes, total_price, signature, permit_url, created_at"


def fetch_orders_for_customers(customer_ids: List[int]) -> List[OrderRow]:
    ids = [int(i) for i in customer_ids]
    if not ids:
        return []
    sb = get_supabase_client()
    if sb is None:
        return []
    try:
        res = (
            sb.table("orders")
            .select(ORDER_COLUMNS)
            .in_("customer_id", ids)
            .order("id", desc=True)
            .execute()
        )
        return [OrderRow.from_row(r) for r in _rows(res) if r.get("id") is not None]
    except Exception as e:
        _set_last_error(f"Load Orders Error: {type(e).__name__}: {e}")
        LOGGER.error("Order load failed", extra={"ctx": {"component": "db", "table": "orders", "error": type(e).__name__}})
        return []


def fetch_order_items(order_id: int) -> List[OrderItemRow]:
    sb = get_supabase_client()
    if sb is None:
        return []
    try:
        res = (
            sb.table("order_items")
            .select("order_id, product_id, product_name, quantity, price_per_case, case_price")
            .eq("order_id", int(order_id))
            .order("product_name")
            .execute()
        )
        return [OrderItemRow.from_row(r) for r in _rows(res)]
    except Exception as e:
        _set_last_error(f"Load Order Items Error: {type(e).__name__}: {e}")
        LOGGER.error("Order items load failed", extra={"ctx": {"component": "db", "table": "order_items", "error": type(e).__name__}})
        return []


def fetch_all_orders() -> List[OrderRecord]:
    _set_last_error("")
    sb = get_supabase_client()
    if sb is None:
        return []
    try:
        res = (
            sb.table("orders")
            .select(
                ORDER_COLUMNS
                + ", customers (id, company_name, contact_person, email, phone, address, org_number)"
                + ", order_items (order_id, product_id, product_name, quantity, price_per_case, case_price)"
            )
            .order("id", desc=True)
            .execute()
        )
        out: List[OrderRecord] = []
        for r in _rows(res):
            if r.get("id") is None:
                continue
            out.append(OrderRecord(
                order=OrderRow.from_row(r),
                customer=resolve_joined_customer(r.get("customers")),
                items=[OrderItemRow.from_row(i) for i in (r.get("order_items") or []) if isinstance(i, dict)],
            ))
        return out
    except Exception as e:
        _set_last_error(f"Load All Orders Error: {type(e).__name__}: {e}")
        LOGGER.error("All orders load failed", extra={"ctx": {"component": "db", "table": "orders", "error": type(e).__name__}})
        return []
