"""Product normalization and cart arithmetic."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from config import CASE_LABEL, MIN_ORDER_QUANTITY, load_seed_catalog
from models import CartLine, PricingMode, Product

LOGGER = logging.getLogger("drinkmix")

DEFAULT_CASE_SIZE = 24
KNOWN_CATEGORIES = ("lemonade", "liquers", "Sockerlag")

Cart = Dict[str, int]


def _first(row: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None


def _num(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _guess_case_size(unit: Any) -> int:
    m = re.search(r"\d+", str(unit or ""))
    if not m:
        return DEFAULT_CASE_SIZE
    return int(m.group(0))


def _normalize_category(value: Any) -> str:
    cat = str(value or "").strip()
    if cat == "liquer":
        cat = "liquers"
    return cat or "lemonade"


def normalize_product(row: Dict[str, Any]) -> Product:
    """Map a DB row (lower-case columns) or a legacy camelCase dict to a Product."""
    case_price = _num(_first(row, "caseprice", "casePrice", "case_price"))
    if case_price is None:
        # legacy rows only carried "price"
        case_price = _num(row.get("price")) or 0.0

    unit_text = _first(row, "unit")
    case_size_raw = _num(_first(row, "casesize", "caseSize", "case_size"))
    case_size = int(case_size_raw) if case_size_raw is not None else _guess_case_size(unit_text)

    unit_label = str(_first(row, "unitlabel", "unitLabel", "unit_label") or "").strip() or "st"

    unit_price = _num(_first(row, "unitprice", "unitPrice", "unit_price"))
    if unit_price is None:
        unit_price = round(case_price / case_size, 2) if case_size > 0 else 0.0

    unit = str(unit_text or "").strip() or f"{case_size} {unit_label} per {CASE_LABEL}"

    raw_alcohol = _first(row, "hasAlcohol", "has_alcohol")
    alcohol_flag_missing = not isinstance(raw_alcohol, bool)
    has_alcohol = bool(raw_alcohol) if not alcohol_flag_missing else False

    show_in_all = _first(row, "show_in_all", "showInAll")

    product_id = _first(row, "id")
    product = Product(
        id=str(product_id) if product_id is not None else "",
        name=str(_first(row, "name") or "").strip() or "Unnamed product",
        description=str(_first(row, "description") or ""),
        unit_price=float(unit_price),
        case_price=float(case_price),
        case_size=case_size,
        unit_label=unit_label,
        unit=unit,
        category=_normalize_category(_first(row, "category")),
        image=str(_first(row, "image") or ""),
        pricing_mode=PricingMode.parse(_first(row, "pricing_mode", "pricingMode")),
        show_in_all=show_in_all if isinstance(show_in_all, bool) else True,
        has_alcohol=has_alcohol,
        alcohol_percent=_num(_first(row, "alcohol_percent", "alcoholPercent")),
        alcohol_flag_missing=alcohol_flag_missing,
    )
    if alcohol_flag_missing:
        LOGGER.warning(
            "Product has no explicit alcohol flag; treated as alcohol-free",
            extra={"ctx": {"component": "catalog", "product_id": product.id}},
        )
    return product


def product_to_row(product: Product) -> Dict[str, Any]:
    """Map a Product back to DB columns. Non-numeric ids are omitted so the DB assigns one."""
    payload: Dict[str, Any] = {
        "name": product.name,
        "description": product.description,
        "unitprice": product.unit_price,
        "caseprice": product.case_price,
        "casesize": product.case_size,
        "unitlabel": product.unit_label,
        "unit": product.unit,
        "category": product.category,
        "image": product.image,
        "pricing_mode": product.pricing_mode.value,
        "show_in_all": bool(product.show_in_all),
        "hasAlcohol": bool(product.has_alcohol),
        "alcohol_percent": product.alcohol_percent,
    }
    if str(product.id).isdigit():
        payload["id"] = int(product.id)
    return payload


def seed_products() -> List[Product]:
    try:
        return [normalize_product(r) for r in load_seed_catalog()]
    except Exception as e:
        LOGGER.error("Seed catalog failed to load", extra={"ctx": {"component": "catalog", "error": type(e).__name__}})
        return []


# ============================================================
# CATALOG VIEWS
# ============================================================
def filter_products(products: List[Product], tab: str) -> List[Product]:
    if tab == "all":
        return [p for p in products if p.show_in_all]
    if tab == "gallery":
        return [p for p in products if p.image]
    return [p for p in products if p.category == tab]


def find_product(products: List[Product], product_id: str) -> Optional[Product]:
    for p in products:
        if p.id == product_id:
            return p
    return None


# ============================================================
# CART
# ============================================================
def increment(cart: Cart, product_id: str) -> Cart:
    current = int(cart.get(product_id, 0))
    nxt = dict(cart)
    nxt[product_id] = MIN_ORDER_QUANTITY if current == 0 else current + 1
    return nxt


def decrement(cart: Cart, product_id: str) -> Cart:
    current = int(cart.get(product_id, 0))
    if current == 0:
        return dict(cart)
    nxt = dict(cart)
    if current <= MIN_ORDER_QUANTITY:
        nxt.pop(product_id, None)
    else:
        nxt[product_id] = current - 1
    return nxt


def prune_cart(cart: Cart, products: List[Product]) -> Cart:
    ids = {p.id for p in products}
    return {pid: qty for pid, qty in cart.items() if pid in ids and qty > 0}


def cart_lines(cart: Cart, products: List[Product]) -> List[CartLine]:
    lines: List[CartLine] = []
    for pid, qty in cart.items():
        if qty <= 0:
            continue
        product = find_product(products, pid)
        if product is None:
            continue
        lines.append(CartLine(product=product, quantity=int(qty)))
    return lines


def cart_total(cart: Cart, products: List[Product]) -> float:
    return sum(line.line_total for line in cart_lines(cart, products))


def cart_item_count(cart: Cart) -> int:
    return sum(q for q in cart.values() if q > 0)


def cart_has_alcohol(cart: Cart, products: List[Product]) -> bool:
    return any(line.product.has_alcohol for line in cart_lines(cart, products))


def format_price(amount: Optional[float], currency: str = "kr") -> str:
    if amount is None:
        return "-"
    if float(amount).is_integer():
        return f"{int(amount)} {currency}"
    return f"{amount:.2f} {currency}"
