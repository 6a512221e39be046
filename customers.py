"""Customer grouping and admin exports.

Order submissions upsert customers on (email, company_name), so the same company
can own several customer rows (one per contact email, spelling variants of the
name). Admin views collapse those rows by a normalized company name.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pandas as pd

from config import UNNAMED_CUSTOMER
from models import CustomerRow, OrderItemRow, OrderRecord, OrderRow

_LEGAL_SUFFIXES = ("ab", "hb", "kb")


def normalize_company_name(name: Optional[str]) -> str:
    s = unicodedata.normalize("NFKC", name or "").casefold()
    s = re.sub(r"[^\w\s]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    parts = s.split(" ")
    if len(parts) > 1 and parts[-1] in _LEGAL_SUFFIXES:
        parts = parts[:-1]
    if len(parts) > 1 and parts[0] in _LEGAL_SUFFIXES:
        parts = parts[1:]
    return " ".join(p for p in parts if p)


@dataclass
class CustomerGroup:
    key: str
    display_name: str
    customers: List[CustomerRow] = field(default_factory=list)

    @property
    def customer_ids(self) -> List[int]:
        return [c.id for c in self.customers]

    @property
    def contacts(self) -> List[str]:
        out: List[str] = []
        for c in self.customers:
            label = " • ".join(x for x in (c.contact_person, c.email) if x)
            if label and label not in out:
                out.append(label)
        return out


def group_customers(customers: Iterable[CustomerRow]) -> List[CustomerGroup]:
    """Collapse customer rows sharing a normalized company name, sorted by display name.

    The first row seen for a key provides the display name; rows keep input order.
    """
    groups: Dict[str, CustomerGroup] = {}
    for c in customers:
        key = normalize_company_name(c.company_name)
        if key not in groups:
            display = (c.company_name or "").strip() or UNNAMED_CUSTOMER
            groups[key] = CustomerGroup(key=key, display_name=display)
        if all(existing.id != c.id for existing in groups[key].customers):
            groups[key].customers.append(c)
    return sorted(groups.values(), key=lambda g: (g.key == "", g.display_name.casefold()))


def groups_to_dataframe(groups: List[CustomerGroup]) -> pd.DataFrame:
    rows = []
    for g in groups:
        first = g.customers[0] if g.customers else None
        rows.append({
            "company": g.display_name,
            "customer_ids": ", ".join(str(i) for i in g.customer_ids),
            "contacts": "; ".join(g.contacts),
            "phone": (first.phone if first else None) or "",
            "address": (first.address if first else None) or "",
            "org_number": (first.org_number if first else None) or "",
        })
    return pd.DataFrame(rows, columns=["company", "customer_ids", "contacts", "phone", "address", "org_number"])


ORDER_EXPORT_COLUMNS = [
    "order_number", "order_date", "delivery_date", "company", "contact_person", "email",
    "phone", "address", "product_name", "quantity", "price_per_case", "line_total",
    "order_total", "notes", "permit_url", "has_signature",
]


def orders_to_dataframe(records: List[OrderRecord]) -> pd.DataFrame:
    """One row per order item; orders without items still produce one row."""
    rows = []
    for rec in records:
        o: OrderRow = rec.order
        c = rec.customer.primary
        base = {
            "order_number": o.order_number or f"#{o.id}",
            "order_date": o.order_date or "",
            "delivery_date": o.delivery_date or "",
            "company": (c.company_name if c else None) or UNNAMED_CUSTOMER,
            "contact_person": (c.contact_person if c else None) or "",
            "email": (c.email if c else None) or "",
            "phone": (c.phone if c else None) or "",
            "address": (c.address if c else None) or "",
            "order_total": o.total_price,
            "notes": o.notes or "",
            "permit_url": o.permit_url or "",
            "has_signature": bool(o.signature),
        }
        items: List[OrderItemRow] = rec.items or [OrderItemRow()]
        for it in items:
            qty = it.quantity or 0
            price = it.price_per_case
            rows.append({
                **base,
                "product_name": it.product_name or "",
                "quantity": qty,
                "price_per_case": price,
                "line_total": (price * qty) if price is not None else None,
            })
    return pd.DataFrame(rows, columns=ORDER_EXPORT_COLUMNS)


def export_csv(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8-sig")


def export_orders_csv(records: List[OrderRecord]) -> bytes:
    return export_csv(orders_to_dataframe(records))
