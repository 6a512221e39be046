from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


class PricingMode(str, enum.Enum):
    """How a product is charged: one price per case or one per single unit."""

    PER_CASE = "per_case"
    PER_UNIT = "per_unit"

    @classmethod
    def parse(cls, value: Any, default: Optional["PricingMode"] = None) -> "PricingMode":
        text = str(value or "").strip().lower().replace("-", "_")
        for mode in cls:
            if mode.value == text:
                return mode
        return default or cls.PER_CASE


@dataclass
class Product:
    id: str
    name: str
    description: str = ""
    unit_price: float = 0.0
    case_price: float = 0.0
    case_size: int = 0
    unit_label: str = "st"
    unit: str = ""
    category: str = "lemonade"
    image: str = ""
    pricing_mode: PricingMode = PricingMode.PER_CASE
    show_in_all: bool = True
    has_alcohol: bool = False
    alcohol_percent: Optional[float] = None
    # True when the row carried no explicit alcohol flag and needs a manual check.
    alcohol_flag_missing: bool = False

    @property
    def price_each(self) -> float:
        return self.case_price if self.pricing_mode == PricingMode.PER_CASE else self.unit_price

    @property
    def alcohol_label(self) -> str:
        if not self.has_alcohol:
            return "Alkoholfri"
        if self.alcohol_percent is not None:
            return f"{self.alcohol_percent:g}% Alkohol"
        return "Alkohol"


@dataclass
class CartLine:
    product: Product
    quantity: int

    @property
    def line_total(self) -> float:
        return self.product.price_each * self.quantity


@dataclass
class CustomerInfo:
    company_name: str = ""
    contact_person: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""
    invoice: str = ""
    org_number: str = ""
    delivery_date: str = ""


@dataclass
class PermitFile:
    name: str
    data: bytes
    content_type: str


@dataclass
class OrderDraft:
    customer: CustomerInfo
    lines: List[CartLine]
    signature: str = ""
    permit: Optional[PermitFile] = None

    @property
    def total(self) -> float:
        return sum(line.line_total for line in self.lines)

    @property
    def has_alcohol(self) -> bool:
        return any(line.product.has_alcohol for line in self.lines)


# ============================================================
# DB ROWS (as returned by the backend)
# ============================================================
def _opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _opt_num(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _opt_int(v: Any) -> Optional[int]:
    n = _opt_num(v)
    return int(n) if n is not None else None


@dataclass
class CustomerRow:
    id: int
    company_name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    org_number: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CustomerRow":
        return cls(
            id=int(row.get("id")),
            company_name=_opt_str(row.get("company_name")),
            contact_person=_opt_str(row.get("contact_person")),
            email=_opt_str(row.get("email")),
            phone=_opt_str(row.get("phone")),
            address=_opt_str(row.get("address")),
            org_number=_opt_str(row.get("org_number")),
        )


@dataclass
class OrderRow:
    id: int
    customer_id: Optional[int] = None
    order_number: Optional[str] = None
    order_date: Optional[str] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    total_price: Optional[float] = None
    signature: Optional[str] = None
    permit_url: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderRow":
        return cls(
            id=int(row.get("id")),
            customer_id=_opt_int(row.get("customer_id")),
            order_number=_opt_str(row.get("order_number")),
            order_date=_opt_str(row.get("order_date")),
            delivery_date=_opt_str(row.get("delivery_date")),
            notes=_opt_str(row.get("notes")),
            total_price=_opt_num(row.get("total_price")),
            signature=_opt_str(row.get("signature")),
            permit_url=_opt_str(row.get("permit_url")),
            created_at=_opt_str(row.get("created_at")),
        )


@dataclass
class OrderItemRow:
    order_id: Optional[int] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity: Optional[int] = None
    price_per_case: Optional[float] = None
    case_price: Optional[float] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderItemRow":
        return cls(
            order_id=_opt_int(row.get("order_id")),
            product_id=_opt_str(row.get("product_id")),
            product_name=_opt_str(row.get("product_name")),
            quantity=_opt_int(row.get("quantity")),
            price_per_case=_opt_num(row.get("price_per_case")),
            case_price=_opt_num(row.get("case_price")),
        )


# ============================================================
# JOINED CUSTOMER (orders -> customers embed)
#   The backend returns either one object or a list depending on the
#   relationship it infers. Resolve once at the data-access boundary.
# ============================================================
@dataclass(frozen=True)
class NoCustomer:
    kind: str = "none"

    @property
    def primary(self) -> Optional[CustomerRow]:
        return None


@dataclass(frozen=True)
class SingleCustomer:
    customer: CustomerRow
    kind: str = "single"

    @property
    def primary(self) -> Optional[CustomerRow]:
        return self.customer


@dataclass(frozen=True)
class CustomerList:
    customers: tuple
    kind: str = "list"

    @property
    def primary(self) -> Optional[CustomerRow]:
        return self.customers[0] if self.customers else None


JoinedCustomer = Union[NoCustomer, SingleCustomer, CustomerList]


@dataclass
class OrderRecord:
    order: OrderRow
    customer: JoinedCustomer = field(default_factory=NoCustomer)
    items: List[OrderItemRow] = field(default_factory=list)
