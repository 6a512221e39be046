from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import streamlit as st

from auth import AdminSession
from catalog import prune_cart
from models import Product
from signature_pad import SignaturePad

VIEWS = ("catalog", "order", "success", "admin_login", "admin")

_SESSION_KEY = "shop_session"


@dataclass
class ShopSession:
    """Everything one browser session owns. Pages receive it explicitly."""

    view: str = "catalog"
    cart: Dict[str, int] = field(default_factory=dict)
    admin: AdminSession = field(default_factory=AdminSession)
    signature_pad: SignaturePad = field(default_factory=SignaturePad)
    signature_value: str = ""
    canvas_nonce: int = 0
    # order form widgets (permit upload) are keyed on this, never on canvas_nonce
    form_nonce: int = 0
    last_order_number: str = ""
    last_email_sent: bool = False

    def go(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        if view == "admin" and not self.admin.authorized:
            view = "admin_login"
        if self.view == "order" and view != "order":
            # the canvas is rebuilt empty next time, so the signature goes with it
            self.reset_signature()
        self.view = view

    @property
    def permit_key(self) -> str:
        return f"f_permit_{self.form_nonce}"

    @property
    def canvas_key(self) -> str:
        return f"signature_canvas_{self.canvas_nonce}"

    def set_signature(self, value: str) -> None:
        self.signature_value = value

    def clear_signature(self) -> None:
        self.signature_pad.clear()
        self.canvas_nonce += 1

    def reset_signature(self) -> None:
        self.signature_pad = SignaturePad(on_change=self.set_signature)
        self.signature_value = ""
        self.canvas_nonce += 1

    def sync_cart(self, products: List[Product]) -> None:
        if products:
            self.cart = prune_cart(self.cart, products)

    def finish_order(self, order_number: str, email_sent: bool) -> None:
        self.last_order_number = order_number
        self.last_email_sent = email_sent
        self.cart = {}
        self.form_nonce += 1
        self.go("success")

    def start_new_order(self) -> None:
        self.cart = {}
        self.reset_signature()
        self.form_nonce += 1
        self.last_order_number = ""
        self.last_email_sent = False
        self.view = "catalog"


def get_shop_session(store: Optional[dict] = None) -> ShopSession:
    store = st.session_state if store is None else store
    sess = store.get(_SESSION_KEY)
    if not isinstance(sess, ShopSession):
        sess = ShopSession()
        sess.signature_pad.bind(sess.set_signature)
        store[_SESSION_KEY] = sess
    return sess
