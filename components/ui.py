from __future__ import annotations

import html
from dataclasses import dataclass

import streamlit as st

APP_CSS = """
<style>
.dm-hero { padding: 0.6rem 0 0.4rem 0; border-bottom: 1px solid #e5e7eb; margin-bottom: 1rem; }
.dm-hero h1 { font-size: 1.8rem; margin: 0; }
.dm-subtitle { color: #6b7280; margin: 0.2rem 0 0 0; }
.dm-pill { font-size: 0.8rem; padding: 0.1rem 0.6rem; border-radius: 999px; background: #fef3c7; vertical-align: middle; }
.dm-card { border: 1px solid #e5e7eb; border-radius: 12px; padding: 1rem; margin-bottom: 0.8rem; }
.dm-empty { display: flex; gap: 1rem; align-items: center; color: #4b5563; }
.dm-empty-icon { font-size: 2rem; }
.dm-badge { display: inline-block; font-size: 0.75rem; font-weight: 600; padding: 0.1rem 0.5rem; border-radius: 6px; color: white; }
.dm-badge-alcohol { background: #dc2626; }
.dm-badge-free { background: #059669; }
.dm-callout { border-left: 4px solid #3b82f6; padding: 0.6rem 0.9rem; background: #f8fafc; margin-bottom: 0.8rem; }
.dm-callout-warning { border-color: #f59e0b; }
.dm-callout-error { border-color: #dc2626; }
.dm-callout-success { border-color: #059669; }
</style>
"""


@dataclass(frozen=True)
class StatusTone:
    name: str
    icon: str


STATUS_TONES = {
    "info": StatusTone("info", "ℹ️"),
    "success": StatusTone("success", "✅"),
    "warning": StatusTone("warning", "⚠️"),
    "error": StatusTone("error", "🚨"),
}


def _tone(kind: str) -> StatusTone:
    return STATUS_TONES.get(kind, STATUS_TONES["info"])


def inject_css() -> None:
    st.markdown(APP_CSS, unsafe_allow_html=True)


def render_page_header(title: str, subtitle: str | None = None, tag: str | None = None) -> None:
    tag_html = f"<span class='dm-pill'>{html.escape(tag)}</span>" if tag else ""
    subtitle_html = f"<p class='dm-subtitle'>{html.escape(subtitle)}</p>" if subtitle else ""
    st.markdown(
        f"""
        <div class="dm-hero">
          <h1>🍋 {html.escape(title)} {tag_html}</h1>
          {subtitle_html}
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_callout(title: str, body: str, *, kind: str = "info") -> None:
    tone = _tone(kind)
    st.markdown(
        f"""
        <div class="dm-callout dm-callout-{tone.name}">
          <strong>{tone.icon} {html.escape(title)}</strong>
          <p>{html.escape(body)}</p>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_empty_state(title: str, body: str, *, icon: str = "🧭") -> None:
    st.markdown(
        f"""
        <div class="dm-card dm-empty">
          <div class="dm-empty-icon">{icon}</div>
          <div>
            <h3>{html.escape(title)}</h3>
            <p>{html.escape(body)}</p>
          </div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def alcohol_badge_html(has_alcohol: bool, label: str) -> str:
    cls = "dm-badge-alcohol" if has_alcohol else "dm-badge-free"
    return f"<span class='dm-badge {cls}'>{html.escape(label)}</span>"
