import sys
from pathlib import Path

import pytest

# Ensure the `leadmap` package is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PLACE_HREF = (
    "/maps/place/Acme+Dental/@12.9716,77.5946,17z/data=!4m6!3m5!1s0x1a:0x2b3c!8m2!3d12.9720!4d77.5950"
)


def build_card(
    name="Acme Dental",
    href=DEFAULT_PLACE_HREF,
    rating="4.5",
    reviews="(1,234)",
    fragments=(),
    links=(),
    card_class="Nv2PK",
):
    """Render a result card roughly shaped like the Google Maps sidebar markup."""
    parts = [f'<div class="{card_class}">']
    if href is not None:
        label = f' aria-label="{name}"' if name else ""
        parts.append(f'<a class="hfpxzc"{label} href="{href}"></a>')
    if name:
        parts.append(f'<div class="qBF1Pd fontHeadlineSmall">{name}</div>')
    if rating:
        parts.append(f'<span class="MW4etd">{rating}</span>')
    if reviews:
        parts.append(f'<span class="UY7F9">{reviews}</span>')
    if fragments:
        spans = "".join(f"<span>{text}</span>" for text in fragments)
        parts.append(f'<div class="W4Efsd">{spans}</div>')
    for link in links:
        parts.append(f'<a href="{link}">Website</a>')
    parts.append("</div>")
    return "".join(parts)


def build_feed(*cards, end_marker=False):
    body = "".join(cards)
    marker = '<div class="HlvSq">You\'ve reached the end of the list.</div>' if end_marker else ""
    return f'<html><body><div role="feed">{body}</div>{marker}</body></html>'


def place_href(hex_suffix, name="Place"):
    return f"/maps/place/{name}/data=!4m6!3m5!1s0x1a:0x{hex_suffix}!8m2!3d12.9!4d77.5"


@pytest.fixture
def make_card():
    return build_card


@pytest.fixture
def make_feed():
    return build_feed


@pytest.fixture
def make_href():
    return place_href
