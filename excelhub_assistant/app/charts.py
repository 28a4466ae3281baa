"""
Chart placeholder resolution.

Rationale:
- Answers may contain [CHART:<type>] markers; each one becomes an illustrative
  Chart.js configuration from a fixed table.
- The table is static sample data built once at import. No user data flows
  into a chart.
"""

import copy
import logging
import re
from types import MappingProxyType
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CHART_PLACEHOLDER = re.compile(r"\[CHART:(.*?)\]")
DEFAULT_CHART = "default"

_PALETTE = [
    (102, 126, 234),
    (118, 75, 162),
    (255, 99, 132),
    (54, 162, 235),
    (255, 206, 86),
]


def _rgba(rgb, alpha) -> str:
    r, g, b = rgb
    return f"rgba({r}, {g}, {b}, {alpha})"


def _options(title: str) -> Dict[str, Any]:
    return {
        "responsive": True,
        "maintainAspectRatio": False,
        "plugins": {"title": {"display": True, "text": title}},
    }


def _build_specs() -> Dict[str, Dict[str, Any]]:
    months = ["January", "February", "March", "April", "May"]
    products = ["Product A", "Product B", "Product C", "Product D"]
    return {
        "bar": {
            "type": "bar",
            "data": {
                "labels": months,
                "datasets": [{
                    "label": "Sales Data",
                    "data": [65, 59, 80, 81, 56],
                    "backgroundColor": [_rgba(c, 0.7) for c in _PALETTE],
                    "borderColor": [_rgba(c, 1) for c in _PALETTE],
                    "borderWidth": 1,
                }],
            },
            "options": _options("Sample Sales Data"),
        },
        "line": {
            "type": "line",
            "data": {
                "labels": months,
                "datasets": [{
                    "label": "Revenue",
                    "data": [65, 59, 80, 81, 56],
                    "borderColor": _rgba(_PALETTE[0], 1),
                    "backgroundColor": _rgba(_PALETTE[0], 0.1),
                    "tension": 0.3,
                    "fill": True,
                }],
            },
            "options": _options("Monthly Revenue Trend"),
        },
        "pie": {
            "type": "pie",
            "data": {
                "labels": products,
                "datasets": [{
                    "data": [30, 25, 20, 25],
                    "backgroundColor": [_rgba(c, 0.7) for c in _PALETTE[:4]],
                    "borderColor": [_rgba(c, 1) for c in _PALETTE[:4]],
                    "borderWidth": 1,
                }],
            },
            "options": _options("Product Distribution"),
        },
        DEFAULT_CHART: {
            "type": "bar",
            "data": {
                "labels": ["Q1", "Q2", "Q3", "Q4"],
                "datasets": [{
                    "label": "Quarterly Data",
                    "data": [25, 30, 35, 40],
                    "backgroundColor": _rgba(_PALETTE[0], 0.7),
                    "borderColor": _rgba(_PALETTE[0], 1),
                    "borderWidth": 1,
                }],
            },
            "options": _options("Quarterly Performance"),
        },
    }


CHART_SPECS = MappingProxyType(_build_specs())


def chart_key(keyword: Optional[str]) -> str:
    """Table key for a placeholder keyword: case-insensitive, unknown -> default."""
    key = (keyword or "").strip().lower()
    return key if key in CHART_SPECS else DEFAULT_CHART


def resolve_chart(keyword: Optional[str]) -> Dict[str, Any]:
    """Return a private copy of the chart configuration for `keyword`."""
    key = chart_key(keyword)
    logger.debug(f"Resolved chart placeholder {keyword!r} -> {key}")
    return copy.deepcopy(CHART_SPECS[key])


def find_placeholder(text: str) -> Optional[str]:
    """Keyword of the first [CHART:<type>] marker in `text`, or None."""
    match = CHART_PLACEHOLDER.search(text or "")
    return match.group(1) if match else None
