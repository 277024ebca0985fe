"""Optional chart images for PDF exports."""

from __future__ import annotations

import io
import logging
from typing import Optional

try:  # pragma: no cover - optional dependency
    import matplotlib

    matplotlib.use("Agg")  # Ensure headless operation on CI/servers.
    import matplotlib.pyplot as plt
    from matplotlib.ticker import StrMethodFormatter
except Exception:  # pragma: no cover - matplotlib unavailable or misconfigured
    plt = None  # type: ignore
    StrMethodFormatter = None  # type: ignore

from .reporting import MonthlySeries

logger = logging.getLogger(__name__)


def charts_available() -> bool:
    return plt is not None


def monthly_bar_chart(series: MonthlySeries, title: str, dpi: int = 140) -> Optional[bytes]:
    """Render ``series`` as a PNG bar chart; ``None`` when matplotlib is missing or nothing was billed."""

    if plt is None:
        return None
    if not any(bucket.amount for bucket in series.buckets):
        return None

    labels = [bucket.period for bucket in series.buckets]
    amounts = [bucket.amount for bucket in series.buckets]
    fig, ax = plt.subplots(figsize=(8, 3), dpi=dpi)
    try:
        ax.bar(labels, amounts, color="#3b82f6", edgecolor="white")
        ax.set_title(title)
        ax.set_ylabel("Final cost")
        ax.yaxis.set_major_formatter(StrMethodFormatter("$ {x:,.0f}"))
        ax.grid(True, axis="y", linestyle="--", alpha=0.3)
        fig.tight_layout()
        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)
    logger.debug("rendered chart %r (%d buckets)", title, len(labels))
    return buffer.getvalue()


__all__ = ["charts_available", "monthly_bar_chart"]
