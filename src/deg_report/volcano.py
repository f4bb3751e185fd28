"""
Volcano plot of a ranked DE result table.

Each gene is classified as "Up", "Down" or "No" from its adjusted p-value
and log2 fold change, then drawn as log2FoldChange (x) vs -log10(padj) (y).
The first ``top_n`` genes of the table get text labels, offset so the
label boxes do not overlap each other.

Usage:
    fig = volcano_figure(ranked, alpha=0.05, lfc_threshold=1.0, top_n=20)
    save_volcano_html(fig, "volcano.html")
"""

import logging
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go

logger = logging.getLogger(__name__)

# Colors by classification
COLORS = {
    "No": "#95a5a6",    # Gray
    "Up": "#e74c3c",    # Red
    "Down": "#3498db",  # Blue
}

# Figure margins in pixels; label placement depends on them
MARGIN = dict(l=70, r=30, t=60, b=60)

# Candidate label offsets (ax, ay) in pixels relative to the point, tried in order
LABEL_OFFSETS: List[Tuple[int, int]] = [
    (0, -22), (28, -18), (-28, -18), (36, 0), (-36, 0),
    (28, 18), (-28, 18), (0, 24), (0, -44), (48, -34),
    (-48, -34), (56, 0), (-56, 0), (48, 34), (-48, 34),
    (0, 46), (0, -66), (70, -50), (-70, -50), (0, 68),
]

_CHAR_WIDTH = 7
_LABEL_HEIGHT = 14


def classify_significance(
    table: pd.DataFrame,
    alpha: float,
    lfc_threshold: float,
) -> pd.Series:
    """
    Label each gene "Up", "Down" or "No".

    Both comparisons are strict, so with ``lfc_threshold == 0`` a
    significant gene whose log2 fold change is exactly 0 is "No".
    Missing values compare false and fall through to "No".
    """
    padj = table["padj"].to_numpy(dtype=float)
    lfc = table["log2FoldChange"].to_numpy(dtype=float)
    significant = padj < alpha
    labels = np.select(
        [significant & (lfc > lfc_threshold), significant & (lfc < lfc_threshold)],
        ["Up", "Down"],
        default="No",
    )
    return pd.Series(labels, index=table.index, name="significance")


def neg_log10(padj: pd.Series) -> pd.Series:
    """-log10 of adjusted p-values, with zeros clipped to the smallest positive float."""
    return -np.log10(padj.astype(float).clip(lower=np.finfo(float).tiny))


def _overlap(a: Tuple[float, float, float, float], b: Tuple[float, float, float, float]) -> float:
    """Overlap area of two (x0, y0, x1, y1) boxes."""
    w = min(a[2], b[2]) - max(a[0], b[0])
    h = min(a[3], b[3]) - max(a[1], b[1])
    return w * h if w > 0 and h > 0 else 0.0


def place_labels(
    points: Sequence[Tuple[float, float]],
    texts: Sequence[str],
    x_range: Tuple[float, float],
    y_range: Tuple[float, float],
    plot_width: float,
    plot_height: float,
) -> List[Tuple[int, int]]:
    """
    Choose a pixel offset for each label so the label boxes do not overlap.

    Labels are placed greedily in the given order: each takes the first
    candidate offset whose box is clear of the boxes already placed, or the
    least-overlapping candidate when none is clear.

    Returns:
        List of (ax, ay) offsets for plotly annotations, one per label
    """
    x_span = (x_range[1] - x_range[0]) or 1.0
    y_span = (y_range[1] - y_range[0]) or 1.0

    placed: List[Tuple[float, float, float, float]] = []
    offsets: List[Tuple[int, int]] = []
    for (x, y), text in zip(points, texts):
        px = (x - x_range[0]) / x_span * plot_width
        py = (y_range[1] - y) / y_span * plot_height
        half_w = (len(text) * _CHAR_WIDTH + 4) / 2
        half_h = _LABEL_HEIGHT / 2

        best = None
        for ax, ay in LABEL_OFFSETS:
            cx, cy = px + ax, py + ay
            box = (cx - half_w, cy - half_h, cx + half_w, cy + half_h)
            cost = sum(_overlap(box, other) for other in placed)
            if best is None or cost < best[0]:
                best = (cost, (ax, ay), box)
            if cost == 0:
                break
        placed.append(best[2])
        offsets.append(best[1])
    return offsets


def _padded_range(values: np.ndarray, pad: float = 0.08) -> Tuple[float, float]:
    lo, hi = float(np.min(values)), float(np.max(values))
    span = hi - lo or 1.0
    return lo - span * pad, hi + span * pad


def volcano_figure(
    table: pd.DataFrame,
    alpha: float,
    lfc_threshold: float,
    top_n: int = 20,
    title: str = "Volcano plot",
    height: int = 600,
    width: int = 900,
    template: str = "plotly_white",
) -> go.Figure:
    """
    Create a volcano plot of a ranked result table.

    Args:
        table: Ranked results (gene id index, log2FoldChange and padj columns)
        alpha: Adjusted p-value threshold
        lfc_threshold: Log2 fold change threshold
        top_n: Number of genes, in table order, to label
        title: Chart title
        height: Figure height in pixels
        width: Figure width in pixels
        template: Plotly template

    Returns:
        Plotly Figure object
    """
    if table.empty:
        return _empty_figure("No genes to display", template)

    labels = classify_significance(table, alpha, lfc_threshold)
    x = table["log2FoldChange"].astype(float)
    y = neg_log10(table["padj"])

    fig = go.Figure()
    for status in ("No", "Up", "Down"):
        mask = labels == status
        fig.add_trace(go.Scattergl(
            name=f"{status} ({int(mask.sum())})",
            x=x[mask],
            y=y[mask],
            mode="markers",
            marker=dict(color=COLORS[status], size=6, opacity=0.7),
            text=table.index[mask],
            hovertemplate=(
                "<b>%{text}</b><br>log2FC: %{x:.3f}<br>-log10(padj): %{y:.3f}<extra></extra>"
            ),
        ))

    x_range = _padded_range(x.to_numpy())
    y_range = _padded_range(np.append(y.to_numpy(), 0.0))

    fig.add_vline(x=lfc_threshold, line_dash="dash", line_color="gray", opacity=0.5)
    fig.add_hline(y=-np.log10(alpha), line_dash="dash", line_color="gray", opacity=0.5)

    top = table.head(top_n)
    if not top.empty:
        texts = [str(g) for g in top.index]
        points = list(zip(x.loc[top.index], y.loc[top.index]))
        offsets = place_labels(
            points,
            texts,
            x_range,
            y_range,
            plot_width=width - MARGIN["l"] - MARGIN["r"],
            plot_height=height - MARGIN["t"] - MARGIN["b"],
        )
        for (px, py), text, (ax, ay) in zip(points, texts, offsets):
            fig.add_annotation(
                x=px, y=py, text=text,
                ax=ax, ay=ay,
                showarrow=True, arrowhead=0, arrowwidth=0.8, arrowcolor="#555",
                font=dict(size=11),
            )

    fig.update_layout(
        title=dict(text=title, x=0.5, font=dict(size=18)),
        xaxis=dict(title="log2 fold change", range=list(x_range)),
        yaxis=dict(title="-log10 adjusted p-value", range=list(y_range)),
        template=template,
        height=height,
        width=width,
        margin=MARGIN,
        legend=dict(title="Significance"),
    )
    return fig


def _empty_figure(message: str, template: str = "plotly_white") -> go.Figure:
    """Create an empty figure with a message."""
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        xref="paper", yref="paper",
        x=0.5, y=0.5,
        showarrow=False,
        font=dict(size=16, color="gray"),
    )
    fig.update_layout(
        template=template,
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
    )
    return fig


def volcano_html_div(fig: go.Figure) -> str:
    """Figure as an HTML fragment; the page must load plotly.js itself."""
    return fig.to_html(full_html=False, include_plotlyjs=False)


def save_volcano_html(fig: go.Figure, path: Union[str, Path], include_plotlyjs: Union[bool, str] = "cdn") -> Path:
    """Save the figure as a standalone HTML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(str(path), include_plotlyjs=include_plotlyjs, full_html=True)
    logger.info("Saved volcano plot: %s", path)
    return path
