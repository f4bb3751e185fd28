"""Unit tests for significance classification and the volcano plot."""

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from conftest import make_results
from deg_report.results import rank_results
from deg_report.volcano import (
    classify_significance,
    neg_log10,
    place_labels,
    save_volcano_html,
    volcano_figure,
)


def _table(lfc, padj):
    return pd.DataFrame(
        {"log2FoldChange": lfc, "padj": padj},
        index=[f"G{i}" for i in range(len(lfc))],
    )


class TestClassifySignificance:

    def test_zero_fold_change_at_zero_threshold_is_no(self):
        labels = classify_significance(_table([0.0], [0.1]), alpha=0.2, lfc_threshold=0.0)
        assert labels.iloc[0] == "No"

    def test_up_down_no(self):
        table = _table([2.0, -2.0, 2.0, 0.5], [0.01, 0.01, 0.5, 0.01])
        labels = classify_significance(table, alpha=0.05, lfc_threshold=1.0)
        # below the threshold (not its negative) counts as Down
        assert list(labels) == ["Up", "Down", "No", "Down"]

    def test_threshold_boundaries_are_strict(self):
        table = _table([1.0, 1.5], [0.05, 0.049])
        labels = classify_significance(table, alpha=0.05, lfc_threshold=1.0)
        assert list(labels) == ["No", "Up"]

    def test_missing_values_are_no(self):
        table = _table([np.nan, 3.0], [0.01, np.nan])
        labels = classify_significance(table, alpha=0.05, lfc_threshold=0.0)
        assert list(labels) == ["No", "No"]

    def test_index_preserved(self):
        table = _table([1.0, -1.0], [0.01, 0.01])
        assert list(classify_significance(table, 0.05, 0.0).index) == ["G0", "G1"]


class TestNegLog10:

    def test_values(self):
        result = neg_log10(pd.Series([0.1, 0.01, 1.0]))
        assert np.allclose(result, [1.0, 2.0, 0.0])

    def test_zero_stays_finite(self):
        assert np.isfinite(neg_log10(pd.Series([0.0])).iloc[0])


class TestPlaceLabels:

    def test_coincident_points_get_distinct_offsets(self):
        points = [(0.0, 1.0)] * 4
        offsets = place_labels(points, ["AAAA"] * 4, (-1, 1), (0, 2), 800, 500)
        assert len(set(offsets)) == 4

    def test_isolated_label_takes_first_offset(self):
        offsets = place_labels([(0.0, 1.0)], ["TP53"], (-1, 1), (0, 2), 800, 500)
        assert offsets == [(0, -22)]


class TestVolcanoFigure:

    def test_traces_and_labels(self, engine_results):
        ranked = rank_results(engine_results)
        fig = volcano_figure(ranked, alpha=0.05, lfc_threshold=1.0, top_n=2)

        assert isinstance(fig, go.Figure)
        assert [t.name for t in fig.data] == ["No (1)", "Up (1)", "Down (1)"]
        labeled = [a.text for a in fig.layout.annotations]
        assert labeled == ["GENE_B", "GENE_A"]

    def test_colors(self, engine_results):
        fig = volcano_figure(rank_results(engine_results), 0.05, 1.0)
        colors = {t.name.split()[0]: t.marker.color for t in fig.data}
        assert colors == {"No": "#95a5a6", "Up": "#e74c3c", "Down": "#3498db"}

    def test_top_n_larger_than_table(self, engine_results):
        fig = volcano_figure(rank_results(engine_results), 0.05, 1.0, top_n=20)
        assert len(fig.layout.annotations) == 3

    def test_no_labels(self, engine_results):
        fig = volcano_figure(rank_results(engine_results), 0.05, 1.0, top_n=0)
        assert len(fig.layout.annotations) == 0

    def test_y_is_neg_log10_padj(self):
        table = make_results([("G1", 10.0, 2.0, 0.1, 5.0, 1e-5, 1e-4)])
        fig = volcano_figure(table, 0.05, 0.0)
        up = [t for t in fig.data if t.name.startswith("Up")][0]
        assert np.isclose(up.y[0], 4.0)
        assert np.isclose(up.x[0], 2.0)

    def test_empty_table(self):
        table = make_results([]).iloc[0:0]
        fig = volcano_figure(table, 0.05, 0.0)
        assert len(fig.data) == 0

    def test_save_html(self, tmp_path, engine_results):
        fig = volcano_figure(rank_results(engine_results), 0.05, 1.0)
        path = save_volcano_html(fig, tmp_path / "plots" / "volcano.html")
        assert path.exists()
        assert "GENE_A" in path.read_text()
