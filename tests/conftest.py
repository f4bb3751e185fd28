"""Shared fixtures: small count/metadata inputs and a stub DE engine."""

import numpy as np
import pandas as pd
import pytest

from deg_report.engine import RESULT_COLUMNS


class StubEngine:
    """Returns a fixed result table and records each call."""

    def __init__(self, results: pd.DataFrame):
        self.results = results
        self.calls = []

    def fit(self, counts, metadata, design, alpha, lfc_threshold):
        self.calls.append(
            {
                "counts": counts,
                "metadata": metadata,
                "design": design,
                "alpha": alpha,
                "lfc_threshold": lfc_threshold,
            }
        )
        return self.results.copy()


def make_results(rows):
    """Build an engine result table from (gene, baseMean, lfc, lfcSE, stat, pvalue, padj) tuples."""
    genes = [r[0] for r in rows]
    data = [r[1:] for r in rows]
    return pd.DataFrame(data, index=genes, columns=RESULT_COLUMNS, dtype=float)


@pytest.fixture
def counts_df():
    return pd.DataFrame(
        {
            "S1": [10, 200, 5],
            "S2": [12, 180, 7],
            "S3": [40, 20, 6],
            "S4": [45, 25, 4],
        },
        index=["GENE_A", "GENE_B", "GENE_C"],
    )


@pytest.fixture
def metadata_df():
    return pd.DataFrame(
        {
            "condition": ["control", "control", "treated", "treated"],
            "batch": ["b1", "b2", "b1", "b2"],
        },
        index=["S1", "S2", "S3", "S4"],
    )


@pytest.fixture
def input_files(tmp_path, counts_df, metadata_df):
    """Write the fixture inputs as tab-delimited files."""
    count_path = tmp_path / "counts.tsv"
    meta_path = tmp_path / "metadata.tsv"
    counts_df.to_csv(count_path, sep="\t", index_label="gene_id")
    metadata_df.to_csv(meta_path, sep="\t", index_label="sample")
    return count_path, meta_path


@pytest.fixture
def engine_results():
    """Three genes in engine order, deliberately not sorted by padj."""
    return make_results(
        [
            ("GENE_A", 26.7, 1.9, 0.4, 4.75, 2e-6, 6e-6),
            ("GENE_B", 106.2, -2.9, 0.5, -5.8, 6e-9, 1.8e-8),
            ("GENE_C", 5.5, 0.1, 0.9, 0.11, 0.91, 0.91),
        ]
    )


@pytest.fixture
def stub_engine(engine_results):
    return StubEngine(engine_results)


@pytest.fixture
def random_results():
    rng = np.random.default_rng(0)
    n = 50
    padj = rng.uniform(0, 1, n)
    padj[::7] = np.nan
    return pd.DataFrame(
        {
            "baseMean": rng.uniform(1, 1000, n),
            "log2FoldChange": rng.normal(0, 2, n),
            "lfcSE": rng.uniform(0.1, 1, n),
            "stat": rng.normal(0, 3, n),
            "pvalue": rng.uniform(0, 1, n),
            "padj": padj,
        },
        index=[f"GENE{i}" for i in range(n)],
    )
