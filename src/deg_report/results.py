"""
Ranking and persistence of the per-gene result table.

The ranked table is sorted ascending by adjusted p-value (stable, so ties
keep engine order) and contains no rows with missing statistics: a gene the
engine could not test is left out of the report entirely.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .engine import RESULT_COLUMNS
from .volcano import classify_significance

logger = logging.getLogger(__name__)

RESULTS_FILENAME = "DEG_results.csv"
ID_COLUMN = "gene_id"


def rank_results(results: pd.DataFrame) -> pd.DataFrame:
    """Sort by padj (stable) and drop rows with any missing value."""
    ranked = results.sort_values("padj", ascending=True, kind="mergesort", na_position="last")
    n_before = len(ranked)
    ranked = ranked.dropna(how="any")
    n_dropped = n_before - len(ranked)
    if n_dropped:
        logger.info("Dropped %d genes with missing statistics", n_dropped)
    return ranked.rename_axis(ID_COLUMN)


def write_results(table: pd.DataFrame, output_dir: Union[str, Path]) -> Path:
    """
    Write the ranked table to ``output_dir/DEG_results.csv`` at full precision.

    The gene id is written as an explicit ``gene_id`` column.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / RESULTS_FILENAME
    table.to_csv(path, index=True, index_label=ID_COLUMN)
    logger.info("Wrote %d ranked genes to %s", len(table), path)
    return path


def format_and_persist(results: pd.DataFrame, output_dir: Union[str, Path]) -> pd.DataFrame:
    """Rank the engine results and write them to disk. Returns the ranked table."""
    ranked = rank_results(results)
    write_results(ranked, output_dir)
    return ranked


def read_results(path: Union[str, Path]) -> pd.DataFrame:
    """Read a persisted results CSV back into a gene-indexed table."""
    table = pd.read_csv(
        path, index_col=ID_COLUMN, dtype={ID_COLUMN: str}, float_precision="round_trip"
    )
    table.index = table.index.astype(str)
    missing = [c for c in RESULT_COLUMNS if c not in table.columns]
    if missing:
        raise ValueError(f"{path} is missing result columns: {missing}")
    return table[RESULT_COLUMNS]


@dataclass
class ResultSummary:
    """Gene counts for a ranked result table."""

    genes_tested: int
    genes_reported: int
    n_upregulated: int
    n_downregulated: int
    alpha: float
    lfc_threshold: float

    @property
    def n_significant(self) -> int:
        return self.n_upregulated + self.n_downregulated

    def to_dict(self) -> dict:
        return {
            "genes_tested": self.genes_tested,
            "genes_reported": self.genes_reported,
            "n_upregulated": self.n_upregulated,
            "n_downregulated": self.n_downregulated,
            "n_significant": self.n_significant,
            "thresholds": {"alpha": self.alpha, "lfc": self.lfc_threshold},
        }


def summarize_results(
    ranked: pd.DataFrame,
    alpha: float,
    lfc_threshold: float,
    genes_tested: Optional[int] = None,
) -> ResultSummary:
    """Count reported genes and Up/Down calls under the volcano classification."""
    labels = classify_significance(ranked, alpha, lfc_threshold)
    return ResultSummary(
        genes_tested=len(ranked) if genes_tested is None else genes_tested,
        genes_reported=len(ranked),
        n_upregulated=int((labels == "Up").sum()),
        n_downregulated=int((labels == "Down").sum()),
        alpha=alpha,
        lfc_threshold=lfc_threshold,
    )
