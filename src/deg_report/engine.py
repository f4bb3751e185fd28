"""
Differential expression engine.

Uses PyDESeq2 (Python implementation of DESeq2) for all statistics.
DESeq2 handles library-size normalization internally via median-of-ratios,
models count data with a negative binomial distribution, shrinks
dispersions, runs Wald tests and applies Benjamini-Hochberg correction.
None of that is reimplemented here: this module only hands the raw
integer counts and the design to PyDESeq2 and returns its result table.

The engine is a collaborator of the pipeline, so anything with a matching
``fit`` method (for example a stub returning a fixed table) can replace it.
"""

import logging
from typing import Optional, Protocol

import pandas as pd
from pydeseq2.dds import DeseqDataSet
from pydeseq2.ds import DeseqStats

from .design import DesignSpecification, apply_design
from .exceptions import ModelFitError

logger = logging.getLogger(__name__)

# DESeq2 result schema, in output order
RESULT_COLUMNS = ["baseMean", "log2FoldChange", "lfcSE", "stat", "pvalue", "padj"]


class DEEngine(Protocol):
    """Anything that can turn counts + design into a per-gene result table."""

    def fit(
        self,
        counts: pd.DataFrame,
        metadata: pd.DataFrame,
        design: DesignSpecification,
        alpha: float,
        lfc_threshold: float,
    ) -> pd.DataFrame:
        ...


class PyDESeq2Engine:
    """
    DESeq2 via PyDESeq2.

    Expects raw integer counts (genes x samples). PyDESeq2 itself wants
    samples x genes, so the matrix is transposed on the way in.
    """

    def __init__(self, refit_cooks: bool = True, quiet: bool = True):
        self.refit_cooks = refit_cooks
        self.quiet = quiet

    def fit(
        self,
        counts: pd.DataFrame,
        metadata: pd.DataFrame,
        design: DesignSpecification,
        alpha: float,
        lfc_threshold: float,
    ) -> pd.DataFrame:
        model_metadata = apply_design(metadata, design)[design.terms]

        logger.info(
            "Running DESeq2: %d genes, %d samples, design %s, contrast %s",
            counts.shape[0],
            counts.shape[1],
            design.formula,
            design.contrast,
        )
        try:
            dds = DeseqDataSet(
                counts=counts.T,
                metadata=model_metadata,
                design=design.formula,
                refit_cooks=self.refit_cooks,
                quiet=self.quiet,
            )
            dds.deseq2()

            stat_res = DeseqStats(
                dds,
                contrast=design.contrast,
                alpha=alpha,
                lfc_null=lfc_threshold,
                # DESeq2's lfcThreshold tests |LFC| > threshold
                alt_hypothesis="greaterAbs" if lfc_threshold > 0 else None,
                quiet=self.quiet,
            )
            stat_res.summary()
        except Exception as exc:
            raise ModelFitError(f"DESeq2 model fitting failed: {exc}") from exc

        results = stat_res.results_df.reindex(columns=RESULT_COLUMNS)
        logger.info("DESeq2 complete: %d genes with results", len(results))
        return results


def filter_low_counts(counts: pd.DataFrame, min_total_count: int) -> pd.DataFrame:
    """Remove genes with fewer than ``min_total_count`` reads across all samples."""
    if min_total_count <= 0:
        return counts
    keep = counts.sum(axis=1) >= min_total_count
    n_removed = int((~keep).sum())
    if n_removed:
        logger.info(
            "Low-count filter: removed %d genes (total count < %d)", n_removed, min_total_count
        )
    return counts.loc[keep]


def fit_differential_expression(
    counts: pd.DataFrame,
    metadata: pd.DataFrame,
    design: DesignSpecification,
    alpha: float,
    lfc_threshold: float,
    engine: Optional[DEEngine] = None,
) -> pd.DataFrame:
    """
    Fit the model and return one result row per gene.

    Args:
        counts: Raw count matrix (genes x samples)
        metadata: Sample metadata aligned with the count columns
        design: Condition factor and optional covariate
        alpha: Significance threshold for adjusted p-values
        lfc_threshold: Minimum log2 fold change under test
        engine: Engine to use (PyDESeq2Engine if None)

    Returns:
        DataFrame indexed by gene id with columns RESULT_COLUMNS, in engine order
    """
    if engine is None:
        engine = PyDESeq2Engine()
    results = engine.fit(counts, metadata, design, alpha, lfc_threshold)
    missing = [c for c in RESULT_COLUMNS if c not in results.columns]
    if missing:
        raise ModelFitError(f"Engine result is missing columns: {missing}")
    return results[RESULT_COLUMNS].rename_axis("gene_id")
