"""
Report pipeline orchestrator.

Runs the stages in order: load inputs, build the design, fit the model,
rank and persist the results, render the report. Each stage consumes the
previous stage's output and any failure aborts the run; the results CSV is
only written once the engine has returned a complete table.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from .config import ReportConfig
from .design import DesignSpecification, build_design
from .engine import DEEngine, filter_low_counts, fit_differential_expression
from .loader import load
from .report import DEGReport
from .results import ResultSummary, format_and_persist, summarize_results
from .volcano import volcano_figure, volcano_html_div

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    """Outputs of one report run."""

    config: ReportConfig
    design: DesignSpecification
    ranked: pd.DataFrame
    summary: ResultSummary
    results_path: Path
    report_path: Path
    summary_path: Path

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "parameters": self.config.to_dict(),
            "design": {
                "formula": self.design.formula,
                "levels": self.design.levels,
                "contrast": self.design.contrast,
            },
            "summary": self.summary.to_dict(),
            "outputs": {
                "results": str(self.results_path),
                "report": str(self.report_path),
            },
        }


def render_report(
    config: ReportConfig,
    design: DesignSpecification,
    ranked: pd.DataFrame,
    summary: ResultSummary,
) -> Path:
    """Write the HTML report for a ranked table. Returns the report path."""
    report = DEGReport(
        title=config.title,
        parameters=config.to_dict(),
        page_length=config.table_page_length,
    )
    report.set_summary(summary)
    report.set_results_table(ranked)
    report.add_provenance("design formula", design.formula)
    report.add_provenance("contrast", design.contrast)

    if config.plot_volcano:
        fig = volcano_figure(
            ranked,
            alpha=config.alpha,
            lfc_threshold=config.lfc_threshold,
            top_n=config.top_genes,
            title=f"{design.treatment_level} vs {design.control_level}",
        )
        report.add_visualization("Volcano plot", volcano_html_div(fig))

    path = report.save(config.report_path)
    logger.info("Wrote report to %s", path)
    return path


def run_report(config: ReportConfig, engine: Optional[DEEngine] = None) -> ReportResult:
    """
    Run the full differential expression report.

    Args:
        config: Validated report configuration
        engine: Statistical engine (PyDESeq2 if None)

    Returns:
        ReportResult with the ranked table, summary and output paths
    """
    counts, metadata = load(config.data_file, config.metadata_file)

    design = build_design(
        metadata,
        condition_column=config.condition_column,
        control_label=config.control_group,
        treatment_label=config.treatment_group,
        covariate=config.covariate,
    )

    counts = filter_low_counts(counts, config.min_total_count)
    results = fit_differential_expression(
        counts,
        metadata,
        design,
        alpha=config.alpha,
        lfc_threshold=config.lfc_threshold,
        engine=engine,
    )

    ranked = format_and_persist(results, config.output_dir)
    summary = summarize_results(
        ranked, config.alpha, config.lfc_threshold, genes_tested=len(results)
    )
    logger.info(
        "%d genes reported: %d up, %d down",
        summary.genes_reported,
        summary.n_upregulated,
        summary.n_downregulated,
    )

    report_path = render_report(config, design, ranked, summary)

    result = ReportResult(
        config=config,
        design=design,
        ranked=ranked,
        summary=summary,
        results_path=config.results_path,
        report_path=report_path,
        summary_path=config.summary_path,
    )
    with config.summary_path.open("w", encoding="utf-8") as fh:
        json.dump(result.to_dict(), fh, indent=2)
    return result
