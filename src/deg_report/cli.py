from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from deg_report.config import load_config
from deg_report.exceptions import DEGReportError
from deg_report.pipeline import run_report
from deg_report.results import read_results
from deg_report.volcano import save_volcano_html, volcano_figure


@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def cli(verbose: bool) -> None:
    """Differential expression report: DESeq2 results table and volcano plot."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)


@cli.command("run")
@click.option(
    "--params",
    "params_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with report parameters. Command-line options take precedence.",
)
@click.option(
    "--data-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Tab-delimited count matrix (genes x samples).",
)
@click.option(
    "--metadata-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Tab-delimited sample metadata (one row per sample).",
)
@click.option("--condition-column", type=str, help="Metadata column holding the condition.")
@click.option("--covariate", type=str, help="Optional metadata column added to the design.")
@click.option("--control-group", type=str, help="Condition label of the control group.")
@click.option("--treatment-group", type=str, help="Condition label of the treatment group.")
@click.option("--alpha", type=float, help="Adjusted p-value threshold.  [default: 0.05]")
@click.option("--lfc-threshold", type=float, help="Log2 fold change threshold.  [default: 0]")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for DEG_results.csv and the report.  [default: results]",
)
@click.option(
    "--plot-volcano/--no-plot-volcano",
    default=None,
    help="Include the volcano plot in the report.  [default: on]",
)
@click.option("--top-genes", type=click.IntRange(min=0), help="Genes to label on the volcano plot.  [default: 20]")
@click.option(
    "--min-total-count",
    type=click.IntRange(min=0),
    help="Drop genes with fewer total counts before fitting.  [default: 0]",
)
def run_command(params_file: Optional[Path], **options) -> None:
    """Run the differential expression report."""
    try:
        config = load_config(params_file, **options)
        result = run_report(config)
    except (DEGReportError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    s = result.summary
    click.echo(f"Design: {result.design.formula}")
    click.echo(
        f"Genes reported: {s.genes_reported:,} of {s.genes_tested:,} tested "
        f"({s.n_upregulated:,} up, {s.n_downregulated:,} down)"
    )
    click.echo(f"Results: {result.results_path}")
    click.echo(f"Report:  {result.report_path}")


@cli.command("volcano")
@click.argument("results_csv", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--alpha", type=float, default=0.05, show_default=True, help="Adjusted p-value threshold.")
@click.option("--lfc-threshold", type=float, default=0.0, show_default=True, help="Log2 fold change threshold.")
@click.option("--top-genes", type=click.IntRange(min=0), default=20, show_default=True, help="Genes to label.")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("volcano.html"),
    show_default=True,
    help="Output HTML file.",
)
def volcano_command(
    results_csv: Path,
    alpha: float,
    lfc_threshold: float,
    top_genes: int,
    output: Path,
) -> None:
    """Render a standalone volcano plot from a DEG_results.csv file."""
    try:
        table = read_results(results_csv)
    except (ValueError, OSError) as exc:
        raise click.ClickException(str(exc)) from exc

    fig = volcano_figure(table, alpha=alpha, lfc_threshold=lfc_threshold, top_n=top_genes)
    save_volcano_html(fig, output)
    click.echo(f"Saved: {output}")


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
