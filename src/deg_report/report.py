"""
HTML report for a differential expression run.

Produces a single self-contained HTML file with the run parameters, a
summary, the ranked result table as an interactive DataTables view
(client-side search, paging and scrolling) and, optionally, the volcano
plot. Scripts are loaded from CDNs.

Usage:
    report = DEGReport(title="Treated vs control", parameters=config.to_dict())
    report.set_summary(summary)
    report.set_results_table(ranked)
    report.add_visualization("Volcano plot", volcano_html_div(fig))
    report.save("results/DEG_report.html")
"""

import html
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from plotly.offline import get_plotlyjs_version

from .results import ID_COLUMN, ResultSummary

DISPLAY_DECIMALS = 3
DEFAULT_PAGE_LENGTH = 100

DATATABLES_CSS = "https://cdn.datatables.net/1.13.8/css/jquery.dataTables.min.css"
JQUERY_JS = "https://code.jquery.com/jquery-3.7.1.min.js"
DATATABLES_JS = "https://cdn.datatables.net/1.13.8/js/jquery.dataTables.min.js"
# plotly.js matching the installed plotly, which decides how figure data is encoded
PLOTLY_JS = f"https://cdn.plot.ly/plotly-{get_plotlyjs_version()}.min.js"


def results_table_html(
    table: pd.DataFrame,
    table_id: str = "deg-table",
    decimals: int = DISPLAY_DECIMALS,
) -> str:
    """
    Render the ranked table as an HTML <table> for DataTables.

    Numeric columns are rounded for display only; the table passed in is
    not modified.
    """
    display = table.reset_index()
    display.columns = [ID_COLUMN] + list(display.columns[1:])
    numeric_cols = {
        i for i, dt in enumerate(display.dtypes) if np.issubdtype(dt, np.number)
    }
    display = display.round(decimals)

    thead = "<tr>" + "".join(f"<th>{html.escape(str(c))}</th>" for c in display.columns) + "</tr>"
    body_rows = []
    for row in display.itertuples(index=False):
        tds = []
        for ci, val in enumerate(row):
            sval = "" if pd.isna(val) else html.escape(str(val))
            cell_class = ' class="num"' if ci in numeric_cols else ""
            tds.append(f"<td{cell_class}>{sval}</td>")
        body_rows.append("<tr>" + "".join(tds) + "</tr>")
    tbody = "\n".join(body_rows)

    return (
        f'<table id="{table_id}" class="display compact nowrap" style="width:100%">'
        f"<thead>{thead}</thead><tbody>\n{tbody}\n</tbody></table>"
    )


class DEGReport:
    """Builder for the HTML report of one DE run."""

    def __init__(
        self,
        title: str,
        parameters: Optional[Dict[str, Any]] = None,
        page_length: int = DEFAULT_PAGE_LENGTH,
    ):
        self.title = title
        self.parameters: Dict[str, Any] = dict(parameters or {})
        self.page_length = page_length
        self.summary: Optional[ResultSummary] = None
        self.table_html: Optional[str] = None
        self.visualizations: List[Dict[str, str]] = []
        self.provenance: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def set_summary(self, summary: ResultSummary) -> "DEGReport":
        self.summary = summary
        return self

    def set_results_table(self, table: pd.DataFrame) -> "DEGReport":
        """Set the ranked result table shown in the interactive view."""
        self.table_html = results_table_html(table)
        return self

    def add_visualization(self, title: str, html_fragment: str) -> "DEGReport":
        """Add an embedded Plotly chart."""
        self.visualizations.append({"title": title, "html": html_fragment})
        return self

    def add_provenance(self, key: str, value: Any) -> "DEGReport":
        self.provenance[key] = value
        return self

    def save(self, filepath: Union[str, Path]) -> Path:
        """Render and save the HTML report. Returns the path written."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        return path

    def render(self) -> str:
        """Render the full HTML report."""
        plotly_script = f'<script src="{PLOTLY_JS}"></script>' if self.visualizations else ""
        return f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(self.title)}</title>
    <link rel="stylesheet" href="{DATATABLES_CSS}">
    <script src="{JQUERY_JS}"></script>
    <script src="{DATATABLES_JS}"></script>
    {plotly_script}
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
            background: #f8f9fa;
            color: #2c3e50;
            line-height: 1.5;
            padding: 0 20px 40px;
            max-width: 1200px;
            margin: 0 auto;
        }}
        header {{
            text-align: center;
            padding: 32px 0 16px;
            border-bottom: 2px solid #e9ecef;
            margin-bottom: 24px;
        }}
        section {{
            background: white;
            border-radius: 8px;
            padding: 20px 24px;
            margin-bottom: 16px;
            box-shadow: 0 1px 3px rgba(0,0,0,0.08);
        }}
        section h2 {{ font-size: 1.1em; margin-top: 0; }}
        dl.params dt {{ font-weight: 600; float: left; clear: left; width: 180px; }}
        dl.params dd {{ margin-left: 190px; word-break: break-all; }}
        td.num {{ text-align: right; font-variant-numeric: tabular-nums; }}
        .no-data {{ color: #999; font-style: italic; }}
        .provenance {{ font-size: 0.85em; color: #666; }}
    </style>
</head>
<body>
    <header>
        <h1>{html.escape(self.title)}</h1>
    </header>

    {self._render_parameters()}
    {self._render_summary()}
    {self._render_table()}
    {self._render_visualizations()}
    {self._render_provenance()}

    <script>
        $(document).ready(function() {{
            $('#deg-table').DataTable({{
                pageLength: {int(self.page_length)},
                lengthMenu: [[25, 50, 100, 250, -1], [25, 50, 100, 250, 'All']],
                order: [],
                scrollX: true,
                scrollY: '60vh',
                scrollCollapse: true,
                deferRender: true
            }});
        }});
    </script>
</body>
</html>'''

    def _render_parameters(self) -> str:
        if not self.parameters:
            return ""
        items = "\n            ".join(
            f"<dt>{html.escape(str(k))}</dt><dd>{html.escape(str(v))}</dd>"
            for k, v in self.parameters.items()
        )
        return f'''
    <section>
        <h2>Parameters</h2>
        <dl class="params">
            {items}
        </dl>
    </section>'''

    def _render_summary(self) -> str:
        if self.summary is None:
            return ""
        s = self.summary
        return f'''
    <section>
        <h2>Summary</h2>
        <p><strong>Genes tested:</strong> {s.genes_tested:,}</p>
        <p><strong>Genes reported</strong> (complete statistics): {s.genes_reported:,}</p>
        <p><strong>Up:</strong> {s.n_upregulated:,} &nbsp; <strong>Down:</strong> {s.n_downregulated:,}
           (padj &lt; {s.alpha:g}, log2FC threshold {s.lfc_threshold:g})</p>
    </section>'''

    def _render_table(self) -> str:
        body = self.table_html or '<p class="no-data">No results</p>'
        return f'''
    <section>
        <h2>Results</h2>
        {body}
    </section>'''

    def _render_visualizations(self) -> str:
        parts = []
        for viz in self.visualizations:
            parts.append(f'''
    <section>
        <h2>{html.escape(viz["title"])}</h2>
        {viz["html"]}
    </section>''')
        return "\n".join(parts)

    def _render_provenance(self) -> str:
        items = []
        for key, value in self.provenance.items():
            if isinstance(value, (list, tuple)):
                val_str = ", ".join(str(v) for v in value)
            else:
                val_str = str(value)
            items.append(f"<dt>{html.escape(str(key))}</dt><dd>{html.escape(val_str)}</dd>")
        dl = "\n            ".join(items)
        return f'''
    <section class="provenance">
        <h2>Provenance</h2>
        <dl class="params">
            {dl}
        </dl>
    </section>'''
