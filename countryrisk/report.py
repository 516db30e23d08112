from __future__ import annotations

"""
Calibration report generator
----------------------------
This module writes a DOCX report for a set of country risk results.

Contents:
- expected annual damage (EAD) per country and peril,
- the country damage factor terms (if economic loss factors are given),
- the aggregate damage frequency curve of all countries,
- a reproducibility footer (package version, timestamp, command log).

Report dependencies (python-docx, matplotlib) are imported lazily, so the
calculations work without them.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence
import os
import tempfile

from .economic_loss import CountryDamageFactor
from .models import CountryRiskResult, DisasterEvent


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Country Risk Calibration Report"
    subtitle: str = "Damage function calibration and economic loss"
    cagr: float = 0.02
    # Optional: list of CLI commands used to create these results
    command_log: Optional[List[str]] = None


def _fmt(v: float) -> str:
    return f"{v:,.0f}"


def generate_docx_report(
    results: Sequence[CountryRiskResult],
    out_path: str,
    *,
    factors: Sequence[CountryDamageFactor] = (),
    config: Optional[ReportConfig] = None,
    emdat_events: Optional[Sequence[DisasterEvent]] = None,
) -> str:
    """Generate a DOCX report (tables + aggregate DFC chart) and return its path."""
    config = config or ReportConfig()

    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    if not results:
        raise ValueError("No results to report on.")

    from .plots import plot_dfc_aggregate
    tmpdir = tempfile.mkdtemp(prefix="countryrisk_report_")
    chart = plot_dfc_aggregate(results, config.cagr, emdat_events=emdat_events,
                               out_path=os.path.join(tmpdir, "dfc_aggregate.png"))

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Countries", ", ".join(r.country_name for r in results))
    _kv("Perils", ", ".join(sorted({h.peril_id for r in results for h in r.hazards})))
    _kv("CAGR used for historic damages", f"{config.cagr:.2%}")

    # Expected annual damage per country/peril
    doc.add_paragraph("")
    doc.add_heading("Expected annual damage", level=1)
    t = doc.add_table(rows=1, cols=4)
    h = t.rows[0].cells
    h[0].text = "Country"
    h[1].text = "Peril"
    h[2].text = "Events"
    h[3].text = "Expected annual damage"
    for r in results:
        for hz in r.hazards:
            row = t.add_row().cells
            row[0].text = r.country_name
            row[1].text = hz.peril_id
            if hz.eds is None or hz.eds.is_empty:
                row[2].text = "0"
                row[3].text = "(no damage set)"
            else:
                row[2].text = str(len(hz.eds))
                row[3].text = _fmt(hz.eds.expected_annual_damage)

    # Country damage factors
    if factors:
        doc.add_paragraph("")
        doc.add_heading("Country damage factors", level=1)
        doc.add_paragraph(
            "country_damage_factor = 1/financial_strength + BI_and_supply_chain_risk "
            "+ natural_hazard_economic_exposure - disaster_resilience (floored at 0)"
        )
        t2 = doc.add_table(rows=1, cols=6)
        h = t2.rows[0].cells
        for i, label in enumerate(["Country", "Financial strength", "BI & supply chain",
                                   "NH economic exposure", "Disaster resilience", "Damage factor"]):
            h[i].text = label
        for f in factors:
            row = t2.add_row().cells
            row[0].text = f.country
            row[1].text = f"{f.financial_strength:.3f}"
            row[2].text = f"{f.bi_and_supply_chain_risk:.3f}"
            row[3].text = f"{f.natural_hazard_economic_exposure:.3f}"
            row[4].text = f"{f.disaster_resilience:.3f}"
            row[5].text = f"{f.value:.3f}"

    doc.add_paragraph("")
    doc.add_heading("Damage frequency curve (all countries)", level=1)
    doc.add_picture(chart, width=Inches(6.5))

    # -----------------------------
    # Reproducibility footer
    # -----------------------------
    doc.add_paragraph("")
    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__
    doc.add_paragraph(f"countryrisk version: {__version__}")
    doc.add_paragraph(f"Report generated at: {datetime.now().isoformat(timespec='seconds')}")
    if config.command_log:
        doc.add_paragraph("Commands used (log):")
        for line in config.command_log:
            doc.add_paragraph(line, style="List Bullet")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    return out_path
