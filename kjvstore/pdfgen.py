"""
PDF export with ReportLab.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from .model import Scripture
from .util import info


def generate_chapter_pdf(output_path: Path, title: str, rows: Sequence[Scripture]) -> Path:
    """
    Write a verse-per-line PDF.

    Parameters
    ----------
    output_path:
        Target file; the suffix is forced to `.pdf`.
    title:
        Heading on the first page.
    rows:
        Verses in display order. Placeholder verses are set in italics.

    Returns
    -------
    The path written.
    """
    output_path = Path(output_path).with_suffix(".pdf")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    styles = getSampleStyleSheet()
    story: List = [Paragraph(escape(title), styles["Heading1"]), Spacer(1, 12)]

    if not rows:
        story.append(Paragraph("(No verses found.)", styles["Italic"]))

    for s in rows:
        line = f"<b>{s.verse}</b> {escape(s.text)}"
        style = styles["Italic"] if s.is_placeholder else styles["Normal"]
        story.append(Paragraph(line, style))
        story.append(Spacer(1, 4))

    doc = SimpleDocTemplate(str(output_path), pagesize=LETTER, title=title)
    doc.build(story)
    info(f"PDF exported: {output_path}")
    return output_path
