"""Daily report card PDF using fpdf2."""

from __future__ import annotations

from datetime import date

from fpdf import FPDF

GRADE_COLOURS = {
    "A+": (16, 185, 129),
    "A": (34, 197, 94),
    "B": (59, 130, 246),
    "C": (245, 158, 11),
    "D": (249, 115, 22),
}


def _safe(text: str) -> str:
    """Replace unicode chars that latin-1 Helvetica can't handle."""
    return (
        text
        .replace("—", "-")   # em-dash
        .replace("–", "-")   # en-dash
        .replace("‘", "'")
        .replace("’", "'")
        .replace("“", '"')
        .replace("”", '"')
        .replace("…", "...")
        .encode("latin-1", "replace")
        .decode("latin-1")
    )


def generate_report_pdf(report: dict, breakdown: list[dict], today: date | None = None,
                        streak: int = 0) -> bytes:
    """Render the daily achievement report card and return the PDF bytes.

    ``report`` is the dict produced by ``analytics.daily_report``;
    ``breakdown`` is ``analytics.subject_time_breakdown``.
    """
    today = today or date.today()
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _render_title(pdf, today)
    _render_grade(pdf, report, streak)
    _render_breakdown(pdf, breakdown)

    return bytes(pdf.output())


# ── Helpers ────────────────────────────────────────────────────


def _section_title(pdf: FPDF, text: str) -> None:
    pdf.set_font("Helvetica", "B", 12)
    pdf.set_text_color(79, 70, 229)
    pdf.cell(0, 8, _safe(text), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(2)


def _render_title(pdf: FPDF, today: date) -> None:
    pdf.set_fill_color(79, 70, 229)
    pdf.rect(0, 0, 210, 40, "F")
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 20)
    pdf.set_xy(15, 10)
    pdf.cell(0, 10, "Daily Achievement Report")
    pdf.set_font("Helvetica", "", 10)
    pdf.set_xy(15, 24)
    pdf.cell(0, 6, f"Generated {today.strftime('%d %B %Y')}")
    pdf.set_text_color(0, 0, 0)
    pdf.set_y(50)


def _render_grade(pdf: FPDF, report: dict, streak: int) -> None:
    grade = report.get("grade", "F")
    pdf.set_font("Helvetica", "B", 48)
    pdf.set_text_color(*GRADE_COLOURS.get(grade, (239, 68, 68)))
    pdf.cell(0, 22, grade, align="C", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 12)
    pdf.cell(0, 8, _safe(report.get("caption", "")), align="C", new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(6)

    _section_title(pdf, "Today")
    pdf.set_font("Helvetica", "", 10)
    lines = [
        f"Total Hours: {report.get('hours', 0):.1f}h",
        f"Task Rate: {report.get('task_rate', 0):.0f}% "
        f"({report.get('completed_tasks', 0)}/{report.get('total_tasks', 0)} tasks)",
        f"Current Streak: {streak} days",
    ]
    for line in lines:
        pdf.cell(0, 6, _safe(line), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)


def _render_breakdown(pdf: FPDF, breakdown: list[dict]) -> None:
    _section_title(pdf, "Subject Breakdown")
    if not breakdown:
        pdf.set_font("Helvetica", "I", 10)
        pdf.cell(0, 6, "No study sessions logged yet.", new_x="LMARGIN", new_y="NEXT")
        return

    pdf.set_font("Helvetica", "B", 9)
    pdf.set_fill_color(241, 245, 249)
    pdf.cell(120, 7, "Subject", border=1, fill=True)
    pdf.cell(40, 7, "Hours", border=1, fill=True, align="C")
    pdf.ln()

    pdf.set_font("Helvetica", "", 9)
    for row in sorted(breakdown, key=lambda r: r["hours"], reverse=True):
        pdf.cell(120, 6, _safe(str(row["name"]))[:60], border=1)
        pdf.cell(40, 6, f"{row['hours']:.1f}", border=1, align="C")
        pdf.ln()
