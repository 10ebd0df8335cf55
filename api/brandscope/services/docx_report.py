"""
Structured Word report for one analysis session.

Sections: report information, executive summary, audience comparison,
audience conversation analysis and top author profiles. A malformed JSON
column drops its own section; the rest of the document is still produced.
"""
import io
import json
import re
from datetime import datetime
from typing import Optional

import structlog
from docx import Document
from docx.shared import Pt

from brandscope.services.format import format_number, format_percent, format_rate, sentiment_breakdown
from brandscope.services.report_data import ReportData, shape_session_report

logger = structlog.get_logger()

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TOP_AUTHORS = 10


def docx_filename(title: str, today: Optional[datetime] = None) -> str:
    safe = re.sub(r"[^a-zA-Z0-9]", "_", title)
    return f"Brand_Analysis_{safe}_{(today or datetime.utcnow()).strftime('%Y-%m-%d')}.docx"


def _author_topics(categories: Optional[str]) -> list[str]:
    if not categories:
        return []
    try:
        data = json.loads(categories)
    except ValueError:
        logger.warning("docx: author categories not JSON")
        return []
    topics = data.get("topics") if isinstance(data, dict) else None
    return [str(t) for t in topics or []]


def _add_report_information(doc, session):
    doc.add_heading("Report Information", level=1)
    competitors = ", ".join(c.name for c in session.competitors) or "None"
    for label, value in [
        ("Generated", datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")),
        ("Focus Brand", session.focus_brand.name if session.focus_brand else "N/A"),
        ("Competitors", competitors),
        ("Universe Keywords", session.universe_keywords or "N/A"),
    ]:
        p = doc.add_paragraph()
        p.add_run(f"{label}: ").bold = True
        p.add_run(value)


def _add_executive_summary(doc, report: ReportData):
    if report.ai.empty:
        return
    doc.add_heading("Executive Summary", level=1)
    if report.ai.text:
        doc.add_paragraph(report.ai.text)
        return
    if report.ai.summary:
        doc.add_paragraph(report.ai.summary)
    if report.ai.recommendations:
        doc.add_heading("Key Recommendations", level=2)
        for rec in report.ai.recommendations:
            doc.add_paragraph(rec, style="List Bullet")


def _add_audience(doc, report: ReportData):
    if report.audience is None:
        return
    doc.add_heading("Audience Comparison", level=1)
    table = doc.add_table(rows=1, cols=4)
    table.style = "Table Grid"
    for cell, label in zip(table.rows[0].cells, ["Brand", "Total Followers", "Total Posts", "Avg Engagement"]):
        cell.text = label
        cell.paragraphs[0].runs[0].bold = True

    for brand in report.brands or list(report.audience_matrix()):
        equity = report.equity_for(brand)
        followers = equity.total_followers if equity else report.brand_followers(brand)
        engagement = equity.avg_engagement if equity else 0
        row = table.add_row().cells
        row[0].text = brand
        row[1].text = format_number(followers)
        row[2].text = format_number(report.brand_posts(brand))
        row[3].text = f"{engagement:.2f}%"


def _add_conversation(doc, comment_analysis):
    if comment_analysis is None:
        return
    doc.add_heading("Audience Conversation Analysis", level=1)
    s = sentiment_breakdown(
        comment_analysis.positive_count, comment_analysis.neutral_count, comment_analysis.negative_count,
    )
    doc.add_paragraph(f"Total Comments Analyzed: {format_number(comment_analysis.total_comments)}")
    doc.add_paragraph(f"Positive: {s.positive} ({format_percent(s.positive_pct)})", style="List Bullet")
    doc.add_paragraph(f"Neutral: {s.neutral} ({format_percent(s.neutral_pct)})", style="List Bullet")
    doc.add_paragraph(f"Negative: {s.negative} ({format_percent(s.negative_pct)})", style="List Bullet")
    if comment_analysis.ai_summary:
        doc.add_heading("AI Summary", level=2)
        doc.add_paragraph(comment_analysis.ai_summary)
    if comment_analysis.ai_recommendations:
        doc.add_heading("Recommendations", level=2)
        doc.add_paragraph(comment_analysis.ai_recommendations)


def _add_authors(doc, authors):
    if not authors:
        return
    doc.add_heading("Top Audience Profiles", level=1)
    for author in authors[:TOP_AUTHORS]:
        name = f"@{author.username}"
        if author.display_name:
            name += f" ({author.display_name})"
        doc.add_heading(name, level=2)
        doc.add_paragraph(f"Platform: {author.platform.upper()}")
        doc.add_paragraph(f"Followers: {format_number(author.followers)}")
        doc.add_paragraph(f"Verified: {'Yes' if author.verified else 'No'}")
        doc.add_paragraph(f"Engagement Rate: {format_rate(author.engagement_rate)}")
        topics = _author_topics(author.categories)
        if topics:
            doc.add_paragraph(f"Topics: {', '.join(topics)}")


def build_docx(session, authors: Optional[list] = None) -> bytes:
    """Render the session to .docx bytes. `authors` must already be ranked."""
    doc = Document()
    doc.styles["Normal"].font.size = Pt(11)
    doc.add_heading(f"Brand Analysis Report: {session.title}", level=0)

    _add_report_information(doc, session)

    if session.analysis_result is not None:
        report = shape_session_report(session)
        _add_executive_summary(doc, report)
        _add_audience(doc, report)

    _add_conversation(doc, session.comment_analysis)
    _add_authors(doc, authors or [])

    buffer = io.BytesIO()
    doc.save(buffer)
    logger.info("docx: built", session_id=str(session.id), size=buffer.tell())
    return buffer.getvalue()
