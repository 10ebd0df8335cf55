import io
import json
import re
from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse, JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from brandscope.database import get_db
from brandscope.models import User
from brandscope.dependencies import get_current_user
from brandscope.services import sessions as session_queries
from brandscope.services.brand_colors import BrandPalette
from brandscope.services.docx_report import build_docx, docx_filename, DOCX_MEDIA_TYPE
from brandscope.services.pdf_report import build_report_html, render_pdf, pdf_filename
from brandscope.services.report_data import parse_field, shape_session_report

router = APIRouter(prefix="/export", tags=["exports"])
logger = structlog.get_logger()


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/docx/{session_id}")
async def export_docx(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    session = await session_queries.get_session(db, session_id, user.id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    authors = await session_queries.list_author_profiles(db, session_id, limit=10)
    try:
        content = build_docx(session, authors)
    except Exception as e:
        logger.error("export: docx failed", session_id=str(session_id), error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate document")

    return StreamingResponse(
        io.BytesIO(content),
        media_type=DOCX_MEDIA_TYPE,
        headers=_attachment(docx_filename(session.title)),
    )


@router.get("/pdf-screenshot/{session_id}")
async def export_pdf_screenshot(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    session = await session_queries.get_session(db, session_id, user.id)
    if not session or not session.analysis_result:
        raise HTTPException(status_code=404, detail="Analysis result not found")

    try:
        report = shape_session_report(session)
        palette = BrandPalette(report.focus_brand, report.brands)
        page_html = build_report_html(session, report, palette)
        content = await render_pdf(page_html)
    except Exception as e:
        logger.error("export: pdf failed", session_id=str(session_id), error=str(e))
        return JSONResponse(status_code=500, content={"error": "Failed to generate PDF", "details": str(e)})

    logger.info("export: pdf generated", session_id=str(session_id), size=len(content))
    return StreamingResponse(
        io.BytesIO(content),
        media_type="application/pdf",
        headers=_attachment(pdf_filename(session.title)),
    )


def _parsed(raw, default):
    return parse_field(raw, default).value


def _brand_export(brand) -> dict:
    return {
        "name": brand.name,
        "website": brand.website,
        "instagram_handle": brand.instagram_handle,
        "tiktok_handle": brand.tiktok_handle,
        "twitter_handle": brand.twitter_handle,
        "youtube_handle": brand.youtube_handle,
        "facebook_handle": brand.facebook_handle,
        "brand_data": [
            {
                "platform": d.platform,
                "follower_count": d.follower_count,
                "post_count": d.post_count,
                "engagement_rate": d.engagement_rate,
                "avg_post_per_day": d.avg_post_per_day,
                "raw_data": _parsed(d.raw_data, None),
                "scraped_data": _parsed(d.scraped_data, None),
                "created_at": d.created_at.isoformat() if d.created_at else None,
            }
            for d in brand.brand_data
        ],
    }


def _result_export(result) -> dict:
    if result is None:
        return None
    return {
        "audience_comparison": _parsed(result.audience_comparison, []),
        "post_channel_data": _parsed(result.post_channel_data, []),
        "hashtag_analysis": _parsed(result.hashtag_analysis, []),
        "post_type_engagement": _parsed(result.post_type_engagement, []),
        "post_timing_data": _parsed(result.post_timing_data, {}),
        "brand_equity_data": _parsed(result.brand_equity_data, []),
        "keyword_clustering": _parsed(result.keyword_clustering, []),
        "voice_analysis": _parsed(result.voice_analysis, []),
        "share_of_voice": _parsed(result.share_of_voice, None),
        "additional_metrics": _parsed(result.additional_metrics, {}),
        "data_quality_report": _parsed(result.data_quality_report, None),
        "ai_insights": result.ai_insights,
        "ai_keyword_insights": result.ai_keyword_insights,
        "created_at": result.created_at.isoformat() if result.created_at else None,
    }


@router.get("/raw/{session_id}")
async def export_raw(
    session_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Everything stored for the session, JSON columns decoded."""
    session = await session_queries.get_session(db, session_id, user.id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")

    export = {
        "session": {
            "id": str(session.id),
            "title": session.title,
            "status": session.status,
            "universe_keywords": session.universe_keywords,
            "created_at": session.created_at.isoformat() if session.created_at else None,
            "completed_at": session.completed_at.isoformat() if session.completed_at else None,
        },
        "focus_brand": _brand_export(session.focus_brand) if session.focus_brand else None,
        "competitors": [_brand_export(c) for c in session.competitors],
        "analysis_results": _result_export(session.analysis_result),
        "exported_at": datetime.utcnow().isoformat(),
    }

    safe_title = re.sub(r"[^a-zA-Z0-9_-]", "_", session.title)
    return StreamingResponse(
        io.BytesIO(json.dumps(export, indent=2, default=str).encode()),
        media_type="application/json",
        headers=_attachment(f"{safe_title}_raw_data.json"),
    )
