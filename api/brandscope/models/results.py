"""Computed analysis outputs, one row per session."""
from brandscope.models.base import *


class AnalysisResult(Base):
    __tablename__ = "analysis_results"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid, ForeignKey("analysis_sessions.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    # JSON-encoded blobs
    audience_comparison = Column(Text, nullable=False)
    post_channel_data = Column(Text, nullable=False)
    hashtag_analysis = Column(Text, nullable=False)
    post_type_engagement = Column(Text, nullable=False)
    brand_equity_data = Column(Text, nullable=False)
    post_timing_data = Column(Text, nullable=True)
    keyword_clustering = Column(Text, nullable=True)
    voice_analysis = Column(Text, nullable=True)
    share_of_voice = Column(Text, nullable=True)
    additional_metrics = Column(Text, nullable=True)
    data_quality_report = Column(Text, nullable=True)
    # Narrative text; JSON {"summary", "recommendations"} or plain prose
    ai_insights = Column(Text, nullable=True)
    ai_keyword_insights = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    session = relationship("AnalysisSession", back_populates="analysis_result")


class CommentAnalysis(Base):
    __tablename__ = "comment_analyses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid, ForeignKey("analysis_sessions.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    total_comments = Column(Integer, nullable=False, default=0)
    positive_count = Column(Integer, nullable=False, default=0)
    neutral_count = Column(Integer, nullable=False, default=0)
    negative_count = Column(Integer, nullable=False, default=0)
    question_count = Column(Integer, nullable=False, default=0)
    complaint_count = Column(Integer, nullable=False, default=0)
    praise_count = Column(Integer, nullable=False, default=0)
    comment_themes = Column(Text, nullable=True)
    ai_summary = Column(Text, nullable=True)
    ai_recommendations = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    session = relationship("AnalysisSession", back_populates="comment_analysis")

    __table_args__ = (
        CheckConstraint(
            "positive_count >= 0 AND neutral_count >= 0 AND negative_count >= 0",
            name="ck_comment_analyses_counts",
        ),
    )
