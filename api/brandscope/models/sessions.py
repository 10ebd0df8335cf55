"""Analysis sessions and the brands compared within them."""
from brandscope.models.base import *

SESSION_STATUSES = ("pending", "running", "completed", "failed")
PLATFORMS = ("instagram", "tiktok", "twitter", "youtube", "facebook")


class AnalysisSession(Base):
    __tablename__ = "analysis_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    status = Column(String, nullable=False, default="pending")
    universe_keywords = Column(Text, nullable=True)
    notification_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")
    focus_brand = relationship(
        "Brand", foreign_keys="Brand.focus_session_id", uselist=False,
        cascade="all, delete-orphan", back_populates="focus_session",
    )
    competitors = relationship(
        "Brand", foreign_keys="Brand.competitor_session_id",
        cascade="all, delete-orphan", back_populates="competitor_session",
        order_by="Brand.created_at",
    )
    analysis_result = relationship(
        "AnalysisResult", uselist=False, cascade="all, delete-orphan", back_populates="session",
    )
    comment_analysis = relationship(
        "CommentAnalysis", uselist=False, cascade="all, delete-orphan", back_populates="session",
    )
    author_profiles = relationship(
        "AuthorProfile", cascade="all, delete-orphan", back_populates="session",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in SESSION_STATUSES) + ")",
            name="ck_analysis_sessions_status",
        ),
        Index("idx_analysis_sessions_user_created", "user_id", "created_at"),
    )

    @property
    def brands(self) -> list:
        """Focus brand first, then competitors in insertion order."""
        brands = [self.focus_brand] if self.focus_brand else []
        return brands + list(self.competitors)


class Brand(Base):
    __tablename__ = "session_brands"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    website = Column(String, nullable=True)
    instagram_handle = Column(String, nullable=True)
    tiktok_handle = Column(String, nullable=True)
    twitter_handle = Column(String, nullable=True)
    youtube_handle = Column(String, nullable=True)
    facebook_handle = Column(String, nullable=True)
    focus_session_id = Column(
        Uuid, ForeignKey("analysis_sessions.id", ondelete="CASCADE"), nullable=True, unique=True,
    )
    competitor_session_id = Column(
        Uuid, ForeignKey("analysis_sessions.id", ondelete="CASCADE"), nullable=True,
    )
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    focus_session = relationship(
        "AnalysisSession", foreign_keys=[focus_session_id], back_populates="focus_brand",
    )
    competitor_session = relationship(
        "AnalysisSession", foreign_keys=[competitor_session_id], back_populates="competitors",
    )
    brand_data = relationship("BrandData", back_populates="brand", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "(focus_session_id IS NULL) <> (competitor_session_id IS NULL)",
            name="ck_session_brands_one_role",
        ),
        Index("idx_session_brands_competitor", "competitor_session_id"),
    )

    def handle_for(self, platform: str):
        return getattr(self, f"{platform}_handle", None)

    @property
    def configured_platforms(self) -> list[str]:
        return [p for p in PLATFORMS if self.handle_for(p)]


class BrandData(Base):
    __tablename__ = "brand_data"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    brand_id = Column(Uuid, ForeignKey("session_brands.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String, nullable=False)  # instagram, tiktok, twitter, youtube, facebook, website
    follower_count = Column(Integer, nullable=True)
    post_count = Column(Integer, nullable=True)
    engagement_rate = Column(Float, nullable=True)
    avg_post_per_day = Column(Float, nullable=True)
    raw_data = Column(Text, nullable=False, default="{}")  # {"data": [post, ...]}
    scraped_data = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    brand = relationship("Brand", back_populates="brand_data")

    __table_args__ = (
        Index("idx_brand_data_brand_platform", "brand_id", "platform"),
    )
