"""Social-media authors discovered while analysing a session."""
from brandscope.models.base import *


class AuthorProfile(Base):
    __tablename__ = "author_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("analysis_sessions.id", ondelete="CASCADE"), nullable=False)
    platform = Column(String, nullable=False)
    username = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    profile_url = Column(String, nullable=True)
    followers = Column(Integer, nullable=False, default=0)
    following = Column(Integer, nullable=False, default=0)
    total_posts = Column(Integer, nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False)
    engagement_rate = Column(Float, nullable=False, default=0.0)
    categories = Column(Text, nullable=True)  # JSON {"topics": [...], ...}
    sentiment = Column(String, nullable=True)
    brand_alignment_score = Column(Float, nullable=True)
    collaboration_score = Column(Float, nullable=True)
    priority = Column(String, nullable=True)  # high, medium, low
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow)

    session = relationship("AnalysisSession", back_populates="author_profiles")
    posts = relationship(
        "AuthorPost", back_populates="author", cascade="all, delete-orphan",
        order_by="AuthorPost.published_at.desc()",
    )

    __table_args__ = (
        UniqueConstraint("session_id", "platform", "username", name="uq_author_profile_handle"),
        Index("idx_author_profiles_session_score", "session_id", "collaboration_score"),
    )


class AuthorPost(Base):
    __tablename__ = "author_posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id = Column(Uuid, ForeignKey("author_profiles.id", ondelete="CASCADE"), nullable=False)
    post_id = Column(String, nullable=False)
    text = Column(Text, nullable=True)
    url = Column(String, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    engagement = Column(Integer, nullable=False, default=0)
    media_type = Column(String, nullable=True)
    hashtags = Column(Text, nullable=True)  # JSON list

    author = relationship("AuthorProfile", back_populates="posts")
