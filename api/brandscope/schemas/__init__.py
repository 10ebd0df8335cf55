from pydantic import BaseModel, Field, ConfigDict, TypeAdapter, HttpUrl, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum


# ─── Enums ───
class SessionStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


# ─── Auth Schemas ───
class SignupRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


# ─── Session Input Schemas ───
_url_adapter = TypeAdapter(HttpUrl)


class BrandInput(BaseModel):
    """Brand definition; accepts camelCase keys from the web client too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    website: Optional[str] = None
    instagram_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    youtube_handle: Optional[str] = None
    facebook_handle: Optional[str] = None

    @field_validator("website")
    @classmethod
    def website_is_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        _url_adapter.validate_python(v)
        return v


class SessionCreateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1, max_length=255)
    focus_brand: BrandInput
    competitors: List[BrandInput] = Field(default_factory=list, max_length=3)
    universe_keywords: Optional[str] = None


# ─── Session Response Schemas ───
class BrandDataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    platform: str
    follower_count: Optional[int] = None
    post_count: Optional[int] = None
    engagement_rate: Optional[float] = None
    avg_post_per_day: Optional[float] = None
    created_at: Optional[datetime] = None


class BrandResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    website: Optional[str] = None
    instagram_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None
    twitter_handle: Optional[str] = None
    youtube_handle: Optional[str] = None
    facebook_handle: Optional[str] = None


class BrandDetailResponse(BrandResponse):
    brand_data: List[BrandDataResponse] = []


class AnalysisResultResponse(BaseModel):
    """Stored blobs are returned verbatim; the raw export returns them parsed."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    audience_comparison: str
    post_channel_data: str
    hashtag_analysis: str
    post_type_engagement: str
    brand_equity_data: str
    post_timing_data: Optional[str] = None
    keyword_clustering: Optional[str] = None
    voice_analysis: Optional[str] = None
    share_of_voice: Optional[str] = None
    additional_metrics: Optional[str] = None
    ai_insights: Optional[str] = None
    ai_keyword_insights: Optional[str] = None
    created_at: Optional[datetime] = None


class CommentAnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_comments: int
    positive_count: int
    neutral_count: int
    negative_count: int
    question_count: int = 0
    complaint_count: int = 0
    praise_count: int = 0
    comment_themes: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_recommendations: Optional[str] = None


class SessionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    status: SessionStatus
    universe_keywords: Optional[str] = None
    notification_read: bool
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    focus_brand: Optional[BrandResponse] = None
    competitors: List[BrandResponse] = []
    analysis_result: Optional[AnalysisResultResponse] = None


class SessionDetail(SessionSummary):
    focus_brand: Optional[BrandDetailResponse] = None
    competitors: List[BrandDetailResponse] = []
    comment_analysis: Optional[CommentAnalysisResponse] = None


# ─── Authors ───
class AuthorPostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    post_id: str
    text: Optional[str] = None
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    likes: int = 0
    comments: int = 0
    shares: int = 0
    engagement: int = 0
    media_type: Optional[str] = None


class AuthorProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    platform: str
    username: str
    display_name: Optional[str] = None
    bio: Optional[str] = None
    profile_url: Optional[str] = None
    followers: int
    following: int = 0
    total_posts: int = 0
    verified: bool
    engagement_rate: float
    categories: Optional[str] = None
    sentiment: Optional[str] = None
    brand_alignment_score: Optional[float] = None
    collaboration_score: Optional[float] = None
    priority: Optional[str] = None
    posts: List[AuthorPostResponse] = []


# ─── Misc ───
class AnalyzeResponse(BaseModel):
    message: str
    session_id: UUID


class SuccessResponse(BaseModel):
    success: bool = True


class UnreadCountResponse(BaseModel):
    count: int


__all__ = [
    "SessionStatus",
    "SignupRequest", "LoginRequest", "TokenResponse", "UserResponse",
    "BrandInput", "SessionCreateRequest",
    "BrandDataResponse", "BrandResponse", "BrandDetailResponse",
    "AnalysisResultResponse", "CommentAnalysisResponse",
    "SessionSummary", "SessionDetail",
    "AuthorPostResponse", "AuthorProfileResponse",
    "AnalyzeResponse", "SuccessResponse", "UnreadCountResponse",
]
