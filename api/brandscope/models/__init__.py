"""
Brandscope models, domain-organized and re-exported.

`from brandscope.models import X` works for every model.
"""

# Auth
from brandscope.models.auth import User

# Sessions and brands
from brandscope.models.sessions import AnalysisSession, Brand, BrandData, PLATFORMS, SESSION_STATUSES

# Analysis outputs
from brandscope.models.results import AnalysisResult, CommentAnalysis

# Authors
from brandscope.models.authors import AuthorProfile, AuthorPost

# Ops
from brandscope.models.ops import ErrorLog

__all__ = [
    # Auth
    "User",
    # Sessions
    "AnalysisSession", "Brand", "BrandData", "PLATFORMS", "SESSION_STATUSES",
    # Results
    "AnalysisResult", "CommentAnalysis",
    # Authors
    "AuthorProfile", "AuthorPost",
    # Ops
    "ErrorLog",
]
