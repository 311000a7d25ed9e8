"""SQLAlchemy models package."""

from app.models.feature_limit import (
    TIER_FEATURES,
    UNLIMITED,
    Feature,
    FeatureLimit,
    LimitType,
    SubscriptionTier,
)
from app.models.profile import Profile
from app.models.usage import UsageRecord
from app.models.evidence import EvidenceFile
from app.models.conversation import AIConversation, AIMessage, MessageRole
from app.models.pattern_analysis import PatternAnalysis
from app.models.mind_reset import MindResetSession, SessionType
from app.models.community import (
    CommunityComment,
    CommunityLike,
    CommunityPost,
    CommunityReport,
    ReportTargetType,
)

__all__ = [
    "TIER_FEATURES",
    "UNLIMITED",
    "Feature",
    "FeatureLimit",
    "LimitType",
    "SubscriptionTier",
    "Profile",
    "UsageRecord",
    "EvidenceFile",
    "AIConversation",
    "AIMessage",
    "MessageRole",
    "PatternAnalysis",
    "MindResetSession",
    "SessionType",
    "CommunityComment",
    "CommunityLike",
    "CommunityPost",
    "CommunityReport",
    "ReportTargetType",
]
