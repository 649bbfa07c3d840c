from app.core.database import Base
from .enums import (
    GlobalRole,
    ClubRole,
    MembershipStatus,
    ExamVisibility,
    QuestionType,
)
from .users import User
from .clubs import Club
from .units import Unit
from .memberships import Membership
from .regional_links import RegionalClubLink
from .exams import Exam
from .questions import Question

__all__ = [
    "Base",
    "GlobalRole",
    "ClubRole",
    "MembershipStatus",
    "ExamVisibility",
    "QuestionType",
    "User",
    "Club",
    "Unit",
    "Membership",
    "RegionalClubLink",
    "Exam",
    "Question",
]
