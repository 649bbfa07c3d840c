from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Enum,
    Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.clubs.models.enums import ExamVisibility


class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(60), nullable=False)
    visibility = Column(
        Enum(ExamVisibility, name="exam_visibility"),
        nullable=False,
        default=ExamVisibility.CLUB_PRIVATE,
    )
    # slug of the specialty page on the MDA wiki
    reference_url = Column(String(255), nullable=True)

    club_id = Column(
        Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False
    )
    unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="SET NULL"), nullable=True
    )
    creator_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # provenance of copied exams
    original_author_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    original_exam_id = Column(
        Integer, ForeignKey("exams.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    club = relationship("Club", back_populates="exams")
    questions = relationship(
        "Question",
        back_populates="exam",
        order_by="Question.ordering",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_exams_club_visibility", "club_id", "visibility"),
        Index("ix_exams_visibility", "visibility"),
    )

    def __repr__(self):
        return f"<Exam(id={self.id}, club_id={self.club_id}, visibility={self.visibility})>"
