from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class RegionalClubLink(Base):
    """Grants a REGIONAL user supervisory authority over one club"""

    __tablename__ = "regional_club_links"

    id = Column(Integer, primary_key=True)
    regional_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    club_id = Column(
        Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    regional = relationship("User")
    club = relationship("Club")

    __table_args__ = (
        UniqueConstraint("regional_id", "club_id", name="uq_regional_club"),
    )
