from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Enum,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.clubs.models.enums import ClubRole, MembershipStatus


class Membership(Base):
    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    club_id = Column(
        Integer, ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False
    )
    unit_id = Column(
        Integer, ForeignKey("units.id", ondelete="RESTRICT"), nullable=True
    )

    role = Column(Enum(ClubRole, name="club_role"), nullable=False)
    status = Column(
        Enum(MembershipStatus, name="membership_status"),
        nullable=False,
        default=MembershipStatus.PENDING,
    )

    birth_date = Column(Date, nullable=False)
    baptized = Column(Boolean, nullable=False, default=False)
    specific_office = Column(String(50), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User", back_populates="memberships")
    club = relationship("Club", back_populates="memberships")
    unit = relationship("Unit", back_populates="memberships")

    __table_args__ = (
        # one membership per user and club, whatever the status
        UniqueConstraint("user_id", "club_id", name="uq_membership_user_club"),
        Index("ix_memberships_club_status", "club_id", "status"),
        Index("ix_memberships_unit", "unit_id"),
    )

    def __repr__(self):
        return (
            f"<Membership(id={self.id}, user_id={self.user_id}, club_id={self.club_id}, "
            f"role={self.role}, status={self.status})>"
        )
