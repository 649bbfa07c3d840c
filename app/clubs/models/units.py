from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)

    # fixed at creation, a unit is never moved to another club
    club_id = Column(
        Integer,
        ForeignKey("clubs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    club = relationship("Club", back_populates="units")
    memberships = relationship(
        "Membership", back_populates="unit", passive_deletes=True
    )

    def __repr__(self):
        return f"<Unit(id={self.id}, name='{self.name}', club_id={self.club_id})>"
