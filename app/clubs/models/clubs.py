from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Club(Base):
    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)

    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    country = Column(String(100), nullable=False, default="Brasil")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    creator_id = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # relations; deletes are cascaded explicitly in crud.clubs.delete_club
    creator = relationship(
        "User", foreign_keys=[creator_id], back_populates="created_clubs"
    )
    units = relationship("Unit", back_populates="club", passive_deletes=True)
    memberships = relationship(
        "Membership", back_populates="club", passive_deletes=True
    )
    exams = relationship("Exam", back_populates="club", passive_deletes=True)

    def __repr__(self):
        return f"<Club(id={self.id}, slug='{self.slug}')>"
