from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.clubs.models.enums import GlobalRole


class User(Base):
    """Account owned by the identity service; read-only for this API"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    global_role = Column(
        Enum(GlobalRole, name="global_role"),
        nullable=False,
        default=GlobalRole.USUARIO,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    memberships = relationship(
        "Membership", back_populates="user", passive_deletes=True
    )
    created_clubs = relationship(
        "Club", foreign_keys="Club.creator_id", back_populates="creator"
    )

    @property
    def is_master(self) -> bool:
        return self.global_role == GlobalRole.MASTER

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.global_role})>"
