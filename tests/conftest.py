import os
from datetime import date
from typing import List, Optional, Tuple

# settings are read at import time
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("VALIDATE_CONFIG_ON_IMPORT", "false")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database import Base, get_session
from app.core.jwt_auth import jwt_manager
from app.clubs.models import (
    Club,
    ClubRole,
    Exam,
    ExamVisibility,
    GlobalRole,
    Membership,
    MembershipStatus,
    Question,
    QuestionType,
    RegionalClubLink,
    Unit,
    User,
)
from app.clubs.services.membership_service import MembershipService
from app.main import app

TODAY = date(2026, 6, 15)


class FixedClock:
    def __init__(self, today: date = TODAY):
        self._today = today

    def today(self) -> date:
        return self._today


class RecordingNotifier:
    """Keeps every notification instead of sending it"""

    def __init__(self):
        self.new_requests: List[Tuple[int, int, int]] = []
        self.approved: List[Tuple[int, int]] = []
        self.rejected: List[Tuple[int, int]] = []

    async def notify_new_request(self, admin, requester, club, membership):
        self.new_requests.append((admin.id, requester.id, club.id))

    async def notify_approved(self, member, club, membership):
        self.approved.append((member.id, club.id))

    async def notify_rejected(self, member, club):
        self.rejected.append((member.id, club.id))


class Factory:
    """Inserts rows straight through the session, bypassing every rule"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._seq = 0

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        await self.session.refresh(obj)
        return obj

    async def user(
        self, name: Optional[str] = None, role: GlobalRole = GlobalRole.USUARIO
    ) -> User:
        self._seq += 1
        name = name or f"user{self._seq}"
        return await self._save(
            User(name=name, email=f"{name}.{self._seq}@example.com", global_role=role)
        )

    async def club(self, name: Optional[str] = None, creator: Optional[User] = None) -> Club:
        self._seq += 1
        name = name or f"Clube {self._seq}"
        return await self._save(
            Club(
                name=name,
                slug=f"clube-{self._seq}",
                city="Curitiba",
                state="PR",
                country="Brasil",
                creator_id=creator.id if creator else None,
            )
        )

    async def unit(self, club: Club, name: Optional[str] = None) -> Unit:
        self._seq += 1
        return await self._save(Unit(name=name or f"Unidade {self._seq}", club_id=club.id))

    async def membership(
        self,
        user: User,
        club: Club,
        role: ClubRole = ClubRole.DESBRAVADOR,
        unit: Optional[Unit] = None,
        status: MembershipStatus = MembershipStatus.ACTIVE,
        birth_date: date = date(2000, 1, 1),
        baptized: bool = True,
        specific_office: Optional[str] = None,
    ) -> Membership:
        return await self._save(
            Membership(
                user_id=user.id,
                club_id=club.id,
                unit_id=unit.id if unit else None,
                role=role,
                status=status,
                birth_date=birth_date,
                baptized=baptized,
                specific_office=specific_office,
            )
        )

    async def regional_link(self, regional: User, club: Club) -> RegionalClubLink:
        return await self._save(RegionalClubLink(regional_id=regional.id, club_id=club.id))

    async def exam(
        self,
        club: Club,
        creator: Optional[User] = None,
        visibility: ExamVisibility = ExamVisibility.CLUB_PRIVATE,
        unit: Optional[Unit] = None,
        questions: int = 0,
        title: str = "Primeiros Socorros",
    ) -> Exam:
        exam = await self._save(
            Exam(
                title=title,
                category="Saúde",
                visibility=visibility,
                club_id=club.id,
                unit_id=unit.id if unit else None,
                creator_id=creator.id if creator else None,
            )
        )
        for position in range(1, questions + 1):
            self.session.add(
                Question(
                    exam_id=exam.id,
                    type=QuestionType.DISSERTATIVA,
                    statement=f"Pergunta {position}",
                    points=position,
                    ordering=position,
                )
            )
        if questions:
            await self.session.commit()
        return exam


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(session):
    return Factory(session)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(session, notifier, clock):
    return MembershipService(session, notifier, clock)


def _bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {jwt_manager.create_access_token(user.id)}"}


@pytest.fixture
def auth_headers():
    return _bearer


@pytest_asyncio.fixture
async def api_client(session_factory, notifier, clock):
    async def _override_get_session():
        async with session_factory() as session:
            yield session

    original_notifier = app.state.notifier
    original_clock = app.state.clock
    app.dependency_overrides[get_session] = _override_get_session
    app.state.notifier = notifier
    app.state.clock = clock

    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_session, None)
        app.state.notifier = original_notifier
        app.state.clock = original_clock
