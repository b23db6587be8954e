"""Shared fixtures: a throwaway SQLite database per test and an app bound to it."""
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from tourneyhub.database import create_schema, get_session
from tourneyhub.enums import UserRole
from tourneyhub.main import create_app
from tourneyhub.models import Division, Group, Team, Tournament, TournamentAssignment, User
from tourneyhub.security import create_access_token


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    app = create_app()

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


async def make_user(db: AsyncSession, email: str, role: UserRole = UserRole.TEAM_MANAGER) -> User:
    user = User(email=email, name=email.split("@")[0], role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_tournament(db: AsyncSession, owner: User, name: str = "Spring Cup", **flags) -> Tournament:
    tournament = Tournament(name=name, created_by_id=owner.id, **flags)
    db.add(tournament)
    await db.flush()
    db.add(
        TournamentAssignment(
            user_id=owner.id,
            tournament_id=tournament.id,
            can_configure=True,
            can_manage_scores=True,
        )
    )
    await db.commit()
    await db.refresh(tournament)
    return tournament


async def make_division(db: AsyncSession, tournament: Tournament, name: str, groups=(), position: int = 0) -> Division:
    """``groups`` is a sequence of ``(group_name, [team_name, ...])`` pairs."""
    division = Division(tournament_id=tournament.id, name=name, position=position)
    db.add(division)
    await db.flush()
    for index, (group_name, team_names) in enumerate(groups):
        group = Group(division_id=division.id, name=group_name, position=index)
        db.add(group)
        await db.flush()
        for team_name in team_names:
            db.add(Team(tournament_id=tournament.id, division_id=division.id, group_id=group.id, name=team_name))
    await db.commit()
    await db.refresh(division)
    return division


@pytest.fixture
async def admin(db):
    return await make_user(db, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def organizer(db):
    return await make_user(db, "organizer@example.com")


@pytest.fixture
async def outsider(db):
    return await make_user(db, "outsider@example.com")


@pytest.fixture
async def tournament(db, organizer):
    return await make_tournament(db, organizer)
