"""
Research Grants Portal - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import AsyncGenerator, Callable
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from faker import Faker

# Set testing environment (before the app reads its settings)
os.environ['ENVIRONMENT'] = 'test'
os.environ['DEBUG'] = 'false'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET'] = 'test-jwt-secret-for-testing-only'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['UPLOAD_DIR'] = tempfile.mkdtemp(prefix='grants-portal-uploads-')

from grantsportal.main import app
from grantsportal.core.database import Base, get_db
from grantsportal.models.user import User, UserRole
from grantsportal.core.security import get_password_hash, create_access_token

fake = Faker()

TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
TEST_PASSWORD = 'testpassword123'


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema for each test"""
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable:
    """Factory creating a persisted user with the given role"""
    async def _make_user(role: UserRole = UserRole.PUBLIC, is_active: bool = True, **overrides) -> User:
        data = dict(
            username=fake.unique.user_name(),
            email=fake.unique.email(),
            hashed_password=get_password_hash(TEST_PASSWORD),
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            institution=fake.company(),
            role=role,
            is_active=is_active,
        )
        data.update(overrides)
        user = User(**data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


def headers_for(user: User) -> dict:
    """Bearer headers for a user"""
    token = create_access_token({'sub': str(user.id), 'role': user.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user(UserRole.ADMIN)


@pytest.fixture
async def validator_user(make_user) -> User:
    return await make_user(UserRole.VALIDATOR)


@pytest.fixture
async def pi_user(make_user) -> User:
    return await make_user(UserRole.PI)


@pytest.fixture
async def other_pi_user(make_user) -> User:
    return await make_user(UserRole.PI)


@pytest.fixture
async def public_user(make_user) -> User:
    return await make_user(UserRole.PUBLIC)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def validator_headers(validator_user: User) -> dict:
    return headers_for(validator_user)


@pytest.fixture
def pi_headers(pi_user: User) -> dict:
    return headers_for(pi_user)


@pytest.fixture
def other_pi_headers(other_pi_user: User) -> dict:
    return headers_for(other_pi_user)


@pytest.fixture
def public_headers(public_user: User) -> dict:
    return headers_for(public_user)


@pytest.fixture
def project_payload() -> Callable:
    """Factory for a project create body"""
    def _payload(**overrides) -> dict:
        data = {
            'title': fake.sentence(nb_words=6),
            'discipline': 'Generative AI',
            'scheme': 'Start-up Research Grant (SRG)',
            'project_summary': fake.paragraph(),
            'principal_investigators': [{
                'name': fake.name(),
                'designation': 'Professor',
                'email': fake.email(),
                'institute_name': 'IIT Mandi',
                'department': 'Computer Science',
                'affiliation_type': 'Institute',
            }],
            'budget': {'sanction_year': 2024, 'total_amount': 1500000},
        }
        data.update(overrides)
        return data

    return _payload
