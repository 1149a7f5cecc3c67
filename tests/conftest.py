'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. Building a fresh in-memory SQLite schema for every test.
3. Providing an httpx AsyncClient wired to the app for endpoint testing.
4. Providing instances of all service classes, pre-injected with the test db session.
5. Seeding a small cast of users (admin, parent with a child, teacher, client).
'''
import os

# Must happen before the application (and its settings) is imported
os.environ["TEST_MODE"] = "True"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["CACHE_BACKEND"] = "memory"

import pytest
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

# --- Constant Imports ----
from tests.constants import (
    TEST_ADMIN_ID,
    TEST_PARENT_ID,
    TEST_TEACHER_ID,
    TEST_CLIENT_ID,
    TEST_CHILD_ID,
    TEST_SUBJECT_ID,
    TEST_PARENT_USERNAME,
    TEST_PARENT_EMAIL,
)
from tests.database import factories

# --- Application Imports ---
from tutor_hub_backend.main import app
from tutor_hub_backend.common.config import settings
from tutor_hub_backend.common.cache import Cache, MemoryCacheStore, get_cache
from tutor_hub_backend.database import engine as engine_module
from tutor_hub_backend.database.engine import get_db_session
from tutor_hub_backend.database.models import Base
from tutor_hub_backend.database import models as db_models
from tutor_hub_backend.services.user_service import UserService, AdminUserService
from tutor_hub_backend.services.geo_service import GeoService
from tutor_hub_backend.services.notification_service import NotificationService
from tutor_hub_backend.services.subject_service import SubjectService
from tutor_hub_backend.services.children_service import ChildrenService
from tutor_hub_backend.services.course_service import CourseService
from tutor_hub_backend.services.session_service import SessionService
from tutor_hub_backend.services.assessment_service import AssessmentService
from tutor_hub_backend.services.billing_service import BillingService
from tutor_hub_backend.services.support_service import SupportService
from tutor_hub_backend.services.homework_service import HomeworkService
from tutor_hub_backend.services.material_service import MaterialService
from tutor_hub_backend.services.profile_service import ProfileService
from tutor_hub_backend.services.dashboard_service import DashboardService
from tutor_hub_backend.services.auth_service import LoginService, RegistrationService


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio'.
    2. Promotes the scope to 'session' so function fixtures can share it.
    """
    return "asyncio"


# --- 1. Database ---

@pytest.fixture(scope="function")
async def db_engine():
    """
    Creates the app's engine and session factory against the in-memory
    test database and builds the schema. Every test starts from empty tables.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    engine_module.create_db_engine_and_session_factory()
    async with engine_module.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine_module.engine

    await engine_module.dispose_db_engine()


@pytest.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Provides a single session for service-level tests and for the factories.
    API tests reuse the same session through the get_db_session override.
    """
    session = engine_module.AsyncSessionLocal()
    factories.test_db_session = session
    try:
        yield session
    finally:
        factories.test_db_session = None
        await session.rollback()
        await session.close()


@pytest.fixture(scope="function")
def cache() -> Cache:
    """A fresh in-memory cache per test."""
    return Cache(MemoryCacheStore())


@pytest.fixture(scope="function")
def mock_geo_service() -> GeoService:
    """Provides a mock GeoService instance."""
    mock_service = MagicMock(spec=GeoService)
    mock_service.get_location_info = AsyncMock(return_value={
        "timezone": "Africa/Cairo",
        "currency": "EGP"
    })
    return mock_service


# --- 2. API Client ---

@pytest.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    mock_geo_service: GeoService,
    cache: Cache
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    An httpx client talking to the app in-process.
    The request-scoped session is replaced by the test session so data
    created by fixtures is visible to the endpoints (and vice versa).
    """
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[GeoService] = lambda: mock_geo_service
    app.dependency_overrides[get_cache] = lambda: cache

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- 3. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def user_service(db_session: AsyncSession) -> UserService:
    return UserService(db=db_session)

@pytest.fixture(scope="function")
def admin_user_service(db_session: AsyncSession) -> AdminUserService:
    return AdminUserService(db=db_session)

@pytest.fixture(scope="function")
def notification_service(db_session: AsyncSession) -> NotificationService:
    return NotificationService(db=db_session)

@pytest.fixture(scope="function")
def subject_service(db_session: AsyncSession) -> SubjectService:
    return SubjectService(db=db_session)

@pytest.fixture(scope="function")
def children_service(db_session: AsyncSession, subject_service: SubjectService) -> ChildrenService:
    return ChildrenService(db=db_session, subject_service=subject_service)

@pytest.fixture(scope="function")
def course_service(db_session: AsyncSession, subject_service: SubjectService) -> CourseService:
    return CourseService(db=db_session, subject_service=subject_service)

@pytest.fixture(scope="function")
def session_service(db_session: AsyncSession, notification_service: NotificationService) -> SessionService:
    return SessionService(db=db_session, notification_service=notification_service)

@pytest.fixture(scope="function")
def assessment_service(db_session: AsyncSession, notification_service: NotificationService) -> AssessmentService:
    return AssessmentService(db=db_session, notification_service=notification_service)

@pytest.fixture(scope="function")
def billing_service(db_session: AsyncSession, notification_service: NotificationService) -> BillingService:
    return BillingService(db=db_session, notification_service=notification_service)

@pytest.fixture(scope="function")
def support_service(db_session: AsyncSession, notification_service: NotificationService) -> SupportService:
    return SupportService(db=db_session, notification_service=notification_service)

@pytest.fixture(scope="function")
def homework_service(
    db_session: AsyncSession,
    notification_service: NotificationService,
    children_service: ChildrenService,
    subject_service: SubjectService
) -> HomeworkService:
    return HomeworkService(
        db=db_session,
        notification_service=notification_service,
        children_service=children_service,
        subject_service=subject_service,
    )

@pytest.fixture(scope="function")
def material_service(db_session: AsyncSession, subject_service: SubjectService) -> MaterialService:
    return MaterialService(db=db_session, subject_service=subject_service)

@pytest.fixture(scope="function")
def profile_service(
    db_session: AsyncSession,
    user_service: UserService,
    children_service: ChildrenService,
    subject_service: SubjectService,
    notification_service: NotificationService
) -> ProfileService:
    return ProfileService(
        db=db_session,
        user_service=user_service,
        children_service=children_service,
        subject_service=subject_service,
        notification_service=notification_service,
    )

@pytest.fixture(scope="function")
def dashboard_service(
    db_session: AsyncSession,
    session_service: SessionService,
    notification_service: NotificationService,
    billing_service: BillingService
) -> DashboardService:
    return DashboardService(
        db=db_session,
        session_service=session_service,
        notification_service=notification_service,
        billing_service=billing_service,
    )

@pytest.fixture(scope="function")
def login_service(user_service: UserService) -> LoginService:
    return LoginService(user_service=user_service)

@pytest.fixture(scope="function")
def registration_service(
    user_service: UserService,
    notification_service: NotificationService,
    mock_geo_service: GeoService
) -> RegistrationService:
    return RegistrationService(
        user_service=user_service,
        notification_service=notification_service,
        geo_service=mock_geo_service,
    )


# --- 4. DATA FIXTURES ---
# Users come back through UserService so their profiles are eager-loaded,
# exactly as the auth dependency hands them to the services.

@pytest.fixture(scope="function")
async def test_subject(db_session: AsyncSession) -> db_models.Subjects:
    subject = factories.SubjectFactory(id=TEST_SUBJECT_ID, name="Mathematics")
    await db_session.flush()
    return subject

@pytest.fixture(scope="function")
async def test_admin(db_session: AsyncSession, user_service: UserService) -> db_models.Users:
    factories.AdminFactory(id=TEST_ADMIN_ID, username="test_admin", email="admin@example.com")
    await db_session.flush()
    admin = await user_service.get_user_by_id(TEST_ADMIN_ID)
    assert admin is not None, f"Test admin with ID {TEST_ADMIN_ID} not created."
    return admin

@pytest.fixture(scope="function")
async def test_teacher(
    db_session: AsyncSession,
    user_service: UserService,
    test_subject: db_models.Subjects
) -> db_models.Users:
    """A verified teacher with a completed profile teaching the test subject."""
    teacher = factories.TeacherFactory(id=TEST_TEACHER_ID, username="test_teacher", email="teacher@example.com")
    factories.TeacherProfileFactory(user=teacher, subjects=[test_subject])
    await db_session.flush()
    teacher = await user_service.get_user_by_id(TEST_TEACHER_ID)
    assert teacher is not None and teacher.teacher_profile is not None
    return teacher

@pytest.fixture(scope="function")
async def test_parent(
    db_session: AsyncSession,
    user_service: UserService,
    test_subject: db_models.Subjects,
    test_teacher: db_models.Users
) -> db_models.Users:
    """A parent with a completed profile and one child taught by the test teacher."""
    parent = factories.ParentFactory(id=TEST_PARENT_ID, username=TEST_PARENT_USERNAME, email=TEST_PARENT_EMAIL)
    profile = factories.ParentProfileFactory(user=parent)
    factories.ChildFactory(
        id=TEST_CHILD_ID,
        name="Mona",
        parent_profile=profile,
        teacher_id=test_teacher.id,
        subjects=[test_subject],
    )
    await db_session.flush()
    parent = await user_service.get_user_by_id(TEST_PARENT_ID)
    assert parent is not None and parent.parent_profile.children, "Test parent must have a child."
    return parent

@pytest.fixture(scope="function")
async def test_child(db_session: AsyncSession, test_parent: db_models.Users) -> db_models.Children:
    child = await db_session.get(db_models.Children, TEST_CHILD_ID)
    assert child is not None
    return child

@pytest.fixture(scope="function")
async def test_client_user(db_session: AsyncSession, user_service: UserService) -> db_models.Users:
    """A client company with an approved profile."""
    client_user = factories.ClientFactory(id=TEST_CLIENT_ID, username="test_client", email="client@example.com")
    factories.ClientProfileFactory(user=client_user)
    await db_session.flush()
    client_user = await user_service.get_user_by_id(TEST_CLIENT_ID)
    assert client_user is not None and client_user.client_profile is not None
    return client_user
