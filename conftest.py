import os
from contextlib import contextmanager
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "tests-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models import User, UserRole
from app.utils.permissions import Principal
from app.utils.security import create_access_token, hash_password
from main import app

T0 = datetime(2026, 3, 2, 9, 0, 0)


class FakeClock:
    """Settable clock handed to the services in place of utcnow"""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return FakeClock()


def make_user(db, name, email, role=UserRole.EMPLOYEE, is_active=True, password="password123"):
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        role=role.value,
        department="Engineering",
        position="Engineer" if role == UserRole.EMPLOYEE else "Manager",
        is_active=is_active,
        tasks_completed=0,
        productivity_score=0.0,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin(db):
    return make_user(db, "Alice Admin", "alice@example.com", role=UserRole.ADMIN)


@pytest.fixture()
def employee(db):
    return make_user(db, "Eve Employee", "eve@example.com")


@pytest.fixture()
def other_employee(db):
    return make_user(db, "Oscar Other", "oscar@example.com")


@pytest.fixture()
def admin_principal(admin):
    return Principal.from_user(admin)


@pytest.fixture()
def employee_principal(employee):
    return Principal.from_user(employee)


@pytest.fixture()
def other_principal(other_employee):
    return Principal.from_user(other_employee)


@pytest.fixture()
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@contextmanager
def intercept(engine, matches, action, once=False):
    """Call ``action(cursor)`` just before each statement accepted by ``matches``.

    ``cursor`` is the raw DBAPI cursor about to run the statement, so
    ``cursor.connection.cursor()`` can write inside the same transaction the
    way a concurrent request would. Raising from ``action`` fails the statement.
    """
    fired = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if matches(statement) and not (once and fired):
            fired.append(statement)
            action(cursor)

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    try:
        yield fired
    finally:
        event.remove(engine, "before_cursor_execute", before_cursor_execute)
