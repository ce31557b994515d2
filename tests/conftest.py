"""Shared fixtures: in-memory SQLite store seeded with the default catalog."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import landrecords.models  # noqa: F401
from landrecords.core.security import hash_password
from landrecords.db.base import Base
from landrecords.db.immutability import register_immutability_listeners, unregister_immutability_listeners
from landrecords.db.seeds.seed_roles import seed_roles
from landrecords.db.seeds.seed_super_admin import seed_super_admin
from landrecords.db.seeds.seed_sample_data import seed_sample_data
from landrecords.models.permission import Permission, RolePermission
from landrecords.models.property import Property
from landrecords.models.role import Role
from landrecords.models.user import User

# One cheap hash shared by every fixture user
TEST_PASSWORD = "secret123"
_TEST_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
def engine():
    """In-memory database shared across threads (needed by TestClient)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    register_immutability_listeners()
    yield engine
    unregister_immutability_listeners()
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """Create test database session"""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db_session):
    """Catalog, default roles, the super admin and sample properties."""
    seed_roles(db_session)
    admin = seed_super_admin(db_session)
    seed_sample_data(db_session)
    return admin


@pytest.fixture
def admin(seeded):
    return seeded


@pytest.fixture
def sample_property(db_session, seeded):
    return db_session.query(Property).filter(Property.title_number == "TCT-T-1001").one()


def get_role(db, name):
    return db.query(Role).filter(Role.name == name).one()


def permission_ids(db, *pairs):
    ids = []
    for module, action in pairs:
        perm = db.query(Permission).filter(Permission.module == module, Permission.action == action).one()
        ids.append(perm.id)
    return ids


def make_role(db, name, *pairs, is_system=False, bypass=False):
    role = Role(name=name, is_system=is_system, is_active=True, bypass_all_checks=bypass)
    role.permissions = [RolePermission(permission_id=pid) for pid in permission_ids(db, *pairs)]
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def make_user(db, email, role, is_active=True):
    user = User(
        email=email,
        hashed_password=_TEST_HASH,
        first_name=email.split("@")[0].title(),
        last_name="Tester",
        role_id=role.id,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def clerk(db_session, seeded):
    """Actor whose role holds (property, read) only."""
    role = make_role(db_session, "Clerk", ("property", "read"))
    return make_user(db_session, "clerk@example.com", role)


@pytest.fixture
def manager(db_session, seeded):
    return make_user(db_session, "manager@example.com", get_role(db_session, "Property Manager"))


@pytest.fixture
def approver(db_session, seeded):
    return make_user(db_session, "approver@example.com", get_role(db_session, "Approver"))


@pytest.fixture
def role_factory(db_session, seeded):
    def factory(name, *pairs, is_system=False, bypass=False):
        return make_role(db_session, name, *pairs, is_system=is_system, bypass=bypass)
    return factory


@pytest.fixture
def user_factory(db_session, seeded):
    def factory(email, role, is_active=True):
        return make_user(db_session, email, role, is_active=is_active)
    return factory


@pytest.fixture
def perm_ids(db_session, seeded):
    def lookup(*pairs):
        return permission_ids(db_session, *pairs)
    return lookup


@pytest.fixture
def role_named(db_session, seeded):
    def lookup(name):
        return get_role(db_session, name)
    return lookup
