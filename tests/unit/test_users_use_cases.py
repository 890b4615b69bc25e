import asyncio
from datetime import datetime, timezone

import pytest

from app.shared.errors import NotFoundError, PermissionDenied, ValidationError
from app.shared.memory_store import InMemoryStore
from app.users.application.use_cases import (
    CreateUserCommand,
    CreateUserUseCase,
    DeactivateUserUseCase,
    ListUsersUseCase,
    SwitchUserUseCase,
    UpdateUserCommand,
    UpdateUserUseCase,
)
from app.users.domain.models import User, UserRole, UserStatus
from app.users.infrastructure.memory_repository import InMemoryUserRepository

CREATED_AT = datetime(2026, 1, 17, 10, 0, tzinfo=timezone.utc)


def run(coro):
    return asyncio.run(coro)


def build():
    store = InMemoryStore()
    repo = InMemoryUserRepository(store)
    admin = User(
        id="admin",
        name="John Admin",
        email="admin@titancapital.com",
        department="IT",
        position="System Administrator",
        role=UserRole.ADMIN,
        status=UserStatus.ACTIVE,
        created_at=CREATED_AT,
    )
    store.users[admin.id] = admin
    ids = iter(f"user-{n}" for n in range(1, 100))
    create = CreateUserUseCase(repo, id_generator=lambda: next(ids), clock=lambda: CREATED_AT)
    return store, repo, admin, create


def new_user_command(**overrides):
    fields = dict(
        name="Jane Employee",
        email="Employee@TitanCapital.com",
        department="Operations",
        position="Operations Specialist",
    )
    fields.update(overrides)
    return CreateUserCommand(**fields)


def test_admin_creates_user_with_defaults():
    store, repo, admin, create = build()

    user = run(create.execute(new_user_command(), admin))

    assert user.id == "user-1"
    assert user.email == "employee@titancapital.com"
    assert user.role == UserRole.EMPLOYEE
    assert user.status == UserStatus.ACTIVE
    assert user.created_at == CREATED_AT
    assert [u.id for u in run(ListUsersUseCase(repo).execute())] == ["admin", "user-1"]


def test_only_admin_creates_users():
    store, repo, admin, create = build()
    employee = run(create.execute(new_user_command(), admin))

    with pytest.raises(PermissionDenied):
        run(create.execute(new_user_command(email="x@example.com"), employee))
    with pytest.raises(PermissionDenied):
        run(create.execute(new_user_command(email="y@example.com"), None))


@pytest.mark.parametrize("field_name", ["name", "email", "department", "position"])
def test_create_user_requires_fields(field_name):
    store, repo, admin, create = build()

    with pytest.raises(ValidationError):
        run(create.execute(new_user_command(**{field_name: "  "}), admin))

    assert list(store.users) == ["admin"]


def test_create_user_rejects_duplicate_email():
    store, repo, admin, create = build()

    with pytest.raises(ValidationError):
        run(create.execute(new_user_command(email="ADMIN@titancapital.com"), admin))


def test_update_user_merges_given_fields():
    store, repo, admin, create = build()
    user = run(create.execute(new_user_command(), admin))

    updated = run(
        UpdateUserUseCase(repo).execute(
            user.id,
            UpdateUserCommand(position="Team Lead", role=UserRole.SUPERVISOR),
            admin,
        )
    )

    assert updated.position == "Team Lead"
    assert updated.role == UserRole.SUPERVISOR
    assert updated.name == user.name
    assert updated.id == user.id
    assert updated.created_at == user.created_at
    assert store.users[user.id] == updated


def test_update_user_errors():
    store, repo, admin, create = build()
    user = run(create.execute(new_user_command(), admin))
    use_case = UpdateUserUseCase(repo)

    with pytest.raises(NotFoundError):
        run(use_case.execute("ghost", UpdateUserCommand(name="x"), admin))
    with pytest.raises(PermissionDenied):
        run(use_case.execute(user.id, UpdateUserCommand(name="x"), user))
    with pytest.raises(ValidationError):
        run(use_case.execute(user.id, UpdateUserCommand(email="admin@titancapital.com"), admin))
    with pytest.raises(ValidationError):
        run(use_case.execute(user.id, UpdateUserCommand(name=""), admin))


def test_deactivated_user_is_kept_but_cannot_switch_in():
    store, repo, admin, create = build()
    user = run(create.execute(new_user_command(), admin))

    deactivated = run(DeactivateUserUseCase(repo).execute(user.id, admin))

    assert deactivated.status == UserStatus.INACTIVE
    assert user.id in store.users
    with pytest.raises(PermissionDenied):
        run(SwitchUserUseCase(repo).execute(user_id=user.id))


def test_switch_user_by_id_or_email():
    store, repo, admin, create = build()
    switch = SwitchUserUseCase(repo)

    assert run(switch.execute(user_id="admin")) == admin
    assert run(switch.execute(email="Admin@TitanCapital.com")) == admin
    with pytest.raises(NotFoundError):
        run(switch.execute(user_id="ghost"))
    with pytest.raises(ValidationError):
        run(switch.execute())
