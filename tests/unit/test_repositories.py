"""Workflow flows run against both storage backends.

The SQL backend uses a SQLite file through aiosqlite with the production
table definitions.
"""
import asyncio
import itertools
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.purchase_requests.application.use_cases import (
    MAX_NUMBERING_ATTEMPTS,
    CreatePurchaseRequestCommand,
    CreatePurchaseRequestUseCase,
    DecidePurchaseRequestUseCase,
    PRItemInput,
)
from app.purchase_requests.domain.models import Decision, PRStatus, RequestFilters
from app.purchase_requests.domain.visibility import NOTHING, RequestScope, scope_for
from app.purchase_requests.domain.workflow import format_pr_number
from app.purchase_requests.infrastructure.memory_repository import (
    InMemoryPurchaseRequestRepository,
)
from app.purchase_requests.infrastructure.sqlalchemy_repository import (
    SqlAlchemyPurchaseRequestRepository,
)
from app.shared.errors import ConflictError, InvalidTransition
from app.shared.memory_store import InMemoryStore
from app.users.domain.models import User, UserRole, UserStatus
from app.users.infrastructure.memory_repository import InMemoryUserRepository
from app.users.infrastructure.sqlalchemy_repository import SqlAlchemyUserRepository
from database import Base

DIRECTORY_START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_user(user_id, role, department, minutes):
    return User(
        id=user_id,
        name=f"User {user_id}",
        email=f"{user_id}@example.com",
        department=department,
        position="Staff",
        role=role,
        status=UserStatus.ACTIVE,
        created_at=DIRECTORY_START + timedelta(minutes=minutes),
    )


ADMIN = make_user("admin", UserRole.ADMIN, "IT", 0)
CEO = make_user("ceo", UserRole.C_LEVEL, "Executive", 1)
SUPERVISOR = make_user("sup", UserRole.SUPERVISOR, "Operations", 2)
EMPLOYEE = make_user("emp", UserRole.EMPLOYEE, "Operations", 3)
FIN_EMPLOYEE = make_user("fin", UserRole.EMPLOYEE, "Finance", 4)
# Sorts before "admin" by id but joined later.
LATE_ADMIN = make_user("0-admin", UserRole.ADMIN, "IT", 5)
DIRECTORY = [ADMIN, CEO, SUPERVISOR, EMPLOYEE, FIN_EMPLOYEE, LATE_ADMIN]

DEFAULT_ITEMS = [
    PRItemInput(product_name="Paper", quantity=2, estimated_price=10.5),
    PRItemInput(product_name="Toner", quantity=3, estimated_price=100),
]


class MemoryBackend:
    def __init__(self) -> None:
        self.store = InMemoryStore()

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    @asynccontextmanager
    async def repositories(self):
        yield InMemoryUserRepository(self.store), InMemoryPurchaseRequestRepository(self.store)


class SqliteBackend:
    def __init__(self, path) -> None:
        self.url = f"sqlite+aiosqlite:///{path}"
        self.engine = None
        self.session_maker = None

    async def start(self) -> None:
        self.engine = create_async_engine(self.url)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def stop(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def repositories(self):
        async with self.session_maker() as session:
            yield SqlAlchemyUserRepository(session), SqlAlchemyPurchaseRequestRepository(session)


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        return MemoryBackend()
    return SqliteBackend(tmp_path / "workflow.db")


@pytest.fixture
def sqlite_backend(tmp_path):
    return SqliteBackend(tmp_path / "workflow.db")


class Workflow:
    """Runs each operation in its own unit of work, as a request handler would."""

    def __init__(self, backend) -> None:
        self.backend = backend
        self.now = datetime(2026, 1, 17, 10, 0, tzinfo=timezone.utc)
        counter = itertools.count(1)
        self.ids = lambda: f"id-{next(counter)}"

    def clock(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> None:
        self.now += timedelta(**(kwargs or {"minutes": 1}))

    async def add_directory(self) -> None:
        async with self.backend.repositories() as (users, _):
            for user in DIRECTORY:
                await users.add_user(user)
            await users.commit()

    async def create(self, requester, items=None):
        self.tick()
        async with self.backend.repositories() as (_, repo):
            use_case = CreatePurchaseRequestUseCase(repo, self.ids, self.clock)
            command = CreatePurchaseRequestCommand(items=items or DEFAULT_ITEMS)
            return await use_case.execute(command, requester)

    async def decide(self, pr_id, decision, actor, comment=None):
        self.tick()
        async with self.backend.repositories() as (_, repo):
            use_case = DecidePurchaseRequestUseCase(repo, self.ids, self.clock)
            return await use_case.execute(pr_id, decision, actor, comment)

    async def get(self, pr_id):
        async with self.backend.repositories() as (_, repo):
            return await repo.get_request(pr_id)

    async def listed_ids(self, scope, filters=None):
        async with self.backend.repositories() as (_, repo):
            requests = await repo.list_requests(scope, filters or RequestFilters())
            return [pr.id for pr in requests]

    async def notifications_for(self, user_id):
        async with self.backend.repositories() as (_, repo):
            return await repo.list_notifications(user_id)


def run_workflow(backend, scenario):
    async def main():
        await backend.start()
        try:
            workflow = Workflow(backend)
            await workflow.add_directory()
            await scenario(workflow)
        finally:
            await backend.stop()

    asyncio.run(main())


def test_user_directory(backend):
    async def scenario(wf):
        async with backend.repositories() as (users, repo):
            assert [u.id for u in await users.list_users()] == [u.id for u in DIRECTORY]
            assert (await users.get_user_by_email("EMP@Example.com")).id == "emp"
            assert await users.get_user("ghost") is None
            assert (await repo.find_admin()).id == "admin"

            await users.update_user(replace(EMPLOYEE, role=UserRole.SUPERVISOR, position="Lead"))
            await users.commit()

        async with backend.repositories() as (users, _):
            updated = await users.get_user("emp")
            assert updated.role == UserRole.SUPERVISOR
            assert updated.position == "Lead"
            assert updated.department == "Operations"

    run_workflow(backend, scenario)


def test_pr_numbers_restart_each_day(backend):
    async def scenario(wf):
        first = await wf.create(EMPLOYEE)
        second = await wf.create(FIN_EMPLOYEE)
        wf.tick(days=1)
        next_day = await wf.create(EMPLOYEE)

        assert [first.pr_number, second.pr_number, next_day.pr_number] == [
            "PR-2026011701",
            "PR-2026011702",
            "PR-2026011801",
        ]

    run_workflow(backend, scenario)


def test_scopes_select_the_same_requests_as_the_domain_rules(backend):
    async def scenario(wf):
        ops_step1 = await wf.create(EMPLOYEE)
        fin_step1 = await wf.create(FIN_EMPLOYEE)
        fin_step2 = await wf.create(FIN_EMPLOYEE)
        await wf.decide(fin_step2.id, Decision.APPROVED, ADMIN)
        ops_done = await wf.create(EMPLOYEE)
        await wf.decide(ops_done.id, Decision.APPROVED, SUPERVISOR)
        await wf.decide(ops_done.id, Decision.APPROVED, CEO)
        fin_rejected = await wf.create(FIN_EMPLOYEE)
        await wf.decide(fin_rejected.id, Decision.REJECTED, ADMIN, "Over budget")

        async with backend.repositories() as (_, repo):
            everything = await repo.list_requests(RequestScope(everything=True), RequestFilters())

        assert [pr.id for pr in everything] == [
            fin_rejected.id,
            ops_done.id,
            fin_step2.id,
            fin_step1.id,
            ops_step1.id,
        ]
        for user in (ADMIN, CEO, SUPERVISOR, EMPLOYEE, FIN_EMPLOYEE):
            scope = scope_for(user)
            expected = [pr.id for pr in everything if scope.matches(pr)]
            assert await wf.listed_ids(scope) == expected, user.role

        assert await wf.listed_ids(scope_for(CEO)) == [fin_step2.id]
        assert await wf.listed_ids(scope_for(SUPERVISOR)) == [
            ops_done.id,
            fin_step1.id,
            ops_step1.id,
        ]
        assert await wf.listed_ids(NOTHING) == []

    run_workflow(backend, scenario)


def test_search_and_status_filters(backend):
    async def scenario(wf):
        ops = await wf.create(EMPLOYEE)
        fin = await wf.create(FIN_EMPLOYEE)
        everything = RequestScope(everything=True)

        assert await wf.listed_ids(everything, RequestFilters(search="FINANCE")) == [fin.id]
        assert await wf.listed_ids(everything, RequestFilters(search=ops.pr_number.lower())) == [ops.id]
        assert await wf.listed_ids(everything, RequestFilters(search="_")) == []
        assert await wf.listed_ids(everything, RequestFilters(search="%")) == []
        assert await wf.listed_ids(everything, RequestFilters(search="  ")) == [fin.id, ops.id]
        assert await wf.listed_ids(everything, RequestFilters(status=PRStatus.APPROVED)) == []
        assert await wf.listed_ids(
            everything, RequestFilters(status=PRStatus.PENDING, search="user")
        ) == [fin.id, ops.id]

    run_workflow(backend, scenario)


def test_request_history_is_read_back_in_order(backend):
    async def scenario(wf):
        items = [
            PRItemInput(product_name="Paper", quantity=1, estimated_price=5),
            PRItemInput(product_name="Toner", quantity=2, estimated_price=50),
            PRItemInput(product_name="Stapler", quantity=3, estimated_price=7),
        ]
        request = await wf.create(EMPLOYEE, items)
        await wf.decide(request.id, Decision.APPROVED, SUPERVISOR, "ok")
        await wf.decide(request.id, Decision.APPROVED, CEO)

        stored = await wf.get(request.id)

        assert stored.status == PRStatus.APPROVED
        assert stored.current_step == 2
        assert stored.total_amount == 126
        assert [item.product_name for item in stored.items] == ["Paper", "Toner", "Stapler"]
        assert [(a.step, a.approver_id, a.comment) for a in stored.approvals] == [
            (1, "sup", "ok"),
            (2, "ceo", None),
        ]
        assert [entry.action for entry in stored.audit_log] == [
            "PR Created",
            "Step 1 Approved",
            "Step 2 Approved",
        ]
        assert len(await wf.notifications_for("emp")) == 3
        assert len(await wf.notifications_for("admin")) == 3
        assert await wf.notifications_for("0-admin") == []

    run_workflow(backend, scenario)


def test_decision_on_a_stale_read_is_refused(backend):
    async def scenario(wf):
        request = await wf.create(EMPLOYEE)
        read_before_approval = await wf.get(request.id)
        await wf.decide(request.id, Decision.APPROVED, SUPERVISOR)

        async with backend.repositories() as (_, repo):
            async def stale_get_request(pr_id):
                return read_before_approval

            repo.get_request = stale_get_request
            use_case = DecidePurchaseRequestUseCase(repo, wf.ids, wf.clock)
            with pytest.raises(InvalidTransition):
                await use_case.execute(request.id, Decision.REJECTED, ADMIN, "Too late")

        stored = await wf.get(request.id)
        assert stored.status == PRStatus.PENDING
        assert stored.current_step == 2
        assert [(a.step, a.decision) for a in stored.approvals] == [(1, Decision.APPROVED)]
        assert [entry.action for entry in stored.audit_log] == ["PR Created", "Step 1 Approved"]
        assert len(await wf.notifications_for("emp")) == 2

    run_workflow(backend, scenario)


def test_clashing_pr_number_is_retried(sqlite_backend):
    async def scenario(wf):
        first = await wf.create(EMPLOYEE)
        wf.tick()

        async with sqlite_backend.repositories() as (_, repo):
            next_number = repo.get_next_pr_number
            calls = []

            async def number_already_taken(date_key):
                calls.append(date_key)
                if len(calls) == 1:
                    return format_pr_number(date_key, 1), 1
                return await next_number(date_key)

            repo.get_next_pr_number = number_already_taken
            use_case = CreatePurchaseRequestUseCase(repo, wf.ids, wf.clock)
            second = await use_case.execute(
                CreatePurchaseRequestCommand(items=DEFAULT_ITEMS), FIN_EMPLOYEE
            )

        assert len(calls) == 2
        assert first.pr_number == "PR-2026011701"
        assert second.pr_number == "PR-2026011702"
        stored = await wf.get(second.id)
        assert stored.pr_number == "PR-2026011702"
        assert len(stored.items) == 2

    run_workflow(sqlite_backend, scenario)


def test_numbering_gives_up_after_repeated_clashes(sqlite_backend):
    async def scenario(wf):
        await wf.create(EMPLOYEE)
        wf.tick()

        async with sqlite_backend.repositories() as (_, repo):
            calls = []

            async def always_taken(date_key):
                calls.append(date_key)
                return format_pr_number(date_key, 1), 1

            repo.get_next_pr_number = always_taken
            use_case = CreatePurchaseRequestUseCase(repo, wf.ids, wf.clock)
            with pytest.raises(ConflictError):
                await use_case.execute(
                    CreatePurchaseRequestCommand(items=DEFAULT_ITEMS), FIN_EMPLOYEE
                )

        assert len(calls) == MAX_NUMBERING_ATTEMPTS
        assert len(await wf.listed_ids(RequestScope(everything=True))) == 1

    run_workflow(sqlite_backend, scenario)
