"""
Demo data - four users covering every role and one pending request
"""
from datetime import timedelta
import logging

from app.purchase_requests.application.use_cases import (
    CreatePurchaseRequestCommand,
    CreatePurchaseRequestUseCase,
    PRItemInput,
)
from app.purchase_requests.domain.models import Priority
from app.users.application.use_cases import CreateUserCommand, CreateUserUseCase
from app.users.domain.models import UserRole

logger = logging.getLogger(__name__)

DEMO_USERS = [
    CreateUserCommand(
        name="John Admin",
        email="admin@titancapital.com",
        department="IT",
        position="System Administrator",
        role=UserRole.ADMIN,
    ),
    CreateUserCommand(
        name="Sarah CEO",
        email="ceo@titancapital.com",
        department="Executive",
        position="Chief Executive Officer",
        role=UserRole.C_LEVEL,
    ),
    CreateUserCommand(
        name="Mike Supervisor",
        email="supervisor@titancapital.com",
        department="Operations",
        position="Operations Manager",
        role=UserRole.SUPERVISOR,
    ),
    CreateUserCommand(
        name="Jane Employee",
        email="employee@titancapital.com",
        department="Operations",
        position="Operations Specialist",
        role=UserRole.EMPLOYEE,
    ),
]

DEMO_ITEMS = [
    PRItemInput(product_name="Office Chairs", quantity=5, unit="pieces", estimated_price=300, priority=Priority.MEDIUM),
    PRItemInput(product_name="Standing Desks", quantity=2, unit="pieces", estimated_price=1000, priority=Priority.HIGH),
]


async def seed_demo_data(user_repository, pr_repository, id_generator, clock) -> bool:
    """Insert the demo users and a PR submitted yesterday. Skipped when users already exist."""
    if await user_repository.list_users():
        return False

    create_user = CreateUserUseCase(user_repository, id_generator=id_generator, clock=clock)
    users = []
    for command in DEMO_USERS:
        users.append(await create_user.execute(command, None, bootstrap=True))

    employee = users[-1]
    create_request = CreatePurchaseRequestUseCase(
        pr_repository,
        id_generator=id_generator,
        clock=lambda: clock() - timedelta(days=1),
    )
    await create_request.execute(CreatePurchaseRequestCommand(items=DEMO_ITEMS), employee)

    logger.info("Demo data seeded: %d users, 1 purchase request", len(users))
    return True
