from typing import Callable, List, Optional, Sequence

from app.shared.memory_store import InMemoryStore
from app.users.application.ports import UserRepository
from app.users.domain.models import User


class InMemoryUserRepository(UserRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._pending: List[Callable[[], None]] = []

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._store.users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        for user in self._store.users.values():
            if user.email.lower() == email:
                return user
        return None

    async def list_users(self) -> Sequence[User]:
        return list(self._store.users.values())

    async def add_user(self, user: User) -> None:
        self._pending.append(lambda: self._store.users.__setitem__(user.id, user))

    async def update_user(self, user: User) -> None:
        self._pending.append(lambda: self._store.users.__setitem__(user.id, user))

    async def commit(self) -> None:
        pending, self._pending = self._pending, []
        for apply in pending:
            apply()
