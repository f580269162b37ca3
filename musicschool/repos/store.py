"""The repos one contract operation works against, bundled.

Services take a ContractStore instead of five separate repos.  Built
either in memory (tests, local dev) or on one request-scoped AsyncSession,
in which case every repo and the advisory lock share that transaction.

``savepoint()`` scopes a unit of work that may fail on its own without
aborting the request transaction (a SAVEPOINT on PostgreSQL, a no-op in
memory, where nothing is written before a group can fail).
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from musicschool.repos.contract_lock import ContractLock, InMemoryContractLock
from musicschool.repos.contract_repo import ContractRepo, InMemoryContractRepo
from musicschool.repos.directory_repo import DirectoryRepo, InMemoryDirectoryRepo
from musicschool.repos.lesson_repo import InMemoryLessonRepo, LessonRepo
from musicschool.repos.notification_repo import (
    InMemoryNotificationRepo,
    NotificationRepo,
)
from musicschool.repos.operation_repo import InMemoryOperationRepo, OperationRepo
from musicschool.repos.pg_contract_lock import PgContractLock
from musicschool.repos.pg_contract_repo import PgContractRepo
from musicschool.repos.pg_directory_repo import PgDirectoryRepo
from musicschool.repos.pg_lesson_repo import PgLessonRepo
from musicschool.repos.pg_notification_repo import PgNotificationRepo
from musicschool.repos.pg_operation_repo import PgOperationRepo


@dataclass
class ContractStore:
    contracts: ContractRepo
    lessons: LessonRepo
    notifications: NotificationRepo
    directory: DirectoryRepo
    operations: OperationRepo
    locks: ContractLock
    session: AsyncSession | None = None

    def now(self) -> int:
        return int(time.time())

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        if self.session is None:
            yield
            return
        async with self.session.begin_nested():
            yield


def in_memory_store(*, lock_timeout: float) -> ContractStore:
    return ContractStore(
        contracts=InMemoryContractRepo(),
        lessons=InMemoryLessonRepo(),
        notifications=InMemoryNotificationRepo(),
        directory=InMemoryDirectoryRepo(),
        operations=InMemoryOperationRepo(),
        locks=InMemoryContractLock(lock_timeout),
    )


def pg_store(session: AsyncSession, *, lock_timeout: float) -> ContractStore:
    return ContractStore(
        contracts=PgContractRepo(session),
        lessons=PgLessonRepo(session),
        notifications=PgNotificationRepo(session),
        directory=PgDirectoryRepo(session),
        operations=PgOperationRepo(session),
        locks=PgContractLock(session, lock_timeout),
        session=session,
    )
