"""
Per-account cooldown for authentication attempts.

A CooldownLimiter admits an attempt for an identifier only when no earlier
attempt was admitted within the window. Rejected attempts do not refresh
the timestamp. Storage is pluggable: InMemoryCooldownStore for a single
process, SqlCooldownStore for instances sharing a database.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import delete, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from database import AuthCooldown, init_db, make_engine, make_session_factory
from logic.config import AUTH_COOLDOWN_MS

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Get current time in milliseconds since epoch.

    Returns:
        Current timestamp in milliseconds.
    """
    return int(time.time() * 1000)


class InMemoryCooldownStore:
    """Process-local cooldown map.

    Once the map holds more than `max_entries` keys, entries older than the
    window are dropped on the next write. Such entries can no longer block an
    attempt, so pruning never changes an outcome.
    """

    def __init__(self, max_entries: int = 10_000):
        self.max_entries = max_entries
        self._entries: Dict[Tuple[str, str], int] = {}

    def get(self, namespace: str, identifier: str) -> Optional[int]:
        return self._entries.get((namespace, identifier))

    def try_acquire(self, namespace: str, identifier: str, timestamp_ms: int, window_ms: int) -> bool:
        """Record the attempt unless one was admitted less than `window_ms` earlier."""
        last = self._entries.get((namespace, identifier))
        if last is not None and timestamp_ms - last < window_ms:
            return False
        self._entries[(namespace, identifier)] = timestamp_ms
        if len(self._entries) > self.max_entries:
            self.prune(timestamp_ms - window_ms)
        return True

    def prune(self, older_than_ms: int) -> int:
        expired = [key for key, ts in self._entries.items() if ts <= older_than_ms]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Pruned %d expired cooldown entries", len(expired))
        return len(expired)

    def __len__(self):
        return len(self._entries)


class SqlCooldownStore:
    """Cooldown map kept in the auth_cooldowns table.

    Admission is a single conditional UPDATE, or an INSERT for a first
    attempt, so instances sharing the table cannot both admit the same
    identifier inside one window.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, namespace: str, identifier: str) -> Optional[int]:
        db = self.session_factory()
        try:
            row = db.get(AuthCooldown, (namespace, identifier))
            return row.last_attempt_ms if row else None
        finally:
            db.close()

    def try_acquire(self, namespace: str, identifier: str, timestamp_ms: int, window_ms: int) -> bool:
        db = self.session_factory()
        try:
            result = db.execute(
                update(AuthCooldown)
                .where(
                    AuthCooldown.namespace == namespace,
                    AuthCooldown.identifier == identifier,
                    AuthCooldown.last_attempt_ms <= timestamp_ms - window_ms,
                )
                .values(last_attempt_ms=timestamp_ms)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                db.commit()
                return True

            # No expired row: either a first attempt or one still cooling down
            try:
                db.execute(
                    insert(AuthCooldown).values(
                        namespace=namespace,
                        identifier=identifier,
                        last_attempt_ms=timestamp_ms,
                    )
                )
                db.commit()
            except IntegrityError:
                db.rollback()
                return False
            return True
        finally:
            db.close()

    def prune(self, older_than_ms: int) -> int:
        db = self.session_factory()
        try:
            result = db.execute(
                delete(AuthCooldown).where(AuthCooldown.last_attempt_ms <= older_than_ms)
            )
            db.commit()
            return result.rowcount or 0
        finally:
            db.close()


class CooldownLimiter:
    """Admit at most one authentication attempt per identifier per window.

    Args:
        store: Backing store (InMemoryCooldownStore or SqlCooldownStore).
        namespace: Route name, so routes sharing a store keep separate maps.
        window_ms: Cooldown length in milliseconds.
        clock: Millisecond clock, injectable for tests.
    """

    def __init__(
        self,
        store,
        namespace: str,
        window_ms: int = AUTH_COOLDOWN_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.namespace = namespace
        self.window_ms = window_ms
        self.clock = clock

    def hit(self, identifier: str) -> bool:
        """Record an attempt if the identifier is not cooling down.

        Exactly `window_ms` after the last admitted attempt a new one is allowed.

        Returns:
            True if the attempt is admitted, False if it must be rejected.
        """
        if not self.store.try_acquire(self.namespace, identifier, self.clock(), self.window_ms):
            logger.warning("Cooldown active on %s for %s", self.namespace, identifier)
            return False
        return True

    def remaining_ms(self, identifier: str) -> int:
        last = self.store.get(self.namespace, identifier)
        if last is None:
            return 0
        return max(0, self.window_ms - (self.clock() - last))


def build_store(settings):
    """Create the cooldown store selected by COOLDOWN_STORE."""
    if settings.cooldown_store == "sql":
        engine = make_engine(settings.database_url)
        init_db(engine)
        return SqlCooldownStore(make_session_factory(engine))
    if settings.cooldown_store != "memory":
        logger.warning("Unknown COOLDOWN_STORE %r, using memory", settings.cooldown_store)
    return InMemoryCooldownStore(max_entries=settings.cooldown_max_entries)
