"""Keyed in-process locks.

Each storefront mutation is serialized per business key (customer, order or
payment intent). The lock is taken outside ``current_domain.process`` so the
handler's unit of work has committed by the time it is released, and the
next holder always reads committed state.

Locks are re-entrant: a coordinator holding an order lock may dispatch a
command that takes the same lock on the same thread.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from protean.utils.globals import current_domain


class KeyedLocks:
    def __init__(self, name: str) -> None:
        self.name = name
        self._guard = threading.Lock()
        self._locks: dict = {}

    def _lock_for(self, key: str):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key) -> Iterator[None]:
        with self._lock_for(str(key)):
            yield

    def __len__(self) -> int:
        return len(self._locks)


# Lock ordering when more than one is needed: customer → order → payment intent
customer_locks = KeyedLocks("customer")
order_locks = KeyedLocks("order")
intent_locks = KeyedLocks("payment_intent")

_serialized_commands: dict[type, tuple[KeyedLocks, str]] = {}


def serialized_on(locks: KeyedLocks, attribute: str):
    """Register a command class as serialized on ``locks[command.<attribute>]``."""

    def register(command_cls):
        _serialized_commands[command_cls] = (locks, attribute)
        return command_cls

    return register


def dispatch(command):
    """Process ``command`` synchronously while holding its key's lock."""
    registered = _serialized_commands.get(type(command))
    if registered is None:
        return current_domain.process(command, asynchronous=False)

    locks, attribute = registered
    with locks.hold(getattr(command, attribute)):
        return current_domain.process(command, asynchronous=False)
