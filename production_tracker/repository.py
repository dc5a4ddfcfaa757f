"""Repositories persisting orders as whole JSON documents."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, MutableMapping, Optional

from .domain import Order, User
from .exceptions import MalformedDocumentError
from .serialization import dumps_orders, dumps_user, loads_orders, loads_user

logger = logging.getLogger(__name__)

ORDERS_KEY = "orders"
CURRENT_USER_KEY = "current_user"


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class InMemoryDocumentStore:
    """Key-value document store backed by a simple dictionary."""

    def __init__(self) -> None:
        self._documents: MutableMapping[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._documents.get(key)

    def write(self, key: str, text: str) -> None:
        self._documents[key] = text

    def delete(self, key: str) -> None:
        self._documents.pop(key, None)


class OrderRepository:
    """Loads and saves the orders collection and the current-user pointer.

    Every write replaces the whole stored document; concurrent writers are
    not detected and the last write wins. A stored document that cannot be
    parsed is treated as absent data.
    """

    def __init__(self, store=None) -> None:
        self._store = store if store is not None else InMemoryDocumentStore()

    @property
    def store(self):
        return self._store

    # ------------------------------------------------------------------
    # Whole-collection access
    # ------------------------------------------------------------------
    def has_orders_document(self) -> bool:
        return self._store.read(ORDERS_KEY) is not None

    def load(self) -> List[Order]:
        text = self._store.read(ORDERS_KEY)
        if text is None:
            return []
        try:
            return loads_orders(text)
        except MalformedDocumentError as exc:
            logger.warning("Failed to parse stored orders, starting empty: %s", exc)
            return []

    def save(self, orders: List[Order]) -> None:
        self._store.write(ORDERS_KEY, dumps_orders(list(orders)))

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[Order]:
        return iter(self.load())

    def __len__(self) -> int:
        return len(self.load())

    def __contains__(self, order_id: object) -> bool:
        return any(order.id == order_id for order in self.load())

    def list(self) -> List[Order]:
        return self.load()

    def get(self, order_id: str) -> Order:
        for order in self.load():
            if order.id == order_id:
                return order
        raise RecordNotFoundError(f"Order with id {order_id!r} not found")

    def add(self, order: Order) -> None:
        orders = self.load()
        if any(existing.id == order.id for existing in orders):
            raise DuplicateRecordError(
                f"Order with id {order.id!r} already exists. Use update instead."
            )
        orders.append(order)
        self.save(orders)

    def update(self, order: Order) -> None:
        orders = self.load()
        for index, existing in enumerate(orders):
            if existing.id == order.id:
                orders[index] = order
                self.save(orders)
                return
        raise RecordNotFoundError(f"Order with id {order.id!r} not found")

    def remove(self, order_id: str) -> None:
        orders = self.load()
        remaining = [order for order in orders if order.id != order_id]
        if len(remaining) == len(orders):
            raise RecordNotFoundError(f"Order with id {order_id!r} not found")
        self.save(remaining)

    def by_number(self) -> Dict[str, Order]:
        return {order.order_number: order for order in self.load()}

    # ------------------------------------------------------------------
    # Current user pointer
    # ------------------------------------------------------------------
    def load_current_user(self) -> Optional[User]:
        text = self._store.read(CURRENT_USER_KEY)
        if text is None:
            return None
        try:
            return loads_user(text)
        except MalformedDocumentError as exc:
            logger.warning("Failed to parse stored current user, ignoring it: %s", exc)
            return None

    def save_current_user(self, user: Optional[User]) -> None:
        if user is None:
            self._store.delete(CURRENT_USER_KEY)
        else:
            self._store.write(CURRENT_USER_KEY, dumps_user(user))


__all__ = [
    "InMemoryDocumentStore",
    "OrderRepository",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
    "ORDERS_KEY",
    "CURRENT_USER_KEY",
]
