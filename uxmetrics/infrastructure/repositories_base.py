# uxmetrics/infrastructure/repositories_base.py
from __future__ import annotations

import builtins
import secrets
import string
import time
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

from .exceptions import IntegrityError

T = TypeVar("T")  # ORM model type

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str) -> str:
    """
    Build an id of the form ``{prefix}-{epoch_ms}-{6 random chars}``.

    Example:
        >>> generate_id("study")  # doctest: +SKIP
        'study-1718000000000-k3j9x2'
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class BaseRepository(Generic[T]):
    """
    Generic repository over one ORM model with string primary keys.

    Entity repositories set ``model`` and ``id_prefix`` and add their own
    queries; the session is injected and never committed here.
    """

    model: type[T]  # must be set by subclasses
    id_prefix: str = "item"

    def __init__(self, session: Session):
        if not hasattr(self, "model") or self.model is None:
            raise ValueError(f"{self.__class__.__name__}.model must be set to an ORM class.")
        self.s = session

    # ---------- Ids ----------
    def new_id(self) -> str:
        """Generate an id that is not yet used by this table."""
        while True:
            candidate = generate_id(self.id_prefix)
            if self.s.get(self.model, candidate) is None:
                return candidate

    # ---------- Read ----------
    def get(self, id_: Any) -> T | None:
        return self.s.get(self.model, id_)

    def list(
        self,
        *filters: Any,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
    ) -> builtins.list[T]:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        if order_by:
            for ob in order_by:
                q = q.order_by(ob)
        if limit:
            q = q.limit(limit)
        return list(q.all())

    def exists(self, *filters: Any) -> bool:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        return bool(self.s.query(q.exists()).scalar())

    def count(self, *filters: Any) -> int:
        q = self.s.query(self.model)
        for f in filters:
            q = q.filter(f)
        return int(q.count())

    # ---------- Write ----------
    def create(self, **fields: Any) -> T:
        """Insert a row; a missing ``id`` is generated, a taken one is rejected."""
        id_ = fields.get("id")
        if id_ is None:
            fields["id"] = self.new_id()
        elif self.s.get(self.model, id_) is not None:
            raise IntegrityError(
                f'{self.model.__name__} with id "{id_}" already exists', constraint="unique"
            )
        obj = self.model(**fields)
        self.s.add(obj)
        self.s.flush()
        return obj

    def update(self, obj: T, **fields: Any) -> T:
        for k, v in fields.items():
            setattr(obj, k, v)
        self.s.flush()
        return obj

    def delete(self, obj: T) -> None:
        self.s.delete(obj)
        self.s.flush()

    def clear(self) -> int:
        """Delete every row of this table and return how many were removed."""
        rows = self.s.query(self.model).all()
        for obj in rows:
            self.s.delete(obj)
        self.s.flush()
        return len(rows)
