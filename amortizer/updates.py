"""Ordered collection of loan updates.

Updates are kept in the order they were added and addressed by id. The
collection never changes an update in place; it only adds, removes or clears
them. Pass ``list(collection)`` to ``recalculate_schedule`` to replay them.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional
from uuid import uuid4

from .data_models import LoanUpdate
from .exceptions import UpdateNotFoundError


class LoanUpdateCollection:
    """Insertion ordered store of ``LoanUpdate`` values keyed by id."""

    def __init__(self, updates: Optional[Iterable[LoanUpdate]] = None) -> None:
        self._updates: Dict[str, LoanUpdate] = {}
        for update in updates or ():
            self._insert(update)

    def _insert(self, update: LoanUpdate) -> None:
        if update.id in self:
            raise ValueError(f"Duplicate loan update id: {update.id}")
        self._updates[update.id] = update

    def add(
        self,
        principal_payment: float,
        new_interest_rate: float,
        date: date,
        update_type: str,
        update_id: Optional[str] = None,
    ) -> LoanUpdate:
        """Create an update, store it and return it.

        A random id is generated when ``update_id`` is not given.
        """
        if principal_payment <= 0:
            raise ValueError("Principal payment must be greater than 0")
        if new_interest_rate < 0:
            raise ValueError("Interest rate must not be negative")
        update = LoanUpdate(
            id=update_id or uuid4().hex,
            principal_payment=principal_payment,
            new_interest_rate=new_interest_rate,
            date=date,
            update_type=update_type,
        )
        self._insert(update)
        return update

    def remove(self, update_id: str) -> LoanUpdate:
        try:
            return self._updates.pop(update_id)
        except KeyError:
            raise UpdateNotFoundError(f"No loan update with id {update_id}") from None

    def clear(self) -> None:
        self._updates.clear()

    def get(self, update_id: str) -> Optional[LoanUpdate]:
        return self._updates.get(update_id)

    def to_list(self) -> List[LoanUpdate]:
        return list(self._updates.values())

    def __iter__(self) -> Iterator[LoanUpdate]:
        return iter(list(self._updates.values()))

    def __len__(self) -> int:
        return len(self._updates)

    def __contains__(self, update_id: object) -> bool:
        return update_id in self._updates
