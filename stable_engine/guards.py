"""
guards.py - Composable call capabilities

Two small capabilities that mutating entry points compose with instead of
inheriting from base classes:

- CallGuard: mutual exclusion around a mutating entry point. Acquired on entry,
  released on every exit path. A second acquisition while held raises
  ReentrantCall, so a collaborator that calls back into the engine mid-update
  cannot observe or mutate half-applied state.
- require_owner: predicate for privileged calls (e.g., stable token mint/burn).
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional

from .core import Address, NotOwner, ReentrantCall


class CallGuard:
    """
    Non-reentrant lock for a single-threaded call stack.

    Not a threading primitive: the engine is sequential, and the only way to
    re-enter is a callback from an external collaborator during a call.

    Example:
        guard = CallGuard()
        with guard.hold("deposit_collateral"):
            ...  # a nested guard.hold(...) here raises ReentrantCall
    """

    def __init__(self):
        self._holder: Optional[str] = None

    @property
    def locked(self) -> bool:
        """True while an entry point holds the guard."""
        return self._holder is not None

    @property
    def holder(self) -> Optional[str]:
        """Name of the entry point currently holding the guard."""
        return self._holder

    @contextmanager
    def hold(self, entry_point: str) -> Iterator[None]:
        if self._holder is not None:
            raise ReentrantCall(entry_point)
        self._holder = entry_point
        try:
            yield
        finally:
            self._holder = None


def require_owner(caller: Address, owner: Address) -> None:
    """
    Check that a privileged call comes from the owner.

    Raises:
        NotOwner: If caller is not owner.
    """
    if caller != owner:
        raise NotOwner(caller, owner)
