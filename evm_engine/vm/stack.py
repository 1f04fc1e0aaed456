"""
evm_engine.vm.stack - the 1024-slot operand stack.

Items are plain ints in [0, 2**256). Handlers push already-wrapped values;
the stack does not re-check ranges on the hot path.
"""

from __future__ import annotations

from typing import List

from evm_engine.errors import StackOverflow, StackUnderflow

STACK_LIMIT = 1024


class Stack:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[int] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, value: int) -> None:
        if len(self._items) >= STACK_LIMIT:
            raise StackOverflow(data={"limit": STACK_LIMIT})
        self._items.append(value)

    def pop(self) -> int:
        if not self._items:
            raise StackUnderflow()
        return self._items.pop()

    def dup(self, n: int) -> None:
        """DUPn: copy the n-th item (1-based) to the top."""
        if len(self._items) < n:
            raise StackUnderflow(data={"needed": n, "have": len(self._items)})
        self.push(self._items[-n])

    def swap(self, n: int) -> None:
        """SWAPn: exchange the top with the (n+1)-th item."""
        if len(self._items) <= n:
            raise StackUnderflow(data={"needed": n + 1, "have": len(self._items)})
        items = self._items
        items[-1], items[-1 - n] = items[-1 - n], items[-1]


__all__ = ["Stack", "STACK_LIMIT"]
