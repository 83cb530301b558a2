"""Intrusive doubly linked list with priority insertion."""

from __future__ import annotations

from typing import Any, Iterator, Optional

_PRIORITY_SCAN_LIMIT = 5000


class ListNode:
    """A node that can belong to at most one LinkedList at a time."""

    def __init__(self, value: Any = None) -> None:
        self.value = value
        self.next: Optional[ListNode] = None
        self.prev: Optional[ListNode] = None
        self.list: Optional[LinkedList] = None
        self.priority = 0

    def __repr__(self) -> str:
        return f"ListNode({self.value!r}, priority={self.priority})"


class LinkedList:
    """Doubly linked list of ListNode objects."""

    def __init__(self) -> None:
        self.head: Optional[ListNode] = None
        self.tail: Optional[ListNode] = None
        self._size = 0

    @staticmethod
    def _check_free(node: ListNode) -> None:
        if node.list is not None:
            raise ValueError("node already belongs to a list")

    def push_head(self, node: ListNode) -> None:
        """Insert node at the front."""
        self._check_free(node)
        node.next = self.head
        node.prev = None
        node.priority = 0
        if self.head is not None:
            self.head.prev = node
        self.head = node
        if self.tail is None:
            self.tail = node
        node.list = self
        self._size += 1

    def push_tail(self, node: ListNode) -> None:
        """Insert node at the back."""
        self._check_free(node)
        node.prev = self.tail
        node.next = None
        node.priority = 0
        if self.tail is not None:
            self.tail.next = node
        self.tail = node
        if self.head is None:
            self.head = node
        node.list = self
        self._size += 1

    def push_priority(self, node: ListNode, priority: int) -> None:
        """Insert node before the first node of lower priority.

        An empty list or a scan that finds no lower priority falls back to
        push_head or push_tail, which reset the node's priority to zero.
        """
        self._check_free(node)
        if self.head is None:
            self.push_head(node)
            return
        for scanned, n in enumerate(self):
            if priority > n.priority or scanned > _PRIORITY_SCAN_LIMIT:
                node.next = n
                node.prev = n.prev
                node.priority = priority
                if n.prev is not None:
                    n.prev.next = node
                else:
                    self.head = node
                n.prev = node
                node.list = self
                self._size += 1
                return
        self.push_tail(node)

    @staticmethod
    def _detach(node: ListNode) -> ListNode:
        node.next = node.prev = None
        node.list = None
        return node

    def pop_head(self) -> ListNode:
        """Remove and return the first node."""
        result = self.head
        if result is None:
            raise IndexError("pop from empty list")
        self.head = result.next
        if self.head is not None:
            self.head.prev = None
        else:
            self.tail = None
        self._size -= 1
        return self._detach(result)

    def pop_tail(self) -> ListNode:
        """Remove and return the last node."""
        result = self.tail
        if result is None:
            raise IndexError("pop from empty list")
        self.tail = result.prev
        if self.tail is not None:
            self.tail.next = None
        else:
            self.head = None
        self._size -= 1
        return self._detach(result)

    def remove(self, node: ListNode) -> None:
        """Unlink node; a node in no list is left alone."""
        if node.list is None:
            return
        if node.list is not self:
            raise ValueError("node belongs to another list")
        if self.head is node:
            self.pop_head()
            return
        if self.tail is node:
            self.pop_tail()
            return
        node.next.prev = node.prev
        node.prev.next = node.next
        self._size -= 1
        self._detach(node)

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[ListNode]:
        n = self.head
        while n is not None:
            following = n.next
            yield n
            n = following