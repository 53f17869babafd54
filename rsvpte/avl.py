"""Self-balancing binary search tree used for the PATH and RESV state tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional


@dataclass(slots=True)
class _Node:
    key: Any
    value: Any
    left: Optional[_Node] = None
    right: Optional[_Node] = None
    height: int = 1


def _height(node: _Node | None) -> int:
    return node.height if node is not None else 0


def _balance(node: _Node | None) -> int:
    return _height(node.left) - _height(node.right) if node is not None else 0


def _update(node: _Node) -> None:
    node.height = 1 + max(_height(node.left), _height(node.right))


def _rotate_right(y: _Node) -> _Node:
    x = y.left
    y.left = x.right
    x.right = y
    _update(y)
    _update(x)
    return x


def _rotate_left(x: _Node) -> _Node:
    y = x.right
    x.right = y.left
    y.left = x
    _update(x)
    _update(y)
    return y


def _insert(node: _Node | None, key: Any, value: Any) -> tuple[_Node, bool]:
    if node is None:
        return _Node(key, value), True
    if key < node.key:
        node.left, inserted = _insert(node.left, key, value)
    elif key > node.key:
        node.right, inserted = _insert(node.right, key, value)
    else:
        return node, False

    _update(node)
    balance = _balance(node)
    if balance > 1 and key < node.left.key:
        return _rotate_right(node), inserted
    if balance < -1 and key > node.right.key:
        return _rotate_left(node), inserted
    if balance > 1 and key > node.left.key:
        node.left = _rotate_left(node.left)
        return _rotate_right(node), inserted
    if balance < -1 and key < node.right.key:
        node.right = _rotate_right(node.right)
        return _rotate_left(node), inserted
    return node, inserted


def _min_node(node: _Node) -> _Node:
    while node.left is not None:
        node = node.left
    return node


def _delete(node: _Node | None, key: Any) -> tuple[_Node | None, bool]:
    if node is None:
        return None, False

    if key < node.key:
        node.left, removed = _delete(node.left, key)
    elif key > node.key:
        node.right, removed = _delete(node.right, key)
    else:
        removed = True
        if node.left is None or node.right is None:
            node = node.left if node.left is not None else node.right
        else:
            successor = _min_node(node.right)
            node.key, node.value = successor.key, successor.value
            node.right, _ = _delete(node.right, successor.key)

    if node is None:
        return None, removed

    _update(node)
    balance = _balance(node)
    if balance > 1 and _balance(node.left) >= 0:
        return _rotate_right(node), removed
    if balance > 1 and _balance(node.left) < 0:
        node.left = _rotate_left(node.left)
        return _rotate_right(node), removed
    if balance < -1 and _balance(node.right) <= 0:
        return _rotate_left(node), removed
    if balance < -1 and _balance(node.right) > 0:
        node.right = _rotate_right(node.right)
        return _rotate_left(node), removed
    return node, removed


class AVLTree:
    """An AVL tree mapping unique keys to values; duplicate keys are ignored."""

    def __init__(self) -> None:
        self._root: _Node | None = None
        self._size = 0

    def insert(self, key: Any, value: Any) -> bool:
        """Store value under key; return False and keep the old value if key exists."""
        self._root, inserted = _insert(self._root, key, value)
        if inserted:
            self._size += 1
        return inserted

    def delete(self, key: Any) -> bool:
        """Remove key from the tree; return whether it was present."""
        self._root, removed = _delete(self._root, key)
        if removed:
            self._size -= 1
        return removed

    def search(self, key: Any) -> Any:
        """Return the value stored under key, or None."""
        node = self._root
        while node is not None:
            if key == node.key:
                return node.value
            node = node.left if key < node.key else node.right
        return None

    def height(self) -> int:
        """Height of the tree; an empty tree has height 0."""
        return _height(self._root)

    def __iter__(self) -> Iterator[tuple[Any, Any]]:
        """Yield (key, value) pairs in ascending key order."""
        stack: list[_Node] = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.key, node.value
            node = node.right

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: Any) -> bool:
        node = self._root
        while node is not None:
            if key == node.key:
                return True
            node = node.left if key < node.key else node.right
        return False