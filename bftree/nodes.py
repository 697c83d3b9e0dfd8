from __future__ import annotations

import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, List, Tuple


class ParseError(Exception):
    pass


class InvalidCommand(ParseError):
    """Raised when a character that is not a primitive command is turned into a node."""


class Command(str, Enum):
    INCREMENT = "+"
    DECREMENT = "-"
    SHIFT_LEFT = "<"
    SHIFT_RIGHT = ">"
    INPUT = ","
    OUTPUT = "."
    # Synthesized by the parser from a "[-]" / "[+]" loop.
    CLEAR_CELL = "[-]"

    @classmethod
    def from_symbol(cls, char: str) -> "Command":
        if not cls.is_command(char):
            raise InvalidCommand(f"Tried to create a command from an invalid character: {char!r}")
        return cls(char)

    @staticmethod
    def is_command(char: str) -> bool:
        return char in PRIMITIVE_SYMBOLS


PRIMITIVE_SYMBOLS = frozenset("+-<>,.")
LOOP_START = "["
LOOP_END = "]"


# === Traversal protocol ===

# Python frames used per nesting level: accept -> visit_loop -> visit_children.
FRAMES_PER_LEVEL = 4

_headroom_lock = threading.Lock()
_headroom_users = 0
_saved_recursion_limit = 0


@contextmanager
def recursion_headroom(depth: int) -> Iterator[None]:
    """Raise the interpreter recursion limit far enough to walk ``depth`` nested loops."""
    global _headroom_users, _saved_recursion_limit
    needed = depth * FRAMES_PER_LEVEL
    with _headroom_lock:
        current = sys.getrecursionlimit()
        if _headroom_users == 0:
            _saved_recursion_limit = current
        _headroom_users += 1
        if _saved_recursion_limit + needed > current:
            sys.setrecursionlimit(_saved_recursion_limit + needed)
    try:
        yield
    finally:
        with _headroom_lock:
            _headroom_users -= 1
            if _headroom_users == 0:
                sys.setrecursionlimit(_saved_recursion_limit)


class Visitor:
    """Base class for tree consumers.

    Nodes call back into exactly one of the ``visit_*`` methods from
    ``accept``, so a consumer can branch on the node kind without the
    node classes knowing about any consumer.
    """

    def visit_command(self, node: "CommandNode") -> Any:
        raise NotImplementedError

    def visit_loop(self, node: "Loop") -> Any:
        raise NotImplementedError

    def visit_program(self, node: "Program") -> Any:
        raise NotImplementedError

    def traverse(self, node: "Node") -> Any:
        """Entry point for consumers: ``node.accept(self)`` with room for deep trees."""
        with recursion_headroom(node.depth()):
            return node.accept(self)

    def visit_children(self, container: "Container") -> None:
        for child in container.children:
            child.accept(self)


# === AST Nodes ===


class Node:
    def accept(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def node_count(self) -> int:
        return 1

    def depth(self) -> int:
        return 0


@dataclass(frozen=True)
class CommandNode(Node):
    command: Command
    repeat: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.command, Command):
            raise InvalidCommand(f"Not a command: {self.command!r}")
        if self.repeat < 1:
            raise ValueError(f"repeat must be at least 1, got {self.repeat}")

    @classmethod
    def from_symbol(cls, char: str, repeat: int = 1) -> "CommandNode":
        return cls(command=Command.from_symbol(char), repeat=repeat)

    def accept(self, visitor: Visitor) -> Any:
        return visitor.visit_command(self)


@dataclass(frozen=True)
class Container(Node):
    children: Tuple[Node, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable but always store an immutable tuple.
        object.__setattr__(self, "children", tuple(self.children))

    def node_count(self) -> int:
        count = 0
        pending: List[Node] = [self]
        while pending:
            node = pending.pop()
            count += 1
            if isinstance(node, Container):
                pending.extend(node.children)
        return count

    def depth(self) -> int:
        """Deepest loop nesting below this container."""
        deepest = 0
        pending: List[Tuple[Node, int]] = [(self, 0)]
        while pending:
            node, level = pending.pop()
            deepest = max(deepest, level)
            if isinstance(node, Container):
                pending.extend((child, level + 1) for child in node.children if isinstance(child, Container))
        return deepest


@dataclass(frozen=True)
class Loop(Container):
    def accept(self, visitor: Visitor) -> Any:
        return visitor.visit_loop(self)


@dataclass(frozen=True)
class Program(Container):
    """Root of a parsed program. The parse tree is the abstract syntax tree."""

    def accept(self, visitor: Visitor) -> Any:
        return visitor.visit_program(self)


def make_loop(children: Iterable[Node]) -> Node:
    """Build a loop node, rewriting the clear-cell idiom.

    A body made of a single increment or decrement run always drives the
    current cell to zero, so it is replaced by one ``CLEAR_CELL`` command.
    """
    body = tuple(children)
    if len(body) == 1:
        only = body[0]
        if isinstance(only, CommandNode) and only.command in (Command.INCREMENT, Command.DECREMENT):
            return CommandNode(Command.CLEAR_CELL)
    return Loop(body)


__all__ = [
    "Command",
    "CommandNode",
    "Container",
    "InvalidCommand",
    "Loop",
    "Node",
    "ParseError",
    "Program",
    "Visitor",
    "make_loop",
    "recursion_headroom",
]
