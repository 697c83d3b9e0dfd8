from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from .nodes import (
    LOOP_END,
    LOOP_START,
    Command,
    CommandNode,
    Node,
    ParseError,
    Program,
    make_loop,
)


# Loops nested deeper than this are rejected with NestingTooDeep.
DEFAULT_MAX_DEPTH = 10_000


@dataclass(frozen=True)
class SourcePosition:
    offset: int
    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


class UnterminatedLoop(ParseError):
    def __init__(self, position: Optional[SourcePosition]) -> None:
        if position is None:
            super().__init__("Loop body is missing its closing ']'")
        else:
            super().__init__(f"Unmatched '[' at {position}")
        self.position = position


class UnmatchedLoopEnd(ParseError):
    def __init__(self, position: SourcePosition) -> None:
        super().__init__(f"Unmatched ']' at {position}")
        self.position = position


class NestingTooDeep(ParseError):
    def __init__(self, position: SourcePosition, max_depth: int) -> None:
        super().__init__(f"Loop at {position} nests deeper than {max_depth} levels")
        self.position = position
        self.max_depth = max_depth


class _CharStream:
    """Forward-only character reader with one character of pushback."""

    def __init__(self, source: Iterable[str]) -> None:
        self._chars = self._iter_chars(source)
        self._pending: Optional[str] = None
        self.offset = 0
        self.line = 1
        self.column = 0

    @staticmethod
    def _iter_chars(source: Iterable[str]) -> Iterator[str]:
        # Text files iterate by line, strings by character; flatten both.
        for chunk in source:
            yield from chunk

    def last_position(self) -> SourcePosition:
        """Position of the character returned by the latest read."""
        return SourcePosition(offset=self.offset - 1, line=self.line, column=self.column)

    def next(self) -> Optional[str]:
        if self._pending is not None:
            char, self._pending = self._pending, None
        else:
            char = next(self._chars, None)
            if char is None:
                return None
        self.offset += 1
        if char == "\n":
            self.line += 1
            self.column = 0
        else:
            self.column += 1
        return char

    def next_symbol(self) -> Optional[str]:
        """Return the next recognized symbol, discarding comment characters."""
        while True:
            char = self.next()
            if char is None or Command.is_command(char) or char in (LOOP_START, LOOP_END):
                return char

    def push_back(self, char: str) -> None:
        self._pending = char
        self.offset -= 1
        # Only symbols are ever pushed back, so the line never changes.
        self.column -= 1


class Parser:
    """Parser producing a :class:`Program`.

    Nesting is tracked with an explicit stack holding one frame per open
    loop, so deep programs do not hit the interpreter recursion limit.

    In the default lenient mode a missing ``]`` at end of input closes the
    open loops implicitly and a ``]`` with no open loop ends the program.
    With ``strict=True`` both raise.
    """

    def __init__(self, strict: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.strict = strict
        self.max_depth = max_depth

    def parse(self, source: Iterable[str]) -> Program:
        stream = _CharStream(source)
        children = self._parse_block(stream, in_loop=False, opened_at=None)
        return Program(children)

    def parse_block(self, source: Iterable[str], opened_at: Optional[SourcePosition] = None) -> List[Node]:
        """Parse a loop body whose opening ``[`` has already been consumed.

        ``opened_at`` is where the caller saw that ``[``; it is reported by
        :class:`UnterminatedLoop` in strict mode.
        """
        stream = _CharStream(source)
        return self._parse_block(stream, in_loop=True, opened_at=opened_at)

    def _parse_block(
        self,
        stream: _CharStream,
        in_loop: bool,
        opened_at: Optional[SourcePosition],
    ) -> List[Node]:
        # (position of the frame's '[', children parsed so far)
        frames: List[Tuple[Optional[SourcePosition], List[Node]]] = [(opened_at, [])]
        while True:
            char = stream.next_symbol()
            start, children = frames[-1]
            if char is None:
                if self.strict and (len(frames) > 1 or in_loop):
                    raise UnterminatedLoop(start)
                while len(frames) > 1:
                    self._close_frame(frames)
                return frames[0][1]
            if char == LOOP_START:
                position = stream.last_position()
                if len(frames) > self.max_depth:
                    raise NestingTooDeep(position, self.max_depth)
                frames.append((position, []))
            elif char == LOOP_END:
                if len(frames) == 1:
                    if self.strict and not in_loop:
                        raise UnmatchedLoopEnd(stream.last_position())
                    return children
                self._close_frame(frames)
            else:
                children.append(self._parse_run(char, stream))

    @staticmethod
    def _close_frame(frames: List[Tuple[Optional[SourcePosition], List[Node]]]) -> None:
        _, body = frames.pop()
        frames[-1][1].append(make_loop(body))

    def _parse_run(self, char: str, stream: _CharStream) -> CommandNode:
        repeat = 1
        while True:
            following = stream.next_symbol()
            if following != char:
                break
            repeat += 1
        if following is not None:
            stream.push_back(following)
        return CommandNode.from_symbol(char, repeat)


def parse(source: Iterable[str], strict: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> Program:
    return Parser(strict=strict, max_depth=max_depth).parse(source)


__all__ = [
    "NestingTooDeep",
    "ParseError",
    "Parser",
    "SourcePosition",
    "UnmatchedLoopEnd",
    "UnterminatedLoop",
    "parse",
]
