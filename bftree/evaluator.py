from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Iterable, Iterator, List, Optional, Union

from .nodes import Command, CommandNode, Loop, Program, Visitor

CELL_MODULUS = 256

InputSource = Union[str, bytes, Iterable[int], BinaryIO]


class EvaluationError(RuntimeError):
    pass


class TapeOverflow(EvaluationError):
    """Raised when the pointer moves past the last cell of the tape."""


class TapeUnderflow(EvaluationError):
    """Raised when the pointer moves before the first cell of the tape."""


class InputExhausted(EvaluationError):
    """Raised on ``,`` with no input left when the EOF policy is ``ERROR``."""


class StepLimitExceeded(RuntimeError):
    """Raised when execution exceeds the configured step budget."""


class EofPolicy(str, Enum):
    ZERO = "zero"
    UNCHANGED = "unchanged"
    ERROR = "error"


@dataclass
class Evaluator(Visitor):
    """Executes a program tree against a fixed-size tape of byte cells.

    The pointer starts at cell 0. Moving it off either end of the tape
    raises :class:`TapeOverflow` / :class:`TapeUnderflow` and leaves it on
    the last valid cell.

    With ``output_stream`` set, each ``.`` is written to that binary stream
    as it executes; otherwise output collects in :attr:`output`.
    """

    tape_length: int = 30000
    eof: EofPolicy = EofPolicy.ZERO
    max_steps: Optional[int] = None
    output_stream: Optional[BinaryIO] = field(default=None, repr=False)

    tape: List[int] = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    output: bytearray = field(init=False, repr=False)
    steps: int = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.tape_length < 1:
            raise ValueError("tape_length must be at least 1")
        self.eof = EofPolicy(self.eof)
        self.reset()

    def reset(self) -> None:
        self.tape = [0] * self.tape_length
        self.pointer = 0
        self.output = bytearray()
        self.steps = 0
        self._input: Iterator[int] = iter(())

    def run(
        self,
        program: Program,
        input_data: Optional[InputSource] = None,
        reset: bool = True,
    ) -> bytes:
        if reset:
            self.reset()
        else:
            self.output = bytearray()
            self.steps = 0
        self._input = _iter_input(input_data)
        self.traverse(program)
        return bytes(self.output)

    # --- Visitor ---

    def visit_program(self, node: Program) -> None:
        self.visit_children(node)

    def visit_loop(self, node: Loop) -> None:
        while self.tape[self.pointer]:
            self._count_step()
            self.visit_children(node)

    def visit_command(self, node: CommandNode) -> None:
        self._count_step()
        command = node.command
        repeat = node.repeat
        if command == Command.INCREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] + repeat) % CELL_MODULUS
        elif command == Command.DECREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] - repeat) % CELL_MODULUS
        elif command == Command.SHIFT_RIGHT:
            self._move(repeat)
        elif command == Command.SHIFT_LEFT:
            self._move(-repeat)
        elif command == Command.INPUT:
            for _ in range(repeat):
                self._read()
        elif command == Command.OUTPUT:
            self._write(bytes([self.tape[self.pointer]]) * repeat)
        elif command == Command.CLEAR_CELL:
            self.tape[self.pointer] = 0

    # --- Helpers ---

    def _count_step(self) -> None:
        if self.max_steps is not None and self.steps >= self.max_steps:
            raise StepLimitExceeded("Program exceeded allowed step count")
        self.steps += 1

    def _move(self, delta: int) -> None:
        target = self.pointer + delta
        if target >= self.tape_length:
            self.pointer = self.tape_length - 1
            raise TapeOverflow(f"Pointer moved beyond the tape length ({self.tape_length}).")
        if target < 0:
            self.pointer = 0
            raise TapeUnderflow("Pointer moved before start of tape.")
        self.pointer = target

    def _write(self, data: bytes) -> None:
        if self.output_stream is None:
            self.output.extend(data)
            return
        self.output_stream.write(data)
        self.output_stream.flush()

    def _read(self) -> None:
        try:
            value = next(self._input)
        except StopIteration:
            if self.eof == EofPolicy.ERROR:
                raise InputExhausted("Input stream is exhausted") from None
            if self.eof == EofPolicy.ZERO:
                self.tape[self.pointer] = 0
            return
        if not isinstance(value, int):
            raise TypeError(f"Input items must be integers, got {type(value).__name__}")
        self.tape[self.pointer] = value % CELL_MODULUS


def _iter_input(input_data: Optional[InputSource]) -> Iterator[int]:
    if input_data is None:
        return iter(())
    if isinstance(input_data, str):
        return iter(input_data.encode("utf-8"))
    if hasattr(input_data, "read"):
        return _iter_stream(input_data)
    return iter(input_data)


def _iter_stream(stream: BinaryIO) -> Iterator[int]:
    # One byte per read so interactive input is consumed only on demand.
    for chunk in iter(lambda: stream.read(1), b""):
        yield chunk[0]


def evaluate(
    program: Program,
    tape_size: int = 30000,
    input_data: Optional[InputSource] = None,
    eof: EofPolicy = EofPolicy.ZERO,
    max_steps: Optional[int] = None,
    output_stream: Optional[BinaryIO] = None,
) -> bytes:
    evaluator = Evaluator(tape_length=tape_size, eof=eof, max_steps=max_steps, output_stream=output_stream)
    return evaluator.run(program, input_data=input_data)


__all__ = [
    "EofPolicy",
    "EvaluationError",
    "Evaluator",
    "InputExhausted",
    "StepLimitExceeded",
    "TapeOverflow",
    "TapeUnderflow",
    "evaluate",
]
