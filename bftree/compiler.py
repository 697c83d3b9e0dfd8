from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .evaluator import EofPolicy
from .nodes import Command, CommandNode, Loop, Program, Visitor

_STATEMENTS: Dict[Command, str] = {
    Command.INCREMENT: "++*ptr;",
    Command.DECREMENT: "--*ptr;",
    Command.SHIFT_RIGHT: "++ptr;",
    Command.SHIFT_LEFT: "--ptr;",
    Command.OUTPUT: "putchar(*ptr);",
}

_INPUT_STATEMENTS: Dict[EofPolicy, str] = {
    EofPolicy.ZERO: "{ int c = getchar(); *ptr = c == EOF ? 0 : (unsigned char)c; }",
    EofPolicy.UNCHANGED: "{ int c = getchar(); if (c != EOF) *ptr = (unsigned char)c; }",
    EofPolicy.ERROR: (
        "{ int c = getchar(); if (c == EOF) { fputs(\"input exhausted\\n\", stderr); exit(1); } "
        "*ptr = (unsigned char)c; }"
    ),
}


@dataclass
class CCompiler(Visitor):
    """Translates a program tree into a freestanding C translation unit.

    Every repetition is emitted as its own statement so the generated
    program performs exactly the operations the evaluator performs.
    """

    tape_length: int = 30000
    eof: EofPolicy = EofPolicy.ZERO
    indent: str = "    "

    lines: List[str] = field(init=False, repr=False, default_factory=list)
    depth: int = field(init=False, repr=False, default=1)

    def __post_init__(self) -> None:
        self.eof = EofPolicy(self.eof)

    def compile(self, program: Program) -> str:
        self.lines = []
        self.depth = 1
        self.traverse(program)
        return "\n".join(self.lines) + "\n"

    def _emit(self, statement: str) -> None:
        self.lines.append(self.indent * self.depth + statement)

    def _emit_prologue(self) -> None:
        self.lines.append("#include <stdio.h>")
        if self.eof == EofPolicy.ERROR:
            self.lines.append("#include <stdlib.h>")
        self.lines.append("")
        self.lines.append(f"static unsigned char tape[{self.tape_length}];")
        self.lines.append("")
        self.lines.append("int main(void)")
        self.lines.append("{")
        self._emit("unsigned char *ptr = tape;")

    def _emit_epilogue(self) -> None:
        self._emit("return 0;")
        self.lines.append("}")

    def visit_program(self, node: Program) -> None:
        self._emit_prologue()
        self.visit_children(node)
        self._emit_epilogue()

    def visit_loop(self, node: Loop) -> None:
        self._emit("while (*ptr) {")
        self.depth += 1
        self.visit_children(node)
        self.depth -= 1
        self._emit("}")

    def visit_command(self, node: CommandNode) -> None:
        if node.command == Command.CLEAR_CELL:
            self._emit("*ptr = 0;")
            return
        if node.command == Command.INPUT:
            statement = _INPUT_STATEMENTS[self.eof]
        else:
            statement = _STATEMENTS[node.command]
        for _ in range(node.repeat):
            self._emit(statement)


def compile_program(
    program: Program,
    tape_length: int = 30000,
    eof: EofPolicy = EofPolicy.ZERO,
) -> str:
    return CCompiler(tape_length=tape_length, eof=eof).compile(program)


__all__ = ["CCompiler", "compile_program"]
