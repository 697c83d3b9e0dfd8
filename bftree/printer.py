from __future__ import annotations

from typing import List

from .nodes import LOOP_END, LOOP_START, CommandNode, Loop, Program, Visitor


class Printer(Visitor):
    """Writes a tree back out as source text, without comments."""

    def __init__(self) -> None:
        self.output: List[str] = []

    def print(self, program: Program) -> str:
        self.output = []
        self.traverse(program)
        return "".join(self.output)

    def visit_command(self, node: CommandNode) -> None:
        # CLEAR_CELL's value is the "[-]" idiom, which parses back to CLEAR_CELL.
        self.output.append(node.command.value * node.repeat)

    def visit_loop(self, node: Loop) -> None:
        self.output.append(LOOP_START)
        self.visit_children(node)
        self.output.append(LOOP_END)

    def visit_program(self, node: Program) -> None:
        self.visit_children(node)
        self.output.append("\n")


def to_source(program: Program) -> str:
    return Printer().print(program)


__all__ = ["Printer", "to_source"]
