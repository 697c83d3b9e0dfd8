from .compiler import CCompiler, compile_program
from .evaluator import (
    EofPolicy,
    EvaluationError,
    Evaluator,
    InputExhausted,
    StepLimitExceeded,
    TapeOverflow,
    TapeUnderflow,
    evaluate,
)
from .nodes import Command, CommandNode, InvalidCommand, Loop, Node, ParseError, Program, Visitor
from .parser import NestingTooDeep, Parser, SourcePosition, UnmatchedLoopEnd, UnterminatedLoop, parse
from .printer import Printer, to_source

__all__ = [
    "CCompiler",
    "Command",
    "CommandNode",
    "EofPolicy",
    "EvaluationError",
    "Evaluator",
    "InputExhausted",
    "InvalidCommand",
    "Loop",
    "NestingTooDeep",
    "Node",
    "ParseError",
    "Parser",
    "Printer",
    "Program",
    "SourcePosition",
    "StepLimitExceeded",
    "TapeOverflow",
    "TapeUnderflow",
    "UnmatchedLoopEnd",
    "UnterminatedLoop",
    "Visitor",
    "compile_program",
    "evaluate",
    "parse",
    "to_source",
]
