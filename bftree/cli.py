from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, TextIO

from .compiler import CCompiler
from .evaluator import EofPolicy, EvaluationError, Evaluator, StepLimitExceeded
from .nodes import ParseError, Program
from .parser import Parser
from .printer import Printer

PROG = "bftree"


def _read_source(path: str) -> str:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return source_path.read_text(encoding="utf-8")


def _write_output(path: str, data: str) -> None:
    output_path = Path(path)
    output_path.write_text(data, encoding="utf-8")


def _to_input_bytes(data: Optional[str]) -> Iterable[int]:
    if data is None:
        return _read_stdin()
    return data.encode("utf-8")


def _read_stdin() -> Iterator[int]:
    # Lazy, so stdin is only touched once the program executes ','.
    buffer = getattr(sys.stdin, "buffer", None)
    while True:
        chunk = buffer.read(1) if buffer is not None else sys.stdin.read(1).encode("utf-8")
        if not chunk:
            return
        yield from chunk


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description="Parse, print, run and compile tape-language programs")
    parser.add_argument("sources", nargs="*", metavar="FILE", help="Source files to process")
    parser.add_argument(
        "--print",
        dest="print_source",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Print the parsed program back as source (default: on)",
    )
    parser.add_argument(
        "--eval",
        dest="evaluate",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Evaluate the program (default: on)",
    )
    parser.add_argument("--compile", action="store_true", help="Emit the program as C source")
    parser.add_argument(
        "-o",
        "--emit",
        help="Destination file for the emitted C source (implies --compile, single input only)",
    )
    parser.add_argument(
        "--input",
        default=None,
        help="Input string supplied to the program when evaluating (default: read stdin)",
    )
    parser.add_argument("--tape-size", type=int, default=30000, help="Number of tape cells (default: 30000)")
    parser.add_argument(
        "--eof",
        choices=[policy.value for policy in EofPolicy],
        default=EofPolicy.ZERO.value,
        help="What ',' stores once input is exhausted (default: zero)",
    )
    parser.add_argument("--max-steps", type=int, default=None, help="Abort evaluation after this many steps")
    parser.add_argument("--strict", action="store_true", help="Reject unbalanced brackets")
    parser.add_argument("--stats", action="store_true", help="Report the node count of each parsed program")
    return parser


def _process(path: str, args: argparse.Namespace, out: TextIO) -> Program:
    source_text = _read_source(path)
    program = Parser(strict=args.strict).parse(source_text)

    if args.stats:
        out.write(f"NODES: {program.node_count()}\n")
    if args.print_source:
        out.write("SRC:\n")
        out.write(Printer().print(program))
    if args.evaluate:
        out.write("EVAL:\n")
        # Stream straight to the binary layer when there is one.
        sink = getattr(out, "buffer", None)
        out.flush()
        evaluator = Evaluator(
            tape_length=args.tape_size,
            eof=args.eof,
            max_steps=args.max_steps,
            output_stream=sink,
        )
        try:
            evaluator.run(program, input_data=_to_input_bytes(args.input))
        finally:
            if sink is None:
                out.write(bytes(evaluator.output).decode("latin-1"))
            out.write("\n")
    if args.compile or args.emit:
        c_source = CCompiler(tape_length=args.tape_size, eof=args.eof).compile(program)
        if args.emit:
            _write_output(args.emit, c_source)
        else:
            out.write("C:\n")
            out.write(c_source)
    return program


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.sources:
        print(f"{PROG}: No input files.")
        return 0
    if args.emit and len(args.sources) > 1:
        print(f"{PROG}: --emit accepts a single input file", file=sys.stderr)
        return 2
    if args.tape_size < 1:
        print(f"{PROG}: --tape-size must be at least 1", file=sys.stderr)
        return 2

    status = 0
    for path in args.sources:
        try:
            _process(path, args, sys.stdout)
        except FileNotFoundError as exc:
            print(str(exc), file=sys.stderr)
            status = 1
        except ParseError as exc:
            print(f"{path}: Parse error: {exc}", file=sys.stderr)
            status = 1
        except (EvaluationError, StepLimitExceeded) as exc:
            print(f"{path}: Runtime error: {exc}", file=sys.stderr)
            status = 1
    return status


if __name__ == "__main__":
    raise SystemExit(main())
