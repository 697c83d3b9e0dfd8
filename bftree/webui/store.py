from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Dict

from bftree.nodes import Program
from bftree.parser import Parser


@dataclass
class ProgramRecord:
    program_id: str
    program: Program
    code: str
    strict: bool = False


class ProgramStore:
    """Thread-safe registry of parsed programs.

    A stored tree is never mutated, so every consumer request can read it
    without holding the lock.
    """

    def __init__(self) -> None:
        self._programs: Dict[str, ProgramRecord] = {}
        self._lock = threading.RLock()

    def create(self, *, code: str, strict: bool = False) -> ProgramRecord:
        program = Parser(strict=strict).parse(code)
        record = ProgramRecord(
            program_id=uuid.uuid4().hex,
            program=program,
            code=code,
            strict=strict,
        )
        with self._lock:
            self._programs[record.program_id] = record
        return record

    def get(self, program_id: str) -> ProgramRecord:
        with self._lock:
            try:
                return self._programs[program_id]
            except KeyError as exc:
                raise KeyError(f"Unknown program id: {program_id}") from exc

    def remove(self, program_id: str) -> bool:
        with self._lock:
            return self._programs.pop(program_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._programs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._programs)


__all__ = ["ProgramRecord", "ProgramStore"]
