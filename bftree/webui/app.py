from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, validator

from bftree.compiler import CCompiler
from bftree.evaluator import EofPolicy, EvaluationError, Evaluator, StepLimitExceeded
from bftree.nodes import CommandNode, Loop, ParseError, Program, Visitor, recursion_headroom
from bftree.printer import Printer

from .store import ProgramRecord, ProgramStore

DEFAULT_MAX_STEPS = 1_000_000
MAX_TAPE_SIZE = 1_000_000


def _string_to_input_bytes(data: str) -> bytes:
    return data.encode("utf-8")


class TreeSerializer(Visitor):
    """Turns a program tree into JSON-compatible dictionaries."""

    def visit_command(self, node: CommandNode) -> Dict[str, Any]:
        return {"type": "command", "command": node.command.name.lower(), "repeat": node.repeat}

    def visit_loop(self, node: Loop) -> Dict[str, Any]:
        return {"type": "loop", "children": [child.accept(self) for child in node.children]}

    def visit_program(self, node: Program) -> Dict[str, Any]:
        return {"type": "program", "children": [child.accept(self) for child in node.children]}


class ProgramRequest(BaseModel):
    code: str = ""
    strict: bool = False


class ProgramPayload(BaseModel):
    program_id: str
    code: str
    source: str
    node_count: int
    strict: bool


class EvaluateRequest(BaseModel):
    input: str = ""
    tape_size: int = Field(default=30000, ge=1, le=MAX_TAPE_SIZE)
    eof: str = EofPolicy.ZERO.value
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1)

    @validator("eof")
    def validate_eof(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {policy.value for policy in EofPolicy}:
            raise ValueError("eof must be one of 'zero', 'unchanged' or 'error'")
        return normalized


class EvaluateResponse(BaseModel):
    program_id: str
    output: str
    output_bytes: List[int]
    pointer: int
    steps: int
    tape_start: int
    tape_window: List[int]


class CompileRequest(BaseModel):
    tape_size: int = Field(default=30000, ge=1, le=MAX_TAPE_SIZE)
    eof: str = EofPolicy.ZERO.value

    @validator("eof")
    def validate_eof(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in {policy.value for policy in EofPolicy}:
            raise ValueError("eof must be one of 'zero', 'unchanged' or 'error'")
        return normalized


class CompileResponse(BaseModel):
    program_id: str
    c_source: str


def create_app(
    store: Optional[ProgramStore] = None,
    *,
    tape_window: int = 10,
) -> FastAPI:
    program_store = store or ProgramStore()
    app = FastAPI(title="bftree API", version="0.1.0")

    def _get_record(program_id: str) -> ProgramRecord:
        try:
            return program_store.get(program_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    def _build_payload(record: ProgramRecord) -> ProgramPayload:
        return ProgramPayload(
            program_id=record.program_id,
            code=record.code,
            source=Printer().print(record.program),
            node_count=record.program.node_count(),
            strict=record.strict,
        )

    @app.post("/api/programs", response_model=ProgramPayload, status_code=status.HTTP_201_CREATED)
    def create_program(payload: ProgramRequest) -> ProgramPayload:
        try:
            record = program_store.create(code=payload.code, strict=payload.strict)
        except ParseError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc
        return _build_payload(record)

    @app.get("/api/programs/{program_id}", response_model=ProgramPayload)
    def get_program(program_id: str) -> ProgramPayload:
        return _build_payload(_get_record(program_id))

    @app.get("/api/programs/{program_id}/tree")
    def get_tree(program_id: str) -> JSONResponse:
        record = _get_record(program_id)
        # Encode while the raised limit is still in effect.
        with recursion_headroom(record.program.depth()):
            return JSONResponse(content=TreeSerializer().traverse(record.program))

    @app.post("/api/programs/{program_id}/evaluate", response_model=EvaluateResponse)
    def evaluate_program(program_id: str, payload: EvaluateRequest) -> EvaluateResponse:
        record = _get_record(program_id)
        evaluator = Evaluator(
            tape_length=payload.tape_size,
            eof=EofPolicy(payload.eof),
            max_steps=payload.max_steps,
        )
        try:
            output = evaluator.run(record.program, input_data=_string_to_input_bytes(payload.input))
        except StepLimitExceeded as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except EvaluationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc

        start = max(0, evaluator.pointer - tape_window)
        end = min(evaluator.tape_length, evaluator.pointer + tape_window + 1)
        return EvaluateResponse(
            program_id=record.program_id,
            output=output.decode("latin-1"),
            output_bytes=list(output),
            pointer=evaluator.pointer,
            steps=evaluator.steps,
            tape_start=start,
            tape_window=evaluator.tape[start:end],
        )

    @app.post("/api/programs/{program_id}/compile", response_model=CompileResponse)
    def compile_program(program_id: str, payload: CompileRequest) -> CompileResponse:
        record = _get_record(program_id)
        compiler = CCompiler(tape_length=payload.tape_size, eof=EofPolicy(payload.eof))
        return CompileResponse(program_id=record.program_id, c_source=compiler.compile(record.program))

    @app.delete("/api/programs/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_program(program_id: str) -> Response:
        removed = program_store.remove(program_id)
        if not removed:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown program id: {program_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["TreeSerializer", "create_app"]
