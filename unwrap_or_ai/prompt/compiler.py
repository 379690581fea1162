"""Prompt Compiler: turns a SynthesisRequest into a CompiledPrompt.

Rendering order: Context -> Task -> Rules -> Correction -> Output Structure,
using `#` (H1) headers for section boundaries. The output schema is embedded
as a JSON-Schema document so the backend can target it. Compilation is pure:
identical requests produce identical prompts.
"""

import json
import re

from unwrap_or_ai.llm.types import CompiledPrompt, CoreMessage, Role
from unwrap_or_ai.schema import RecordSchema, SchemaDescriptor

from .types import SynthesisRequest

SYSTEM_PROMPT = (
    "You are an AI error recovery assistant. When given an error message and program context, "
    "your task is to infer the most likely intended response or output. Do not explain the error - "
    "directly provide the corrected or plausible output as if the error had not occurred."
)

TASK = (
    "The operation above failed. Produce the value it would most plausibly have returned had it "
    "succeeded. The value must satisfy the output structure below exactly."
)

RULES = (
    "Answer with a single JSON value and nothing else: no prose, no markdown fences.",
    "Keep every fact the arguments already establish (identifiers, names, quantities).",
    "Include every required field with exactly the declared type; use null only where allowed.",
    "When a field lists allowed values or bounds, pick a value inside them.",
)

_SCHEMA_NAME_INVALID = re.compile(r"[^a-zA-Z0-9_-]+")


def schema_name(schema: SchemaDescriptor) -> str:
    """Derive a json_schema identifier: the record name, else the value kind."""
    if isinstance(schema, RecordSchema):
        raw = schema.name
    else:
        raw = schema.type
    return _SCHEMA_NAME_INVALID.sub("_", raw).lower() or "response"


def _format_numbered_rule(index: int, text: str) -> str:
    return f"{index}. {text}"


def _render_call(request: SynthesisRequest) -> str:
    args = ", ".join(f"{name}={value}" for name, value in request.arguments)
    return f"{request.operation_name}({args})"


def render_user_prompt(request: SynthesisRequest) -> str:
    """Render the user message of a request."""
    sections: list[str] = []

    # 1. Context
    context_parts = [
        f"**Failed call:**\n{_render_call(request)}",
        f"**Error:**\n{request.failure_reason}",
    ]
    if request.arguments:
        arg_lines = "\n".join(f"- {name} = {value}" for name, value in request.arguments)
        context_parts.append(f"**Arguments:**\n{arg_lines}")
    if request.operation_doc:
        context_parts.append(f"**Documentation:**\n{request.operation_doc.strip()}")
    if request.operation_source:
        context_parts.append(f"**Source code:**\n```python\n{request.operation_source.rstrip()}\n```")
    sections.append("# Context\n\n" + "\n\n".join(context_parts))

    # 2. Task
    sections.append(f"# Task\n\n{TASK}")

    # 3. Rules
    rule_lines = [_format_numbered_rule(i, rule) for i, rule in enumerate(RULES, 1)]
    sections.append("# Rules\n\n" + "\n".join(rule_lines))

    # 4. Correction of the previous attempt
    if request.attempt > 1 and request.prior_rejection:
        sections.append(
            f"# Correction\n\nThis is attempt {request.attempt}. Your previous answer was rejected:\n"
            f"{request.prior_rejection}\n\nFix exactly this violation and keep the rest of the structure valid."
        )

    # 5. Output structure
    contract = json.dumps(request.output_schema.to_json_schema(), indent=2, ensure_ascii=False)
    sections.append(f"# Output Structure\n\nReturn JSON matching this JSON Schema:\n\n```json\n{contract}\n```")

    return "\n\n".join(sections)


def compile_prompt(request: SynthesisRequest) -> CompiledPrompt:
    """Compile a request into the payload the Model Client sends.

    @public

    Example:
        >>> prompt = compile_prompt(request)
        >>> prompt.messages[0].role
        <Role.SYSTEM: 'system'>
    """
    return CompiledPrompt(
        messages=(
            CoreMessage(role=Role.SYSTEM, content=SYSTEM_PROMPT),
            CoreMessage(role=Role.USER, content=render_user_prompt(request)),
        ),
        schema_name=schema_name(request.output_schema),
        json_schema=request.output_schema.to_json_schema(),
        attempt=request.attempt,
    )


__all__ = ["SYSTEM_PROMPT", "compile_prompt", "render_user_prompt", "schema_name"]
