from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import typer

from .cli_shared import _CONSOLE


class PromptCancelled(Exception):
    """Raised when a required field is left blank."""


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    optional: bool = False
    secret: bool = False
    # Multi-line fields read until a line equal to the sentinel.
    sentinel: str | None = None
    intro: str | None = None


SSH_KEY_FIELD = FieldSpec(
    "key",
    "Private SSH key",
    sentinel="END_OF_KEY",
    intro="Type/Paste your SSH Private Key line by line. Type END_OF_KEY on a new line when finished:",
)
TASK_FIELD = FieldSpec(
    "task",
    "Task",
    sentinel="END_OF_TASK",
    intro="Type/Paste your Task line by line. Type END_OF_TASK on a new line when finished:",
)
CONTENT_FIELD = FieldSpec(
    "content",
    "New Content",
    sentinel="END_OF_CONTENT",
    intro=(
        "Type/Paste the new content for the Master File line by line. "
        "Type END_OF_CONTENT on a new line when finished:"
    ),
)


def _read_line(prompt: str) -> str:
    return typer.prompt(prompt, default="", show_default=False, prompt_suffix="")


def _read_secret(prompt: str) -> str:
    return typer.prompt(prompt, default="", show_default=False, prompt_suffix="", hide_input=True)


def _finish(value: str, spec: FieldSpec) -> str | None:
    if not value.strip():
        if spec.optional:
            return None
        raise PromptCancelled(spec.label)
    return value


def prompt_multiline(spec: FieldSpec) -> str | None:
    sentinel = str(spec.sentinel or "").strip().lower()
    if spec.intro:
        _CONSOLE.print(spec.intro, markup=False, highlight=False, soft_wrap=True)
    lines: list[str] = []
    while True:
        line = _read_line("")
        if line.strip().lower() == sentinel:
            break
        lines.append(line)
    return _finish("\n".join(lines), spec)


def prompt_field(spec: FieldSpec) -> str | None:
    if spec.sentinel:
        return prompt_multiline(spec)
    reader = _read_secret if spec.secret else _read_line
    answer = _finish(reader(f"{spec.label}: "), spec)
    return answer.strip() if answer is not None else None


def collect_fields(specs: Sequence[FieldSpec]) -> dict[str, str]:
    out: dict[str, str] = {}
    for spec in specs:
        val = prompt_field(spec)
        if val is None:
            continue
        out[spec.key] = val
    return out
