# locator.py
from __future__ import annotations

from typing import Any, List

from .document import get_commands
from .model import JobDocument, ScriptCommandRef


def extension_for(interpreter: Any) -> str:
    """".py" for anything mentioning python, ".sh" for everything else."""
    if isinstance(interpreter, str) and "python" in interpreter.lower():
        return ".py"
    return ".sh"


def list_script_commands(document: JobDocument) -> List[ScriptCommandRef]:
    """
    Return the working job's script commands in sequence order.

    `index` is the position in sequence.commands, not in the returned list,
    since patch-back targets the original slot. Commands without a text
    `script` are skipped. An empty list just means there is nothing to edit.
    """
    refs: List[ScriptCommandRef] = []
    for index, command in enumerate(get_commands(document) or []):
        if not isinstance(command, dict):
            continue
        script = command.get("script")
        if not isinstance(script, str):
            continue

        interpreter = command.get("scriptInterpreter")
        if not isinstance(interpreter, str):
            interpreter = None
        description = command.get("description")
        if not isinstance(description, str) or not description.strip():
            description = f"Script #{index}"

        refs.append(
            ScriptCommandRef(
                index=index,
                description=description,
                script=script,
                interpreter=interpreter,
                extension=extension_for(interpreter),
            )
        )
    return refs
