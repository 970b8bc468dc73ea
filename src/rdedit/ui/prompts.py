# prompts.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import click


class Prompter:
    """
    Terminal prompts. Every method returns None when the user gives an
    empty answer, which callers treat as "abandon the current action".
    """

    def ask_text(self, prompt: str, *, hide_input: bool = False) -> Optional[str]:
        value = click.prompt(
            prompt,
            default="",
            show_default=False,
            hide_input=hide_input,
        )
        value = value.strip()
        return value or None

    def choose(self, prompt: str, labels: Sequence[str]) -> Optional[int]:
        """Show a numbered list; return the zero-based position picked."""
        if not labels:
            return None
        for n, label in enumerate(labels, start=1):
            click.echo(f"  {n}) {label}")
        picker = click.IntRange(1, len(labels))

        def convert(value):
            # a BadParameter here makes click ask again
            value = value.strip()
            return picker.convert(value, None, None) if value else None

        picked = click.prompt(prompt, default="", show_default=False, value_proc=convert)
        return None if picked is None else picked - 1

    def ask_path(self, prompt: str) -> Optional[Path]:
        value = click.prompt(prompt, default="", show_default=False).strip()
        return Path(value).expanduser() if value else None
