"""Shared fixtures for rdedit tests."""

from __future__ import annotations

import os

import pytest
import yaml

from rdedit.sessions import SessionRegistry
from rdedit.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def console():
    """Fresh non-debug console for every test."""
    c = Console(debug=False)
    set_console(c)
    return c


@pytest.fixture
def temp_dir(tmp_path):
    d = tmp_path / "edit-sessions"
    d.mkdir()
    return d


@pytest.fixture
def registry(tmp_path, temp_dir):
    return SessionRegistry(tmp_path / "home" / "sessions.json", temp_dir=temp_dir)


@pytest.fixture
def make_job():
    """Build a job mapping whose commands are all bash scripts."""
    def _make(n_scripts: int = 6, name: str = "deploy") -> dict:
        return {
            "name": name,
            "group": "ops",
            "uuid": f"{name}-uuid",
            "id": f"{name}-uuid",
            "description": f"{name} job",
            "sequence": {
                "keepgoing": False,
                "strategy": "node-first",
                "commands": [
                    {
                        "description": f"step {i}",
                        "script": f"#!/bin/bash\necho step {i}\n",
                        "scriptInterpreter": "bash",
                    }
                    for i in range(n_scripts)
                ],
            },
        }
    return _make


@pytest.fixture
def write_job(tmp_path):
    """Write a YAML root (mapping or list) to a job file and return its path."""
    def _write(root, name: str = "job.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(root, sort_keys=False), encoding="utf-8")
        return path
    return _write


def read_yaml(path):
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def load_yaml():
    return read_yaml


class FakePrompter:
    """Replays canned answers; None means the user left the prompt empty."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked: list[str] = []

    def _next(self, prompt):
        self.asked.append(prompt)
        return self.answers.pop(0) if self.answers else None

    def ask_text(self, prompt, *, hide_input=False):
        return self._next(prompt)

    def choose(self, prompt, labels):
        return self._next(prompt)

    def ask_path(self, prompt):
        return self._next(prompt)


@pytest.fixture
def prompter_factory():
    return FakePrompter


@pytest.fixture
def fill_disk(monkeypatch):
    """
    Call to make every later atomic write stop halfway with ENOSPC, the
    way a full disk would.
    """
    real_fdopen = os.fdopen

    class HalfWriter:
        def __init__(self, f):
            self.f = f

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            self.f.close()
            return False

        def write(self, text):
            self.f.write(text[: len(text) // 2])
            self.f.flush()
            raise OSError(28, "No space left on device")

    def _fill():
        monkeypatch.setattr(
            "rdedit.fileio.os.fdopen",
            lambda fd, *args, **kwargs: HalfWriter(real_fdopen(fd, *args, **kwargs)),
        )
    return _fill
