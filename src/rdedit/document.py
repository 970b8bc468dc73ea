# document.py
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import DocumentShapeError, ParseError
from .fileio import write_atomic
from .model import JobDocument

# ---------------------------------------------------------------------
# Job documents
# ---------------------------------------------------------------------
# Rundeck exports jobs as a YAML list, but hand-written files are often a
# single job mapping. Both are normalized into JobDocument right after
# decoding; everything else in the package only deals with JobDocument.
#
# Fields touched by rdedit:
#   <job>.uuid / <job>.id                     (removed before upload)
#   <job>.sequence.commands[i].script         (read / patched)
#   <job>.sequence.commands[i].scriptInterpreter
#   <job>.sequence.commands[i].description
# ---------------------------------------------------------------------

IDENTITY_FIELDS = ("uuid", "id")


class _JobDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str):
    # scripts read much better as literal blocks than as escaped one-liners
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_str(data)


_JobDumper.add_representer(str, _represent_str)


def parse(text: str) -> JobDocument:
    """
    Decode a job document.

    Raises:
        ParseError: malformed YAML, an empty document, or a root that is
            not a job mapping / non-empty list of job mappings.
    """
    try:
        root = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}") from e

    if root is None:
        raise ParseError("Job document is empty")

    if isinstance(root, list):
        if not root:
            raise ParseError("Job document contains an empty job list")
        if not isinstance(root[0], dict):
            raise ParseError(
                f"First job in the list must be a mapping, got {type(root[0]).__name__}"
            )
        return JobDocument(jobs=root, is_sequence=True)

    if isinstance(root, dict):
        return JobDocument(jobs=[root], is_sequence=False)

    raise ParseError(
        f"Job document root must be a mapping or a list, got {type(root).__name__}"
    )


def serialize(document: JobDocument, *, force_sequence: bool = False) -> str:
    """Encode a document, keeping its original root shape unless forced to a list."""
    if document.is_sequence or force_sequence:
        root: Any = document.jobs
    else:
        root = document.working_job
    return yaml.dump(
        root,
        Dumper=_JobDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def strip_identity_fields(document: JobDocument) -> JobDocument:
    """Return a copy without job-level uuid/id on every job."""
    jobs = copy.deepcopy(document.jobs)
    for job in jobs:
        if isinstance(job, dict):
            for key in IDENTITY_FIELDS:
                job.pop(key, None)
    return JobDocument(jobs=jobs, is_sequence=document.is_sequence)


def force_sequence_shape(document: JobDocument) -> JobDocument:
    """Return a copy that serializes as a list of jobs."""
    return JobDocument(jobs=copy.deepcopy(document.jobs), is_sequence=True)


# ---------------------------------------------------------------------
# Command slots
# ---------------------------------------------------------------------

def get_commands(document: JobDocument) -> Optional[List[Any]]:
    """The working job's sequence.commands list, or None if it is missing."""
    sequence = document.working_job.get("sequence")
    if not isinstance(sequence, dict):
        return None
    commands = sequence.get("commands")
    if not isinstance(commands, list):
        return None
    return commands


def replace_script(document: JobDocument, index: int, text: str) -> None:
    """
    Overwrite the script of command `index` in place.

    Raises:
        DocumentShapeError: if the slot no longer exists or holds no script.
    """
    commands = get_commands(document)
    if commands is None:
        raise DocumentShapeError("Job has no sequence.commands")
    if index < 0 or index >= len(commands):
        raise DocumentShapeError(
            f"Command #{index} does not exist (job has {len(commands)} command(s))"
        )
    command: Dict[str, Any] = commands[index]
    if not isinstance(command, dict) or not isinstance(command.get("script"), str):
        raise DocumentShapeError(f"Command #{index} no longer holds a script")
    command["script"] = text


# ---------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------

def load(path: str | Path) -> JobDocument:
    return parse(Path(path).read_text(encoding="utf-8"))


def dump(document: JobDocument, path: str | Path) -> None:
    """Write the document back; a failed write leaves the old file intact."""
    write_atomic(path, serialize(document))
