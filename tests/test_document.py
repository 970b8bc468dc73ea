"""
Tests for parsing, serializing and patching job documents.
"""

import pytest
import yaml

from rdedit import document
from rdedit.errors import DocumentShapeError, ParseError
from rdedit.model import JobDocument


MAPPING_JOB = """\
name: cleanup
uuid: 1111-2222
id: 1111-2222
sequence:
  keepgoing: false
  commands:
  - description: Remove old logs
    script: |
      #!/bin/bash
      find /var/log -mtime +7 -delete
    scriptInterpreter: bash
  - exec: uptime
"""

LIST_JOB = """\
- name: first
  uuid: aaa
  sequence:
    commands:
    - script: echo first
- name: second
  uuid: bbb
  id: bbb
  sequence:
    commands:
    - script: echo second
"""


def test_parse_mapping_root():
    doc = document.parse(MAPPING_JOB)
    assert doc.is_sequence is False
    assert len(doc.jobs) == 1
    assert doc.working_job["name"] == "cleanup"


def test_parse_list_root_uses_first_job():
    doc = document.parse(LIST_JOB)
    assert doc.is_sequence is True
    assert len(doc.jobs) == 2
    assert doc.working_job["name"] == "first"


@pytest.mark.parametrize(
    "text",
    [
        "name: [unclosed",   # malformed
        "",                  # empty document
        "just a string",     # scalar root
        "[]",                # empty job list
        "- one\n- two\n",    # list of scalars
        "42",
    ],
)
def test_parse_rejects_unusable_documents(text):
    with pytest.raises(ParseError):
        document.parse(text)


def test_serialize_keeps_root_shape():
    mapping = document.parse(MAPPING_JOB)
    listed = document.parse(LIST_JOB)

    assert isinstance(yaml.safe_load(document.serialize(mapping)), dict)
    assert isinstance(yaml.safe_load(document.serialize(listed)), list)


def test_serialize_force_sequence():
    doc = document.parse(MAPPING_JOB)
    root = yaml.safe_load(document.serialize(doc, force_sequence=True))
    assert isinstance(root, list)
    assert root[0]["name"] == "cleanup"


def test_serialize_writes_scripts_as_literal_blocks():
    text = document.serialize(document.parse(MAPPING_JOB))
    assert "script: |" in text
    assert "find /var/log -mtime +7 -delete" in text


def test_serialize_preserves_key_order():
    text = document.serialize(document.parse(MAPPING_JOB))
    keys = [line.split(":")[0] for line in text.splitlines() if not line.startswith(" ")]
    assert keys == ["name", "uuid", "id", "sequence"]


@pytest.mark.parametrize("text", [MAPPING_JOB, LIST_JOB])
def test_round_trip_is_semantically_equal(text):
    first = document.parse(text)
    second = document.parse(document.serialize(first))
    assert second.jobs == first.jobs
    assert second.is_sequence == first.is_sequence


def test_strip_identity_fields_from_every_job():
    doc = document.parse(LIST_JOB)
    stripped = document.strip_identity_fields(doc)

    for job in stripped.jobs:
        assert "uuid" not in job
        assert "id" not in job
    # original untouched
    assert doc.jobs[0]["uuid"] == "aaa"
    assert doc.jobs[1]["id"] == "bbb"


def test_strip_identity_fields_is_idempotent():
    doc = document.parse(MAPPING_JOB)
    once = document.strip_identity_fields(doc)
    twice = document.strip_identity_fields(once)
    assert once == twice
    assert once.is_sequence is False


def test_force_sequence_shape_is_idempotent():
    doc = document.parse(MAPPING_JOB)
    once = document.force_sequence_shape(doc)
    twice = document.force_sequence_shape(once)
    assert once.is_sequence is True
    assert twice == once
    assert doc.is_sequence is False


def test_get_commands_missing_levels():
    assert document.get_commands(JobDocument(jobs=[{"name": "x"}])) is None
    assert document.get_commands(JobDocument(jobs=[{"sequence": "oops"}])) is None
    assert document.get_commands(JobDocument(jobs=[{"sequence": {"keepgoing": True}}])) is None
    assert document.get_commands(JobDocument(jobs=[{"sequence": {"commands": []}}])) == []


def test_replace_script_patches_one_slot():
    doc = document.parse(MAPPING_JOB)
    document.replace_script(doc, 0, "echo replaced\n")

    commands = document.get_commands(doc)
    assert commands[0]["script"] == "echo replaced\n"
    assert commands[0]["scriptInterpreter"] == "bash"
    assert commands[1] == {"exec": "uptime"}


def test_replace_script_only_touches_working_job():
    doc = document.parse(LIST_JOB)
    document.replace_script(doc, 0, "echo patched")
    assert doc.jobs[0]["sequence"]["commands"][0]["script"] == "echo patched"
    assert doc.jobs[1]["sequence"]["commands"][0]["script"] == "echo second"


@pytest.mark.parametrize("index", [1, 2, -1])
def test_replace_script_rejects_non_script_slots(index):
    doc = document.parse(MAPPING_JOB)
    with pytest.raises(DocumentShapeError):
        document.replace_script(doc, index, "echo nope")


def test_replace_script_without_commands():
    doc = JobDocument(jobs=[{"name": "empty"}])
    with pytest.raises(DocumentShapeError, match="sequence.commands"):
        document.replace_script(doc, 0, "echo nope")


def test_load_and_dump(tmp_path):
    path = tmp_path / "job.yaml"
    path.write_text(MAPPING_JOB, encoding="utf-8")

    doc = document.load(path)
    document.replace_script(doc, 0, "echo from disk\n")
    document.dump(doc, path)

    reloaded = document.load(path)
    assert reloaded.is_sequence is False
    assert document.get_commands(reloaded)[0]["script"] == "echo from disk\n"


def test_dump_keeps_file_mode(tmp_path):
    path = tmp_path / "job.yaml"
    path.write_text(MAPPING_JOB, encoding="utf-8")
    path.chmod(0o640)

    document.dump(document.load(path), path)

    assert path.stat().st_mode & 0o777 == 0o640


def test_failed_dump_leaves_file_intact(tmp_path, fill_disk):
    path = tmp_path / "job.yaml"
    path.write_text(MAPPING_JOB, encoding="utf-8")
    doc = document.load(path)
    document.replace_script(doc, 0, "echo " + "x" * 500 + "\n")

    fill_disk()
    with pytest.raises(OSError, match="No space left"):
        document.dump(doc, path)

    assert path.read_text(encoding="utf-8") == MAPPING_JOB
    assert [p.name for p in tmp_path.iterdir()] == ["job.yaml"]
