"""Tests for applying whole change-sets."""

import asyncio

import pytest

from changeset_tools.modules import orchestrator
from changeset_tools.modules import (
    FileChange,
    FileOperation,
    FailedFile,
    EmptyInputError,
    XMLStructureError,
    NullFormatter,
    apply_changes,
    process_xml_changes,
    process_xml_changes_async,
    preview_changes,
    preview_xml_changes,
    generate_xml_from_changes,
)


def test_failure_in_the_middle_does_not_stop_the_batch(project_dir):
    changes = [
        FileChange("first.txt", FileOperation.CREATE, "1"),
        FileChange("../escape.txt", FileOperation.CREATE, "2"),
        FileChange("third.txt", FileOperation.CREATE, "3"),
    ]
    result = apply_changes(changes, str(project_dir), formatter=NullFormatter())

    assert result.success
    assert result.updated_files == ["first.txt", "third.txt"]
    assert [failed.path for failed in result.failed_files] == ["../escape.txt"]
    assert result.message == "Applied 2 of 3 file changes"
    assert result.warning_message == "1 of 3 file changes failed"
    assert result.details.split("\n")[0] == "CREATE first.txt: ok"
    assert result.details.split("\n")[1].startswith("CREATE ../escape.txt: Error accessing project directory")
    assert (project_dir / "third.txt").read_text(encoding="utf-8") == "3"


def test_traversal_is_reported_as_failed_file(project_dir):
    change = FileChange("../../etc/passwd", FileOperation.CREATE, "root::0:0")
    result = apply_changes([change], str(project_dir))

    assert not result.success
    assert result.updated_files == []
    assert len(result.failed_files) == 1
    assert "directory traversal" in result.failed_files[0].reason
    assert result.message == "No file changes were applied"
    assert result.warning_message == "1 of 1 file changes failed"


def test_later_changes_see_earlier_ones(project_dir):
    changes = [
        FileChange("pkg/a.txt", FileOperation.CREATE, "a"),
        FileChange("pkg/a.txt", FileOperation.UPDATE, "b"),
        FileChange("pkg/a.txt", FileOperation.DELETE),
    ]
    result = apply_changes(changes, str(project_dir))
    assert result.updated_files == ["pkg/a.txt"] * 3
    assert not (project_dir / "pkg" / "a.txt").exists()


def test_empty_change_set():
    result = apply_changes([], "/nonexistent")
    assert not result.success
    assert result.message == "No file changes found in XML"
    assert result.to_dict() == {
        "success": False,
        "message": "No file changes found in XML",
        "updatedFiles": [],
        "failedFiles": [],
        "details": "",
    }


def test_unexpected_errors_are_isolated(project_dir, monkeypatch):
    def flaky(change, *args, **kwargs):
        if change.file_path == "bad.txt":
            raise RuntimeError("disk on fire")

    monkeypatch.setattr(orchestrator, "apply_file_change", flaky)
    changes = [FileChange("bad.txt", FileOperation.CREATE, "x"),
               FileChange("good.txt", FileOperation.CREATE, "y")]
    result = apply_changes(changes, str(project_dir))

    assert result.updated_files == ["good.txt"]
    assert result.failed_files == [FailedFile("bad.txt", "Unexpected error: disk on fire")]


def test_dry_run_validates_without_writing(project_dir):
    changes = [FileChange("a.txt", FileOperation.CREATE, "x"),
               FileChange("b.txt", FileOperation.CREATE, "")]
    result = apply_changes(changes, str(project_dir), test_mode=True)

    assert result.updated_files == ["a.txt"]
    assert result.failed_files[0].reason == "Missing file_code for CREATE operation"
    assert list(project_dir.iterdir()) == []


def test_process_xml_changes_applies_document(project_dir):
    xml = generate_xml_from_changes([FileChange("notes/todo.md", FileOperation.CREATE, "- a\n")])
    result = process_xml_changes(xml, str(project_dir), formatter=NullFormatter())

    assert result.success
    assert (project_dir / "notes" / "todo.md").read_text(encoding="utf-8") == "- a\n"


def test_process_xml_changes_defaults_to_cwd(project_dir, monkeypatch):
    monkeypatch.chdir(project_dir)
    xml = generate_xml_from_changes([FileChange("here.txt", FileOperation.CREATE, "x")])
    assert process_xml_changes(xml).updated_files == ["here.txt"]
    assert (project_dir / "here.txt").exists()


def test_parse_failures_apply_nothing(project_dir):
    with pytest.raises(EmptyInputError):
        process_xml_changes("  ", str(project_dir))
    with pytest.raises(XMLStructureError):
        process_xml_changes("<changed_files><file><file_path>a.txt</file_path>", str(project_dir))
    assert list(project_dir.iterdir()) == []


def test_async_surface(project_dir):
    xml = generate_xml_from_changes([FileChange("a.txt", FileOperation.CREATE, "async")])
    result = asyncio.run(process_xml_changes_async(xml, str(project_dir)))

    assert result.success
    assert (project_dir / "a.txt").read_text(encoding="utf-8") == "async"


def test_preview_reports_without_writing(project_dir):
    (project_dir / "exists.txt").write_text("x", encoding="utf-8")
    changes = [
        FileChange("exists.txt", FileOperation.CREATE, "y" * 600),
        FileChange("missing.txt", FileOperation.UPDATE, "z"),
        FileChange("missing.txt", FileOperation.DELETE),
        FileChange("../out.txt", FileOperation.CREATE, "w"),
    ]
    previews = preview_changes(changes, str(project_dir))

    assert previews[0]["file_exists"]
    assert previews[0]["warning"] == "File already exists"
    assert previews[0]["content_preview"] == "y" * 500 + "..."
    assert previews[1]["warning"] == "File doesn't exist"
    assert previews[1]["operation_desc"] == "Updating existing file"
    assert previews[2]["operation_desc"] == "Deleting file"
    assert "content_preview" not in previews[2]
    assert "directory traversal" in previews[3]["error"]
    assert sorted(p.name for p in project_dir.iterdir()) == ["exists.txt"]


def test_preview_xml_changes_parses_first(project_dir):
    xml = generate_xml_from_changes([FileChange("a.txt", FileOperation.CREATE, "x", "new file")])
    assert preview_xml_changes(xml, str(project_dir)) == [{
        "path": "a.txt",
        "operation": "CREATE",
        "summary": "new file",
        "file_exists": False,
        "content_preview": "x",
        "operation_desc": "Creating new file",
    }]
