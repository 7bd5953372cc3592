"""Apply a whole change-set and aggregate the per-file outcomes."""

import os
import asyncio
import logging
from typing import List, Dict, Any, Optional, Sequence

from changeset_tools.modules.changes import (
    FileChange,
    FileOperation,
    FailedFile,
    ApplyResult,
    ApplyError,
)
from changeset_tools.modules.applier import apply_file_change, resolve_target_path
from changeset_tools.modules.formatting import Formatter
from changeset_tools.modules.xml_parser import parse_xml_string

# Configure logging
logger = logging.getLogger(__name__)

PREVIEW_SIZE = 500


def apply_changes(
    changes: Sequence[FileChange],
    project_directory: str,
    test_mode: bool = False,
    mock_directory_exists: bool = False,
    formatter: Optional[Formatter] = None
) -> ApplyResult:
    """Apply file changes one after another.

    A failing change is recorded and the next one is attempted; nothing that
    was already applied is rolled back.

    Args:
        changes: The ordered change-set
        project_directory: The project root
        test_mode: Validate every change without touching the filesystem
        mock_directory_exists: In test mode, assume the project root exists
        formatter: Formatter passed to the applier

    Returns:
        ApplyResult with the updated and failed files
    """
    result = ApplyResult()
    detail_lines = []

    if not changes:
        result.message = "No file changes found in XML"
        return result

    for index, change in enumerate(changes):
        logger.debug(f"Applying change {index + 1}/{len(changes)}: {change!r}")
        try:
            apply_file_change(
                change,
                project_directory,
                test_mode=test_mode,
                mock_directory_exists=mock_directory_exists,
                formatter=formatter,
            )
        except ApplyError as e:
            reason = str(e)
            logger.error(f"Error applying {change.operation_name} to {change.file_path}: {reason}")
            result.failed_files.append(FailedFile(path=change.file_path, reason=reason))
            detail_lines.append(f"{change.operation_name} {change.file_path}: {reason}")
        except Exception as e:
            reason = f"Unexpected error: {str(e)}"
            logger.exception(f"Unexpected error applying {change.operation_name} to {change.file_path}")
            result.failed_files.append(FailedFile(path=change.file_path, reason=reason))
            detail_lines.append(f"{change.operation_name} {change.file_path}: {reason}")
        else:
            result.updated_files.append(change.file_path)
            detail_lines.append(f"{change.operation_name} {change.file_path}: ok")

    total = len(changes)
    applied = len(result.updated_files)
    failed = len(result.failed_files)

    result.success = applied > 0
    if applied:
        result.message = f"Applied {applied} of {total} file changes"
    else:
        result.message = "No file changes were applied"
    if failed:
        result.warning_message = f"{failed} of {total} file changes failed"
    result.details = "\n".join(detail_lines)

    logger.info(f"Applied {applied} changes successfully")
    if failed:
        logger.warning(f"Failed to apply {failed} changes")
    return result


def process_xml_changes(
    xml_content: str,
    project_directory: Optional[str] = None,
    test_mode: bool = False,
    mock_directory_exists: bool = False,
    formatter: Optional[Formatter] = None
) -> ApplyResult:
    """Parse a change-set document and apply it.

    Args:
        xml_content: XML string describing the changes
        project_directory: The project root (default: current directory)
        test_mode: Validate every change without touching the filesystem
        mock_directory_exists: In test mode, assume the project root exists
        formatter: Formatter passed to the applier

    Returns:
        ApplyResult with the updated and failed files

    Raises:
        XMLParserError: If the document is empty or cannot be parsed; nothing
            has been applied in that case
    """
    if project_directory is None:
        project_directory = os.getcwd()

    changes = parse_xml_string(xml_content)
    return apply_changes(
        changes,
        project_directory,
        test_mode=test_mode,
        mock_directory_exists=mock_directory_exists,
        formatter=formatter,
    )


async def process_xml_changes_async(
    xml_content: str,
    project_directory: Optional[str] = None,
    test_mode: bool = False,
    mock_directory_exists: bool = False,
    formatter: Optional[Formatter] = None
) -> ApplyResult:
    """Run process_xml_changes in a worker thread so the event loop stays free.

    The batch is still applied strictly in order; there is no cancellation
    once it has started.
    """
    return await asyncio.to_thread(
        process_xml_changes,
        xml_content,
        project_directory,
        test_mode,
        mock_directory_exists,
        formatter,
    )


def preview_changes(changes: Sequence[FileChange], project_directory: str) -> List[Dict[str, Any]]:
    """Describe what applying the changes would do, without applying them.

    Args:
        changes: The ordered change-set
        project_directory: The project root

    Returns:
        List of dictionaries with preview information for each change
    """
    previews = []

    for change in changes:
        preview = {
            "path": change.file_path,
            "operation": change.operation_name,
            "summary": change.file_summary,
        }

        try:
            full_path = resolve_target_path(change.file_path, project_directory)
        except ApplyError as e:
            preview["error"] = str(e)
            previews.append(preview)
            continue

        file_exists = os.path.exists(full_path)
        preview["file_exists"] = file_exists

        if change.file_operation in (FileOperation.CREATE, FileOperation.UPDATE):
            code = change.file_code
            preview["content_preview"] = code[:PREVIEW_SIZE] + "..." if len(code) > PREVIEW_SIZE else code

        if change.file_operation == FileOperation.CREATE:
            preview["operation_desc"] = "Creating new file"
            if file_exists:
                preview["warning"] = "File already exists"
        elif change.file_operation == FileOperation.UPDATE:
            preview["operation_desc"] = "Updating existing file"
            if not file_exists:
                preview["warning"] = "File doesn't exist"
        elif change.file_operation == FileOperation.DELETE:
            preview["operation_desc"] = "Deleting file"
            if not file_exists:
                preview["warning"] = "File doesn't exist"
        else:
            preview["error"] = f"Unknown file operation: {change.operation_name}"

        previews.append(preview)

    return previews
