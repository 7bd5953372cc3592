"""Apply a single file change to a project directory."""

import os
import re
import errno
import logging
from typing import Optional

from changeset_tools.modules.changes import (
    FileChange,
    FileOperation,
    ApplyError,
    ChangeValidationError,
    PathSecurityError,
    FileSystemError,
    UnknownOperationError,
)
from changeset_tools.modules.formatting import Formatter, DefaultFormatter, get_parser_hint

# Configure logging
logger = logging.getLogger(__name__)

ACCESS_ERROR_PREFIX = "Error accessing project directory"


def resolve_target_path(file_path: str, project_directory: str) -> str:
    """Validate a change path and join it onto the project directory.

    Purely lexical: no filesystem call is made, so the check runs before any
    I/O for every operation.

    Args:
        file_path: The path from the change, relative to the project
        project_directory: The project root

    Returns:
        The absolute target path

    Raises:
        ChangeValidationError: If the path is empty
        PathSecurityError: If the path is absolute or escapes the project
    """
    if not file_path or not file_path.strip():
        raise ChangeValidationError("Missing file_path in file change", path=file_path)

    candidate = file_path.strip()
    segments = re.split(r'[\\/]+', candidate)
    if candidate.startswith(('/', '\\')) or os.path.isabs(candidate) or '..' in segments:
        raise PathSecurityError(
            f"{ACCESS_ERROR_PREFIX}: Invalid path with directory traversal: {candidate}",
            path=file_path
        )

    normalized = os.path.normpath(candidate)
    root = os.path.abspath(project_directory)
    full_path = os.path.abspath(os.path.join(root, normalized))
    if full_path == root or os.path.commonpath([root, full_path]) != root:
        raise PathSecurityError(
            f"{ACCESS_ERROR_PREFIX}: Path escapes the project directory: {candidate}",
            path=file_path
        )

    return full_path


def _operation_of(change: FileChange) -> FileOperation:
    name = change.operation_name.strip().upper()
    try:
        return FileOperation(name)
    except ValueError:
        raise UnknownOperationError(f"Unknown file operation: {change.operation_name}", path=change.file_path)


def _format_content(content: str, file_path: str, formatter: Formatter) -> str:
    parser_hint = get_parser_hint(file_path)
    if not parser_hint:
        return content
    try:
        formatted = formatter.format(content, parser_hint)
        logger.debug(f"Formatted {file_path} with parser {parser_hint}")
        return formatted
    except Exception as e:
        logger.warning(f"Could not format {file_path}: {str(e)}")
        return content


def _translate_os_error(error: OSError, change: FileChange, rel_path: str) -> FileSystemError:
    if error.errno in (errno.EACCES, errno.EPERM):
        message = f"{ACCESS_ERROR_PREFIX}: Permission denied for {rel_path}"
    elif error.errno == errno.ENOENT:
        message = f"{ACCESS_ERROR_PREFIX}: File does not exist: {rel_path}"
    else:
        message = f"Failed to {change.operation_name.lower()} file {rel_path}: {error.strerror or str(error)}"
    return FileSystemError(message, path=change.file_path)


def _write_file(full_path: str, rel_path: str, content: str, operation: FileOperation, path: str) -> None:
    os.makedirs(os.path.dirname(full_path), exist_ok=True)

    if operation == FileOperation.UPDATE:
        if not os.path.exists(full_path):
            raise FileSystemError(f"{ACCESS_ERROR_PREFIX}: File does not exist: {rel_path}", path=path)
        if not os.access(full_path, os.W_OK):
            raise FileSystemError(f"{ACCESS_ERROR_PREFIX}: Permission denied for {rel_path}", path=path)

    # newline='' keeps the payload's line endings as they are
    with open(full_path, 'w', encoding='utf-8', newline='') as f:
        f.write(content)


def _delete_file(full_path: str, rel_path: str) -> None:
    if not os.path.lexists(full_path):
        logger.info(f"File {rel_path} doesn't exist, skipping DELETE operation")
        return
    os.remove(full_path)


def apply_file_change(
    change: FileChange,
    project_directory: str,
    test_mode: bool = False,
    mock_directory_exists: bool = False,
    formatter: Optional[Formatter] = None
) -> None:
    """Apply one file change to the project directory.

    Validation always runs in full. In ``test_mode`` nothing is created,
    written or removed; the project directory check still runs unless
    ``mock_directory_exists`` says to assume the directory is there.

    Args:
        change: The change to apply
        project_directory: The project root the change path is relative to
        test_mode: Validate only, without mutating the filesystem
        mock_directory_exists: In test mode, skip the project directory check
        formatter: Formatter for CREATE/UPDATE content (DefaultFormatter if None)

    Raises:
        ApplyError: A subclass describing why this change failed
    """
    full_path = resolve_target_path(change.file_path, project_directory)
    rel_path = os.path.normpath(change.file_path.strip())
    operation = _operation_of(change)

    if operation == FileOperation.CREATE and not change.file_code:
        raise ChangeValidationError("Missing file_code for CREATE operation", path=change.file_path)

    logger.info(f"Applying file change for {rel_path} ({operation.value})")

    if not (test_mode and mock_directory_exists) and not os.path.isdir(project_directory):
        raise FileSystemError(
            f"{ACCESS_ERROR_PREFIX}: No such directory {project_directory}",
            path=change.file_path
        )

    try:
        if operation in (FileOperation.CREATE, FileOperation.UPDATE):
            content = _format_content(change.file_code or "", rel_path, formatter or DefaultFormatter())
            if test_mode:
                logger.info(f"[Test Mode] {operation.value} file {rel_path} successful")
            else:
                _write_file(full_path, rel_path, content, operation, change.file_path)
                logger.info(f"{operation.value} file {rel_path} successful")
        else:
            if test_mode:
                logger.info(f"[Test Mode] DELETE file {rel_path} successful")
            else:
                _delete_file(full_path, rel_path)
                logger.info(f"DELETE file {rel_path} successful")
    except ApplyError:
        raise
    except OSError as e:
        raise _translate_os_error(e, change, rel_path) from e
