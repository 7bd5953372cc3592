"""Modules package for changeset tools.

This package provides a unified API for both CLI and WebUI components
to access the change-set pipeline.
"""

# Re-export the public APIs that can be used by both CLI and WebUI
from changeset_tools.modules.changes import (
    ChangeSetError,
    XMLParserError,
    EmptyInputError,
    XMLStructureError,
    ApplyError,
    ChangeValidationError,
    PathSecurityError,
    FileSystemError,
    UnknownOperationError,
    FileOperation,
    FileChange,
    FailedFile,
    ApplyResult,
)
from changeset_tools.modules.repair import RepairRule, REPAIR_RULES, apply_rule, preprocess_xml
from changeset_tools.modules.cdata import wrap_file_code_in_cdata
from changeset_tools.modules.diagnostics import find_problem_area
from changeset_tools.modules.xml_parser import (
    parse_xml_string,
    prepare_xml,
    validate_xml_structure,
    generate_xml_from_changes,
)
from changeset_tools.modules.formatting import Formatter, DefaultFormatter, NullFormatter
from changeset_tools.modules.applier import apply_file_change
from changeset_tools.modules.orchestrator import (
    apply_changes,
    process_xml_changes,
    process_xml_changes_async,
    preview_changes,
)

# Define a version to track API compatibility
__api_version__ = '1.0.0'


def preview_xml_changes(xml_string, repo_path):
    """
    Parse XML content and generate a preview of changes.

    Args:
        xml_string: The XML string to parse
        repo_path: Path to the target repository

    Returns:
        A list of dictionaries with preview information

    Raises:
        XMLParserError: If the XML string is invalid or cannot be parsed
    """
    return preview_changes(parse_xml_string(xml_string), repo_path)
