"""Change-set data model and error types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Any, Union


class ChangeSetError(Exception):
    """Base class for every error raised by the change-set pipeline."""
    pass


class XMLParserError(ChangeSetError):
    """Exception raised for errors in the XML parser."""
    pass


class EmptyInputError(XMLParserError):
    """Raised when the XML document is None, empty or whitespace only."""
    pass


class XMLStructureError(XMLParserError):
    """Raised when the document cannot be parsed even after repair.

    The message embeds the parser message and a diagnostic excerpt.
    """

    def __init__(self, message: str, parser_message: str = "", excerpt: str = ""):
        super().__init__(message)
        self.parser_message = parser_message
        self.excerpt = excerpt


class ApplyError(ChangeSetError):
    """Base class for failures confined to a single file change."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ChangeValidationError(ApplyError):
    """A change is missing a field it needs (path, or code for CREATE)."""
    pass


class PathSecurityError(ApplyError):
    """The path is absolute or escapes the project directory."""
    pass


class FileSystemError(ApplyError):
    """A filesystem call failed (permissions, missing file or directory)."""
    pass


class UnknownOperationError(ApplyError):
    """The change carries an operation the applier does not know."""
    pass


class FileOperation(str, Enum):
    """Operations a file change can request."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FileOperation":
        """Map raw ``file_operation`` text to an operation.

        Matching is case-sensitive on the trimmed value. Anything other than
        ``UPDATE`` or ``DELETE``, including a missing value, becomes ``CREATE``.
        """
        if value is None:
            return cls.CREATE
        value = value.strip()
        if value == cls.UPDATE.value:
            return cls.UPDATE
        if value == cls.DELETE.value:
            return cls.DELETE
        return cls.CREATE


@dataclass(frozen=True)
class FileChange:
    """A single file change extracted from the XML document."""

    file_path: str
    file_operation: Union[FileOperation, str]
    file_code: str = ""
    file_summary: str = ""

    @property
    def operation_name(self) -> str:
        """The operation as plain text, whatever type it was given as."""
        if isinstance(self.file_operation, FileOperation):
            return self.file_operation.value
        return str(self.file_operation)

    def __repr__(self) -> str:
        return f"FileChange({self.operation_name}, {self.file_path})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileChange":
        """Create a FileChange from a dictionary.

        Accepts the wire element names (``file_path``, ``file_operation``,
        ``file_code``, ``file_summary``) as well as the short aliases used by
        the web API (``path``, ``operation``, ``code``/``content``,
        ``summary``/``description``).

        Raises:
            ChangeValidationError: If no path is present
        """
        path = data.get("file_path", data.get("path"))
        if not path:
            raise ChangeValidationError("Missing required 'file_path' field")

        operation = data.get("file_operation", data.get("operation"))
        code = data.get("file_code", data.get("code", data.get("content")))
        summary = data.get("file_summary", data.get("summary", data.get("description")))

        return cls(
            file_path=str(path),
            file_operation=FileOperation.parse(None if operation is None else str(operation)),
            file_code="" if code is None else str(code),
            file_summary="" if summary is None else str(summary),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "file_path": self.file_path,
            "file_operation": self.operation_name,
            "file_code": self.file_code,
            "file_summary": self.file_summary,
        }


@dataclass(frozen=True)
class FailedFile:
    """A change that could not be applied, with the reason."""

    path: str
    reason: str


@dataclass
class ApplyResult:
    """Aggregate outcome of applying a change-set.

    ``success`` is true as soon as one change was applied; failures are
    reported per file in ``failed_files`` rather than folded into the flag.
    """

    success: bool = False
    message: str = ""
    updated_files: List[str] = field(default_factory=list)
    failed_files: List[FailedFile] = field(default_factory=list)
    details: str = ""
    warning_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the camelCase result contract used by the web API."""
        result = {
            "success": self.success,
            "message": self.message,
            "updatedFiles": list(self.updated_files),
            "failedFiles": [{"path": f.path, "reason": f.reason} for f in self.failed_files],
            "details": self.details,
        }
        if self.warning_message:
            result["warningMessage"] = self.warning_message
        return result
