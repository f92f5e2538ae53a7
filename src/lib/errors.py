"""
Error taxonomy for the wellington preprocessor

Every failure is fatal to the current top-level compilation. Errors carry
the best-available location (file and line of the offending directive) so
callers can attribute them without further lookups.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.parser import LineOrigin


class FileErrorReason(Enum):
    NOT_FOUND = "not found"
    NOT_PERMITTED = "not permitted"
    READ_FAILURE = "read failure"


class ImportErrorReason(Enum):
    NOT_FOUND = "not found"
    CYCLIC = "cyclic"


class SpriteErrorReason(Enum):
    MISSING_IMAGE = "missing image"
    PACK_FAILURE = "pack failure"
    UNKNOWN_MAP = "unknown map"


class ScanErrorReason(Enum):
    MALFORMED_DIRECTIVE = "malformed directive"


class WellingtonError(Exception):
    """
    Base class for preprocessor errors

    Attributes:
        message: Human-readable description
        reason: Enum member naming the failure kind
        path: File the failure is attributed to (may be stamped later)
        line: 1-based line in `path` (0 if unknown)
    """

    def __init__(
        self,
        message: str,
        reason: Optional[Enum] = None,
        path: Optional[Path] = None,
        line: int = 0,
    ) -> None:
        self.message = message
        self.reason = reason
        self.path = path
        self.line = line
        super().__init__(message)

    def locate(self, path: Path, line: int = 0) -> "WellingtonError":
        """Fill in a missing location; existing ones are kept"""
        if self.path is None:
            self.path = path
            if not self.line:
                self.line = line
        return self

    def __str__(self) -> str:
        if self.path is not None and self.line:
            return f"{self.path}:{self.line}: {self.message}"
        if self.path is not None:
            return f"{self.path}: {self.message}"
        if self.line:
            return f"line {self.line}: {self.message}"
        return self.message


class FileError(WellingtonError):
    """Raised when a source file cannot be loaded"""


class ImportResolveError(WellingtonError):
    """
    Raised when an import cannot be resolved or would recurse

    Attributes:
        target: Import target as written
        stack: Inclusion stack at the time of a cyclic import, root first
    """

    def __init__(
        self,
        message: str,
        reason: ImportErrorReason,
        target: str = "",
        stack: Optional[List[Path]] = None,
        path: Optional[Path] = None,
        line: int = 0,
    ) -> None:
        super().__init__(message, reason, path, line)
        self.target = target
        self.stack = list(stack or [])


class SpriteError(WellingtonError):
    """Raised when a sprite directive cannot be expanded"""

    def __init__(
        self,
        message: str,
        reason: SpriteErrorReason,
        image: str = "",
        path: Optional[Path] = None,
        line: int = 0,
    ) -> None:
        super().__init__(message, reason, path, line)
        self.image = image


class ScanError(WellingtonError):
    """Raised by the scanner for malformed directives"""

    def __init__(self, message: str, line: int = 0, path: Optional[Path] = None) -> None:
        super().__init__(message, ScanErrorReason.MALFORMED_DIRECTIVE, path, line)


class LineMapError(IndexError):
    """Raised when an output line has no recorded origin"""


class CompileError(Exception):
    """
    Raised by the style-sheet compiler collaborator

    Attributes:
        line: Line in the compiled buffer the compiler blamed, if any
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line

    def error_line(self) -> Optional[int]:
        return self.line


class StylesheetError(Exception):
    """
    A compiler error translated back to the file the user wrote

    Attributes:
        origin: Attributed source location, or None when unknown
        cause: The underlying CompileError
    """

    def __init__(self, cause: CompileError, origin: Optional["LineOrigin"] = None) -> None:
        location = str(origin) if origin is not None else "unknown location"
        super().__init__(f"{location}: {cause}")
        self.origin = origin
        self.cause = cause
