"""
Parser-specific data models

Type-safe structures for the orchestrator's state and return values.
"""

from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..lib.linemap import LineMap
    from .directives import Directive
    from .sprites import SpriteSheet


class ParserState(Enum):
    """
    Lifecycle of one top-level Parser invocation

    Idle -> Scanning -> (Splicing -> Scanning -> Resuming)* -> Done | Failed
    """
    IDLE = "idle"
    SCANNING = "scanning"
    SPLICING = "splicing"
    RESUMING = "resuming"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class LineOrigin:
    """
    Provenance of one output line

    Attributes:
        path: Absolute resolved path of the originating source file
        line: 1-based line number within that file

    Example:
        >>> str(LineOrigin(Path("/css/_b.scss"), 3))
        '/css/_b.scss:3'
    """
    path: Path
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


@dataclass
class SourceFile:
    """
    One loaded source file

    Identity is the absolute resolved path. The text is read once and never
    mutated; `directives` records what the scanner produced, in order.

    Attributes:
        path: Absolute resolved path
        text: Raw file contents
        parent: Path of the importing file (None for the root)
        directives: Directives found while parsing this file
    """
    path: Path
    text: str
    parent: Optional[Path] = None
    directives: List['Directive'] = field(default_factory=list)


@dataclass
class RecognizedCall:
    """A custom function call found while parsing, with its location"""
    name: str
    args: List[str]
    origin: LineOrigin


@dataclass
class ParseResult:
    """
    Result of a successful top-level parse

    Attributes:
        buffer: Concatenated output for the downstream compiler
        line_map: Provenance ledger for every line of `buffer`
        files: Every file loaded, in depth-first order (repeats allowed)
        calls: Recognized custom function calls
        sprites: Sprite sheets bound during the parse, by variable name
    """
    buffer: str
    line_map: 'LineMap'
    files: List[SourceFile] = field(default_factory=list)
    calls: List[RecognizedCall] = field(default_factory=list)
    sprites: Dict[str, 'SpriteSheet'] = field(default_factory=dict)
