"""
Line-map assembler

Builds the concatenated output buffer while recording, for every output
line, the file and line it came from. Lines are only ever appended; an
imported file is assembled into its own LineMap first and then spliced in
as one unit, keeping its entries verbatim.

Example:
    >>> lm = LineMap()
    >>> lm.append("a {\\n  b: c;\\n", Path("/x.scss"), 1)
    >>> len(lm), str(lm.lookup(2))
    (2, '/x.scss:2')
"""

import re
from pathlib import Path
from typing import Iterator, List

from ..models.parser import LineOrigin
from .errors import LineMapError


_SEGMENT_RE = re.compile(r'[^\n]*\n|[^\n]+')


def segments_split(text: str) -> List[str]:
    """Split text into lines on '\\n', keeping the terminators"""
    return _SEGMENT_RE.findall(text)


def lines_count(text: str) -> int:
    """Number of (possibly unterminated) lines in `text`"""
    return len(segments_split(text))


class LineMap:
    """
    Output buffer plus provenance ledger

    Invariant: `lines` and `entries` always have the same length; entry i
    is the origin of output line i + 1. The last line may be open (not yet
    terminated by a newline); text appended to an open line continues it
    and keeps its origin.

    Attributes:
        lines: Output lines, newline-terminated except possibly the last
        entries: Origin of each output line
    """

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.entries: List[LineOrigin] = []
        self.open = False

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[LineOrigin]:
        return iter(self.entries)

    @property
    def text(self) -> str:
        return ''.join(self.lines)

    def append(self, text: str, path: Path, start_line: int) -> None:
        """
        Append source text, one origin per source line

        Args:
            text: Verbatim text taken from `path`
            path: Originating file
            start_line: Line in `path` where `text` begins
        """
        for offset, segment in enumerate(segments_split(text)):
            self.segment_add(segment, LineOrigin(path, start_line + offset))

    def generated_append(self, text: str, path: Path, line: int) -> int:
        """
        Append rewritten text, attributing every line to one origin

        Used for directive output: all of it belongs to the directive's
        first source line.

        Returns:
            Number of new output lines started
        """
        before = len(self.lines)
        origin = LineOrigin(path, line)
        for segment in segments_split(text):
            self.segment_add(segment, origin)
        return len(self.lines) - before

    def segment_add(self, segment: str, origin: LineOrigin) -> None:
        if self.open:
            self.lines[-1] += segment
        else:
            self.lines.append(segment)
            self.entries.append(origin)
        self.open = not segment.endswith('\n')

    def line_break(self) -> None:
        """
        Make sure the next append starts a fresh output line

        An open line holding only whitespace (indentation before a spliced
        import) is dropped; any other open line is terminated.
        """
        if not self.open:
            return
        if not self.lines[-1].strip():
            self.lines.pop()
            self.entries.pop()
        else:
            self.lines[-1] += '\n'
        self.open = False

    def close(self) -> None:
        """Terminate an open last line"""
        if self.open:
            self.lines[-1] += '\n'
            self.open = False

    def splice(self, child: "LineMap") -> int:
        """
        Insert a fully assembled child map at the current position

        The child's entries are kept as they are (they already name the
        child's files); they are renumbered only by their new position.

        Returns:
            Output line number of the first spliced line
        """
        self.line_break()
        first = len(self.lines) + 1
        child.close()
        self.lines.extend(child.lines)
        self.entries.extend(child.entries)
        self.open = False
        return first

    def lookup(self, output_line: int) -> LineOrigin:
        """
        Origin of a 1-based output line

        Raises:
            LineMapError: If the line is outside the assembled buffer
        """
        if output_line < 1 or output_line > len(self.entries):
            raise LineMapError(
                f"Output line {output_line} out of range (1..{len(self.entries)})"
            )
        return self.entries[output_line - 1]
