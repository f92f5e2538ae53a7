"""
Source excerpts for error reports

Renders the lines around an attributed origin so a failure can be shown
next to the code the user wrote, optionally highlighted for a terminal.
"""

from typing import List, Optional

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import get_lexer_by_name, TextLexer
from pygments.util import ClassNotFound

from ..models.parser import LineOrigin


def lines_highlight(lines: List[str]) -> List[str]:
    """Highlight SCSS lines for a terminal, preserving the line count"""
    try:
        lexer = get_lexer_by_name('scss')
    except ClassNotFound:
        lexer = TextLexer()
    rendered = highlight("\n".join(lines) + "\n", lexer, TerminalFormatter())
    highlighted = rendered.split("\n")[:len(lines)]
    # The formatter may drop trailing blank lines
    highlighted += [""] * (len(lines) - len(highlighted))
    return highlighted


def excerpt_render(
    origin: Optional[LineOrigin], context: int = 2, color: bool = False
) -> str:
    """
    Render the source lines around an origin

    Args:
        origin: Attributed file and line; None renders nothing
        context: Lines shown before and after the failing line
        color: Highlight with pygments for a terminal

    Returns:
        Numbered excerpt with a '>' marker on the failing line, or an empty
        string if the file cannot be read or the line is out of range

    Example:
        >>> print(excerpt_render(LineOrigin(Path("a.scss"), 2)))
          1 | a { color: red; }
        > 2 | b { color: $nope; }
    """
    if origin is None:
        return ""
    try:
        source_lines = origin.path.read_text(encoding='utf-8').splitlines()
    except (OSError, UnicodeDecodeError):
        return ""
    if not 1 <= origin.line <= len(source_lines):
        return ""

    first = max(origin.line - context, 1)
    last = min(origin.line + context, len(source_lines))
    shown = source_lines[first - 1:last]
    if color:
        shown = lines_highlight(shown)

    width = len(str(last))
    rendered = []
    for number, text in enumerate(shown, start=first):
        marker = ">" if number == origin.line else " "
        rendered.append(f"{marker} {number:>{width}} | {text}")
    return "\n".join(rendered)
