"""
Directive scanner for style-sheet sources

Produces a lazy sequence of directives over one file's raw text:

1. `@import "a", "b";` -> one Import per target (plain-CSS imports pass through)
2. Built-in sprite/image calls (`sprite(...)`, `image-url(...)`, ...)
3. Caller-registered custom function calls
4. Everything else as maximally coalesced PlainRun spans

`$name:` declaration heads are reported as Assignment directives so the
orchestrator can maintain its variable table. Comments, strings, `url()`
bodies and `#{}` interpolations are opaque: nothing inside them is
recognized. Every call to scan() starts from scratch.

Example:
    >>> scanner = Scanner()
    >>> [d.kind.value for d in scanner.scan('@import "b";\\ndiv { color: red; }')]
    ['import', 'plain-run']
"""

import re
from bisect import bisect_right
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from ..models.directives import (
    Assignment,
    CustomFunctionCall,
    Directive,
    FunctionSignature,
    Import,
    PlainRun,
    Span,
    SpriteRule,
)
from .errors import ScanError


# Built-in sprite/image functions recognized by default
SPRITE_FUNCTIONS: Set[str] = {
    'sprite-map',
    'sprite',
    'sprite-position',
    'sprite-url',
    'sprite-file',
    'sprite-height',
    'sprite-width',
    'sprite-dimensions',
    'image-url',
    'image-height',
    'image-width',
    'inline-image',
}

_IMPORT_RE = re.compile(r'@import(?![\w-])')
_IDENT_RE = re.compile(r'-?[A-Za-z_][\w-]*')
_VARIABLE_RE = re.compile(r'\$([A-Za-z_][\w-]*)[ \t]*:')
_FLAGS_RE = re.compile(r'(\s*!(default|global))+\s*$')
_FLAG_RE = re.compile(r'!(default|global)')
_KEYWORD_ARG_RE = re.compile(r'^\$([A-Za-z_][\w-]*)\s*:(.*)$', re.DOTALL)

# Characters that, directly before an identifier, mean it is not a call
_NOT_CALL_PREFIX = set('$@.#%-_') | set('abcdefghijklmnopqrstuvwxyz'
                                        'ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789')


def args_split(text: str) -> List[str]:
    """
    Split call arguments on top-level commas

    Commas inside strings or nested parentheses do not split.

    Example:
        >>> args_split('$icons, "a,b", rgba(0, 0, 0, 1)')
        ['$icons', '"a,b"', 'rgba(0, 0, 0, 1)']
    """
    if not text.strip():
        return []

    args = []
    depth = 0
    quote = ''
    current = []
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if quote:
            if ch == '\\' and pos + 1 < len(text):
                current.append(text[pos:pos + 2])
                pos += 2
                continue
            if ch == quote:
                quote = ''
        elif ch in '"\'':
            quote = ch
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
        elif ch == ',' and depth == 0:
            args.append(''.join(current).strip())
            current = []
            pos += 1
            continue
        current.append(ch)
        pos += 1

    args.append(''.join(current).strip())
    return args


def args_partition(args: List[str]) -> Tuple[List[str], Dict[str, str]]:
    """
    Separate positional arguments from `$name: value` keyword arguments

    Example:
        >>> args_partition(['"icons/*.png"', '$spacing: 2px'])
        (['"icons/*.png"'], {'spacing': '2px'})
    """
    positional: List[str] = []
    keywords: Dict[str, str] = {}
    for arg in args:
        keyword = _KEYWORD_ARG_RE.match(arg)
        if keyword:
            keywords[keyword.group(1)] = keyword.group(2).strip()
        else:
            positional.append(arg)
    return positional, keywords


def dequote(value: str) -> str:
    """Strip one level of matching quotes"""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
        return value[1:-1]
    return value


def cssImport_is(target: str) -> bool:
    """Check whether an import target is left for the CSS engine"""
    return (
        target.endswith('.css')
        or target.startswith(('http://', 'https://', '//'))
    )


class Scanner:
    """
    Scanner for style-sheet directives

    Attributes:
        signatures: Registered custom function signatures by name
        sprite_functions: Names recognized as sprite/image directives
    """

    def __init__(
        self,
        signatures: Iterable[FunctionSignature] = (),
        sprite_functions: Optional[Iterable[str]] = None,
    ) -> None:
        self.signatures: Dict[str, FunctionSignature] = {s.name: s for s in signatures}
        self.sprite_functions: Set[str] = set(
            SPRITE_FUNCTIONS if sprite_functions is None else sprite_functions
        )

    def scan(self, text: str) -> Iterator[Directive]:
        """
        Lazily scan `text` into directives

        Args:
            text: Raw contents of one source file

        Yields:
            Directives in source order; concatenating the `text` of every
            yielded directive reproduces the input

        Raises:
            ScanError: For malformed imports, unterminated calls, strings
                       or comments, and calls that do not match their
                       registered signature
        """
        return _Scan(self, text).directives()


class _Scan:
    """Cursor state for a single scan() call"""

    def __init__(self, scanner: Scanner, text: str) -> None:
        self.scanner = scanner
        self.text = text
        self.newlines = [i for i, ch in enumerate(text) if ch == '\n']

    def line_at(self, pos: int) -> int:
        """1-based line number of a character offset"""
        return bisect_right(self.newlines, pos - 1) + 1

    def span_make(self, start: int, end: int) -> Span:
        return Span(start, end, self.line_at(start), self.line_at(max(start, end - 1)))

    def directives(self) -> Iterator[Directive]:
        text = self.text
        length = len(text)
        pos = 0
        run_start = 0
        braces: List[str] = []
        statement_start = True

        def run_flush(end: int) -> Iterator[PlainRun]:
            nonlocal run_start, braces
            if end > run_start:
                yield PlainRun(text[run_start:end], self.span_make(run_start, end), tuple(braces))
            run_start = end
            braces = []

        while pos < length:
            ch = text[pos]

            # Opaque regions
            if text.startswith('/*', pos):
                end = text.find('*/', pos + 2)
                if end == -1:
                    raise ScanError("Unterminated comment", self.line_at(pos))
                pos = end + 2
                continue
            if text.startswith('//', pos):
                end = text.find('\n', pos)
                pos = length if end == -1 else end
                continue
            if ch in '"\'':
                pos = self.string_skip(pos)
                statement_start = False
                continue
            if text.startswith('#{', pos):
                pos = self.interpolation_skip(pos)
                statement_start = False
                continue

            if ch in '{}':
                braces.append(ch)
                statement_start = True
                pos += 1
                continue
            if ch == ';':
                statement_start = True
                pos += 1
                continue

            # @import
            if ch == '@' and _IMPORT_RE.match(text, pos):
                end, targets = self.import_scan(pos)
                if targets:
                    yield from run_flush(pos)
                    span = self.span_make(pos, end)
                    for target in targets:
                        yield Import(target=target, span=span, text=text[pos:end])
                    run_start = end
                    statement_start = True
                else:
                    statement_start = False
                pos = end
                continue

            # $name: declaration head
            if ch == '$' and statement_start:
                match = _VARIABLE_RE.match(text, pos)
                if match:
                    yield from run_flush(pos)
                    directive, end = self.assignment_scan(pos, match)
                    yield directive
                    run_start = pos = end
                    statement_start = False
                    continue

            # Identifiers and calls
            if ch.isalpha() or ch in '_-':
                match = _IDENT_RE.match(text, pos)
                if match:
                    name = match.group(0)
                    after = match.end()
                    is_call = (
                        after < length
                        and text[after] == '('
                        and (pos == 0 or text[pos - 1] not in _NOT_CALL_PREFIX)
                    )
                    if is_call and name in self.scanner.sprite_functions:
                        yield from run_flush(pos)
                        directive = self.spriteRule_make(pos, after, name)
                        yield directive
                        run_start = pos = directive.span.end
                    elif is_call and name in self.scanner.signatures:
                        yield from run_flush(pos)
                        directive = self.customCall_make(pos, after, name)
                        yield directive
                        run_start = pos = directive.span.end
                    elif is_call and name.lower() == 'url':
                        pos = self.url_skip(after)
                    else:
                        pos = after
                    statement_start = False
                    continue

            if not ch.isspace():
                statement_start = False
            pos += 1

        yield from run_flush(length)

    # ------------------------------------------------------------------
    # Opaque region helpers
    # ------------------------------------------------------------------

    def string_skip(self, pos: int) -> int:
        """Return the offset just past the string starting at `pos`"""
        quote = self.text[pos]
        cursor = pos + 1
        while cursor < len(self.text):
            ch = self.text[cursor]
            if ch == '\\':
                cursor += 2
                continue
            if ch == quote:
                return cursor + 1
            if ch == '\n':
                break
            cursor += 1
        raise ScanError("Unterminated string", self.line_at(pos))

    def interpolation_skip(self, pos: int) -> int:
        """Return the offset just past the `#{...}` starting at `pos`"""
        depth = 0
        cursor = pos + 1
        while cursor < len(self.text):
            ch = self.text[cursor]
            if ch in '"\'':
                cursor = self.string_skip(cursor)
                continue
            if ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
                if depth == 0:
                    return cursor + 1
            cursor += 1
        raise ScanError("Unterminated interpolation", self.line_at(pos))

    def url_skip(self, open_pos: int) -> int:
        """Skip an unquoted `url(...)` body"""
        close = self.text.find(')', open_pos)
        if close == -1:
            raise ScanError("Unterminated url()", self.line_at(open_pos))
        return close + 1

    def paren_findMatching(self, open_pos: int, name: str) -> int:
        """
        Find the `)` closing the `(` at `open_pos`

        Tracks nesting depth and skips strings and comments, so calls may
        span several lines.

        Raises:
            ScanError: If the end of the text is reached first
        """
        depth = 0
        cursor = open_pos
        text = self.text
        while cursor < len(text):
            ch = text[cursor]
            if ch in '"\'':
                cursor = self.string_skip(cursor)
                continue
            if text.startswith('/*', cursor):
                end = text.find('*/', cursor + 2)
                if end == -1:
                    break
                cursor = end + 2
                continue
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth == 0:
                    return cursor
            elif ch in ';{}':
                break
            cursor += 1
        raise ScanError(f"Unterminated call to '{name}('", self.line_at(open_pos))

    def statement_end(self, pos: int, newline: bool = False) -> int:
        """
        Offset of the `;`, `}` or end of text closing a declaration value

        With `newline`, an unnested line break also ends the statement.
        """
        depth = 0
        cursor = pos
        text = self.text
        while cursor < len(text):
            ch = text[cursor]
            if ch in '"\'':
                cursor = self.string_skip(cursor)
                continue
            if text.startswith('#{', cursor):
                cursor = self.interpolation_skip(cursor)
                continue
            if text.startswith('/*', cursor):
                end = text.find('*/', cursor + 2)
                cursor = len(text) if end == -1 else end + 2
                continue
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
            elif depth <= 0 and (ch in ';{}' or (newline and ch == '\n')):
                return cursor
            cursor += 1
        return cursor

    def importGap_skip(self, cursor: int, line_comments: bool = True) -> int:
        """
        Skip blanks and comments between the parts of an `@import`

        A `//` comment runs to the end of the line, which ends the statement.
        """
        text = self.text
        while cursor < len(text):
            if text[cursor] in ' \t':
                cursor += 1
            elif text.startswith('/*', cursor):
                end = text.find('*/', cursor + 2)
                if end == -1:
                    raise ScanError("Unterminated comment", self.line_at(cursor))
                cursor = end + 2
            elif line_comments and text.startswith('//', cursor):
                end = text.find('\n', cursor)
                return len(text) if end == -1 else end
            else:
                break
        return cursor

    def lineRest_extend(self, end: int) -> int:
        """Extend `end` over the rest of its line if only whitespace follows"""
        cursor = end
        while cursor < len(self.text) and self.text[cursor] in ' \t\r':
            cursor += 1
        if cursor >= len(self.text):
            return cursor
        if self.text[cursor] == '\n':
            return cursor + 1
        return end

    # ------------------------------------------------------------------
    # Directive builders
    # ------------------------------------------------------------------

    def import_scan(self, pos: int) -> Tuple[int, List[str]]:
        """
        Scan an `@import` statement

        Returns:
            (end offset, targets). Targets is empty when the statement is a
            plain-CSS import that passes through as text.

        Raises:
            ScanError: If the statement names no target
        """
        text = self.text
        cursor = pos + len('@import')
        targets: List[str] = []
        passthrough = False

        while True:
            cursor = self.importGap_skip(cursor, line_comments=False)
            if cursor >= len(text):
                break

            ch = text[cursor]
            if ch in '"\'':
                end = self.string_skip(cursor)
                target = text[cursor + 1:end - 1]
                if not target.strip():
                    raise ScanError("Empty @import target", self.line_at(pos))
                if cssImport_is(target):
                    passthrough = True
                targets.append(target)
                cursor = end
            elif text.startswith('url(', cursor):
                cursor = self.url_skip(cursor + 3)
                targets.append('')
                passthrough = True
            elif ch in ';\n}' or ch == '\r':
                break
            else:
                # Bare words (media queries, unquoted names) are left to the CSS engine
                passthrough = True
                cursor = self.statement_end(cursor, newline=True)
                break

            cursor = self.importGap_skip(cursor)
            if cursor < len(text) and text[cursor] == ',':
                cursor += 1
                continue
            if cursor < len(text) and text[cursor] not in ';\n\r}':
                passthrough = True
                cursor = self.statement_end(cursor, newline=True)
            break

        if not targets:
            raise ScanError("@import without a target", self.line_at(pos))

        if cursor < len(text) and text[cursor] == ';':
            cursor += 1

        if passthrough:
            return cursor, []
        return self.lineRest_extend(cursor), targets

    def assignment_scan(self, pos: int, match: 're.Match[str]') -> Tuple[Directive, int]:
        """
        Scan a `$name:` declaration head

        A declaration whose whole value is a `sprite-map(...)` call becomes a
        single SpriteRule spanning `$name: sprite-map(...)`. Anything else
        yields an Assignment covering the head only.
        """
        text = self.text
        name = match.group(1)
        value_start = match.end()
        value_end = self.statement_end(value_start)
        raw_value = text[value_start:value_end]

        flags = _FLAGS_RE.search(raw_value)
        flag_names = set(_FLAG_RE.findall(flags.group(0))) if flags else set()
        value = raw_value[:flags.start()] if flags else raw_value
        value = value.strip()

        cursor = value_start
        while cursor < value_end and text[cursor].isspace():
            cursor += 1
        call = _IDENT_RE.match(text, cursor)
        if call and call.group(0) == 'sprite-map' and 'sprite-map' in self.scanner.sprite_functions:
            paren = call.end()
            if paren < len(text) and text[paren] == '(':
                close = self.paren_findMatching(paren, 'sprite-map')
                rest = text[close + 1:value_end]
                if not _FLAGS_RE.sub('', rest).strip():
                    end = close + 1
                    return SpriteRule(
                        name='sprite-map',
                        args=args_split(text[paren + 1:close]),
                        span=self.span_make(pos, end),
                        text=text[pos:end],
                        assign=name,
                        default='default' in flag_names,
                        is_global='global' in flag_names,
                    ), end

        end = match.end()
        return Assignment(
            name=name,
            value=value,
            span=self.span_make(pos, end),
            text=text[pos:end],
            default='default' in flag_names,
            is_global='global' in flag_names,
        ), end

    def spriteRule_make(self, pos: int, paren: int, name: str) -> SpriteRule:
        """Build a SpriteRule for the call starting at `pos`"""
        if name == 'sprite-map':
            raise ScanError(
                "sprite-map() must be assigned to a variable", self.line_at(pos)
            )
        close = self.paren_findMatching(paren, name)
        end = close + 1
        return SpriteRule(
            name=name,
            args=args_split(self.text[paren + 1:close]),
            span=self.span_make(pos, end),
            text=self.text[pos:end],
        )

    def customCall_make(self, pos: int, paren: int, name: str) -> CustomFunctionCall:
        """
        Build a CustomFunctionCall and check it against its signature

        The directive covers only the `name(` head. The arguments and the
        closing `)` are scanned as ordinary text, so built-in calls nested in
        them are still expanded.

        Raises:
            ScanError: On too many positional arguments, an unknown keyword
                       argument, or a required parameter left unbound
        """
        signature = self.scanner.signatures[name]
        close = self.paren_findMatching(paren, name)
        args = args_split(self.text[paren + 1:close])
        line = self.line_at(pos)

        names = signature.parameter_names()
        bound: Set[str] = set()
        positional = 0
        for arg in args:
            keyword = _KEYWORD_ARG_RE.match(arg)
            if keyword:
                if keyword.group(1) not in names:
                    raise ScanError(
                        f"{name}() has no parameter ${keyword.group(1)}", line
                    )
                bound.add(keyword.group(1))
                continue
            if positional >= len(names):
                raise ScanError(
                    f"{name}() takes {len(names)} argument(s), got {len(args)}", line
                )
            bound.add(names[positional])
            positional += 1

        missing = [p for p in signature.required() if p not in bound]
        if missing:
            raise ScanError(
                f"{name}() missing argument(s): {', '.join('$' + m for m in missing)}", line
            )

        head = paren + 1
        return CustomFunctionCall(
            name=name,
            args=args,
            span=self.span_make(pos, head),
            text=self.text[pos:head],
            signature=signature,
        )
