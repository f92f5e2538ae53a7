"""
Directive variants and function specification models

Defines the constructs the scanner recognizes in a style-sheet source
(imports, assignments, sprite rules, custom function calls, plain runs)
along with the metadata used by the sprite function registry and the
caller-registered custom function signatures.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Union


# Fixed file conventions (not user-configurable)
DEFAULT_EXTENSION: str = ".scss"
PARTIAL_PREFIX: str = "_"


class DirectiveKind(Enum):
    """Tag for the directive variants produced by the scanner"""
    IMPORT = "import"
    ASSIGNMENT = "assignment"
    SPRITE_RULE = "sprite-rule"
    CUSTOM_CALL = "custom-call"
    PLAIN_RUN = "plain-run"


@dataclass(frozen=True)
class Span:
    """
    Location of a directive inside its owning source file

    Attributes:
        start: Character offset of the first character
        end: Character offset one past the last character
        line: 1-based line of the first character
        end_line: 1-based line of the last character
    """
    start: int
    end: int
    line: int
    end_line: int


@dataclass
class PlainRun:
    """
    Pass-through text between directives

    Attributes:
        text: Verbatim source text
        span: Location in the owning file
        braces: Block braces ('{' / '}') occurring in code, in order
    """
    text: str
    span: Span
    braces: Tuple[str, ...] = ()
    kind = DirectiveKind.PLAIN_RUN


@dataclass
class Import:
    """A single `@import` target, unquoted"""
    target: str
    span: Span
    text: str
    kind = DirectiveKind.IMPORT


@dataclass
class Assignment:
    """
    Head of a `$name: value` declaration

    The span covers `$name:` only; the value is scanned as ordinary text so
    that calls inside it are still recognized. `value` holds the raw value
    text with `!default` / `!global` stripped.
    """
    name: str
    value: str
    span: Span
    text: str
    default: bool = False
    is_global: bool = False
    kind = DirectiveKind.ASSIGNMENT


@dataclass
class SpriteRule:
    """
    Call to one of the built-in sprite/image functions

    Attributes:
        name: Function name (e.g. "sprite", "image-url")
        args: Raw argument strings, split on top-level commas
        span: Location in the owning file (may cover several lines)
        text: Verbatim source text of the call
        assign: Variable receiving the result (only for sprite-map)
        default: The assignment carries `!default`
        is_global: The assignment carries `!global`
    """
    name: str
    args: List[str]
    span: Span
    text: str
    assign: Optional[str] = None
    default: bool = False
    is_global: bool = False
    kind = DirectiveKind.SPRITE_RULE


@dataclass
class CustomFunctionCall:
    """
    Call matching a caller-registered function signature

    `args` holds the whole argument list, but `span` and `text` cover only
    the `name(` head; the arguments are scanned as ordinary text.
    """
    name: str
    args: List[str]
    span: Span
    text: str
    signature: "FunctionSignature"
    kind = DirectiveKind.CUSTOM_CALL


Directive = Union[PlainRun, Import, Assignment, SpriteRule, CustomFunctionCall]


@dataclass(frozen=True)
class Parameter:
    """One parameter of a function signature, with optional default"""
    name: str
    default: Optional[str] = None


_SIGNATURE_RE = re.compile(r'^\s*([A-Za-z_][\w-]*)\s*\((.*)\)\s*$', re.DOTALL)
_PARAMETER_RE = re.compile(r'^\$([A-Za-z_][\w-]*)\s*(?::\s*(.+))?$', re.DOTALL)


@dataclass(frozen=True)
class FunctionSignature:
    """
    A custom function signature such as `foo($bar, $baz: 10px)`

    Registering a signature only enables recognition of matching calls;
    the call itself is evaluated by the downstream compiler.

    Example:
        >>> sig = FunctionSignature.parse("foo($bar,$baz)")
        >>> sig.name, [p.name for p in sig.parameters]
        ('foo', ['bar', 'baz'])
    """
    name: str
    parameters: Tuple[Parameter, ...] = ()
    source: str = ""

    @classmethod
    def parse(cls, signature: str) -> "FunctionSignature":
        """
        Parse a `name($a, $b: default)` signature string

        Raises:
            ValueError: If the signature is not of that shape
        """
        match = _SIGNATURE_RE.match(signature)
        if not match:
            raise ValueError(f"Invalid function signature: {signature!r}")

        name, body = match.group(1), match.group(2).strip()
        parameters: List[Parameter] = []
        if body:
            for raw in body.split(','):
                param = _PARAMETER_RE.match(raw.strip())
                if not param:
                    raise ValueError(
                        f"Invalid parameter {raw.strip()!r} in signature {signature!r}"
                    )
                default = param.group(2).strip() if param.group(2) else None
                parameters.append(Parameter(param.group(1), default))

        return cls(name=name, parameters=tuple(parameters), source=signature.strip())

    def required(self) -> List[str]:
        """Names of parameters without a default value"""
        return [p.name for p in self.parameters if p.default is None]

    def parameter_names(self) -> List[str]:
        return [p.name for p in self.parameters]


class DirectiveCategory(Enum):
    """
    Categories of built-in sprite/image functions

    Used for organization and documentation of the sprite registry.
    """
    SPRITE_MAP = "sprite-map"    # $m: sprite-map("glob")
    SPRITE = "sprite"            # sprite(), sprite-position(), sprite-url()
    DIMENSION = "dimension"      # sprite-height(), image-width(), ...
    IMAGE = "image"              # image-url(), inline-image()


@dataclass
class DirectiveSpec:
    """
    Specification for a built-in sprite/image function

    Attributes:
        name: Function name as written in the source
        category: Category for organization
        description: Human-readable description
        handler: Expansion function (rule, expander, variables) -> str
        min_args: Fewest arguments accepted
        max_args: Most arguments accepted
        assigns: Whether the call must be the value of a `$var:` declaration
        examples: Example usage strings
    """
    name: str
    category: DirectiveCategory
    description: str
    handler: Callable
    min_args: int = 1
    max_args: int = 1
    assigns: bool = False
    examples: List[str] = field(default_factory=list)

    def arity_check(self, count: int) -> bool:
        """Check whether `count` arguments are acceptable"""
        return self.min_args <= count <= self.max_args
