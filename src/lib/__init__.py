"""
wellington - Sass preprocessor with imports, sprites and line attribution

Assembles a root style sheet and its imports into one buffer for libsass,
remembering where every line came from.
"""

__version__ = "1.0.0"

from .parser import Parser
from .compiler import Compiler, CompileResult, stylesheet_compile
from .diagnostics import excerpt_render
from .directives import SpriteRegistry
from .errors import (
    CompileError,
    FileError,
    ImportResolveError,
    LineMapError,
    ScanError,
    SpriteError,
    StylesheetError,
    WellingtonError,
)
from .sprites import SpriteCache
from .log import LOG, ERROR, source_connect, state_connectToLogger

__all__ = [
    "Parser",
    "Compiler",
    "CompileResult",
    "stylesheet_compile",
    "excerpt_render",
    "SpriteRegistry",
    "CompileError",
    "FileError",
    "ImportResolveError",
    "LineMapError",
    "ScanError",
    "SpriteError",
    "StylesheetError",
    "WellingtonError",
    "SpriteCache",
    "LOG",
    "ERROR",
    "source_connect",
    "state_connectToLogger",
    "__version__",
]
