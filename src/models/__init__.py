"""
Models package for wellington

Contains data structures and type definitions for the preprocessing pipeline.
"""

from .state import ProgramState, pipeline
from .directives import (
    DEFAULT_EXTENSION,
    PARTIAL_PREFIX,
    Assignment,
    CustomFunctionCall,
    Directive,
    DirectiveCategory,
    DirectiveKind,
    DirectiveSpec,
    FunctionSignature,
    Import,
    PlainRun,
    Span,
    SpriteRule,
)
from .parser import LineOrigin, ParseResult, ParserState, RecognizedCall, SourceFile
from .sprites import Expansion, Offset, SpriteOptions, SpriteSheet

__all__ = [
    "ProgramState",
    "pipeline",
    "DEFAULT_EXTENSION",
    "PARTIAL_PREFIX",
    "Assignment",
    "CustomFunctionCall",
    "Directive",
    "DirectiveCategory",
    "DirectiveKind",
    "DirectiveSpec",
    "FunctionSignature",
    "Import",
    "PlainRun",
    "Span",
    "SpriteRule",
    "LineOrigin",
    "ParseResult",
    "ParserState",
    "RecognizedCall",
    "SourceFile",
    "Expansion",
    "Offset",
    "SpriteOptions",
    "SpriteSheet",
]
