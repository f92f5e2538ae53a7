"""
Style-sheet compilation for assembled buffers

Wraps libsass: the Parser's assembled buffer goes in, CSS comes out. When
libsass rejects the buffer, the line it blames is traced back through the
Parser's line map so the user sees the file and line they actually wrote.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

import sass

from ..models.directives import FunctionSignature
from ..models.parser import ParseResult
from ..models.sprites import SpriteOptions
from .errors import CompileError, StylesheetError
from .log import LOG
from .parser import Parser
from .sprites import SpriteCache


_ERROR_LINE_RE = re.compile(r'on line (\d+)')


@dataclass
class CompileResult:
    """
    Outcome of compiling one root file

    Attributes:
        css: Compiled style sheet
        parse: ParseResult the CSS was compiled from
        source: Absolute path of the root file
    """
    css: str
    parse: ParseResult
    source: Path


class Compiler:
    """
    libsass compiler collaborator

    Responsibilities:
    - Compile an assembled buffer to CSS
    - Expose the compiled-buffer line of any failure via error_line()
    - Bind Python callables to recognized custom function signatures
    """

    def __init__(
        self,
        output_style: Optional[str] = None,
        include_paths: Optional[Iterable[Union[str, Path]]] = None,
        source_comments: Optional[bool] = None,
        custom_functions: Optional[Dict[str, Callable]] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            output_style: nested, expanded, compact or compressed
            include_paths: Paths libsass may still search (imports are
                           normally spliced before compilation)
            source_comments: Emit line comments in the CSS
            custom_functions: Signature string -> Python callable, e.g.
                              {"foo($bar, $baz)": lambda bar, baz: ...}
        """
        from ..config import appsettings

        self.output_style = output_style or appsettings.output_style
        self.include_paths: List[str] = [
            str(p) for p in (include_paths if include_paths is not None
                             else appsettings.include_paths)
        ]
        self.source_comments = (
            appsettings.source_comments if source_comments is None else source_comments
        )
        self.functions: List[sass.SassFunction] = []
        for text, callback in (custom_functions or {}).items():
            signature = FunctionSignature.parse(text)
            arguments = tuple(f"${name}" for name in signature.parameter_names())
            self.functions.append(sass.SassFunction(signature.name, arguments, callback))

    def compile(self, buffer: str) -> str:
        """
        Compile a buffer to CSS

        Args:
            buffer: Assembled style-sheet source

        Returns:
            Compiled CSS

        Raises:
            CompileError: On empty input or any libsass failure
        """
        if not buffer.strip():
            raise CompileError("No input provided")

        LOG(f"Compiling {len(buffer)} characters ({self.output_style})", level=3)
        try:
            return sass.compile(
                string=buffer,
                output_style=self.output_style,
                include_paths=self.include_paths,
                source_comments=self.source_comments,
                custom_functions=self.functions,
            )
        except sass.CompileError as e:
            message = str(e)
            match = _ERROR_LINE_RE.search(message)
            raise CompileError(
                message.strip(), int(match.group(1)) if match else None
            ) from e


def stylesheet_compile(
    path: Union[str, Path],
    include_paths: Optional[Iterable[Union[str, Path]]] = None,
    image_dir: Optional[Union[str, Path]] = None,
    gen_img_dir: Optional[Union[str, Path]] = None,
    build_dir: Optional[Union[str, Path]] = None,
    output_style: Optional[str] = None,
    source_comments: Optional[bool] = None,
    custom_functions: Optional[Dict[str, Callable]] = None,
    sprite_cache: Optional[SpriteCache] = None,
    sprite_options: Optional[SpriteOptions] = None,
) -> CompileResult:
    """
    Parse and compile one root file

    Args:
        path: Root style-sheet file
        custom_functions: Signature string -> callable; the signatures are
                          also what the Parser recognizes
        (remaining arguments as for Parser and Compiler)

    Returns:
        CompileResult with the CSS

    Raises:
        WellingtonError: From parsing
        StylesheetError: libsass failed; carries the attributed origin

    Example:
        >>> result = stylesheet_compile("sass/main.scss", output_style="compressed")
        >>> result.css
        'a{color:red}\\n'
    """
    parser = Parser(
        path,
        include_paths=include_paths,
        image_dir=image_dir,
        gen_img_dir=gen_img_dir,
        build_dir=build_dir,
        custom_functions=list(custom_functions) if custom_functions is not None else None,
        sprite_cache=sprite_cache,
        sprite_options=sprite_options,
    )
    parsed = parser.parse()

    compiler = Compiler(
        output_style=output_style,
        include_paths=[parser.main_file.parent] + parser.include_paths,
        source_comments=source_comments,
        custom_functions=custom_functions,
    )
    try:
        css = compiler.compile(parsed.buffer)
    except CompileError as e:
        line = e.error_line()
        origin = parser.file_lookup(line) if line else None
        LOG(f"Compilation failed at {origin or 'unknown location'}", level=2)
        raise StylesheetError(e, origin) from e

    return CompileResult(css=css, parse=parsed, source=parser.main_file)
