"""
Parser for style-sheet sources with imports and sprite directives

Assembles a root file and everything it imports into one buffer for the
downstream compiler, keeping the origin of every output line.

The parser operates depth-first:
1. Scanning: the root file is scanned into directives
2. Splicing: each import is resolved and parsed recursively into its own
   line map, which is then spliced into the importer's
3. Rewriting: sprite/image directives are replaced by plain declarations
4. Lookup: after a successful parse, any output line can be traced back to
   the (file, line) the user wrote

Key features:
- Recursive descent over imports with an explicit inclusion stack
- Cycle detection before any file is read twice
- Block-scoped variable table for sprite-map bindings
- All-or-nothing: a failed parse returns no buffer

Example:
    >>> parser = Parser("styles/main.scss", include_paths=["vendor"])
    >>> result = parser.parse()
    >>> str(parser.file_lookup(1))
    '/abs/styles/_reset.scss:1'
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..models.directives import (
    Assignment,
    CustomFunctionCall,
    FunctionSignature,
    Import,
    PlainRun,
    SpriteRule,
)
from ..models.parser import (
    LineOrigin,
    ParseResult,
    ParserState,
    RecognizedCall,
    SourceFile,
)
from ..models.sprites import SpriteOptions, SpriteSheet
from .errors import FileError, FileErrorReason, LineMapError, WellingtonError
from .linemap import LineMap
from .loader import SourceLoader
from .log import LOG
from .resolver import ImportResolver, ImportStack
from .scanner import Scanner
from .sprites import SpriteCache, SpriteExpander
from .variables import VariableTable


class Parser:
    """
    Orchestrates scanning, import resolution, sprite expansion and line
    mapping for one root file

    One Parser instance holds the state of one top-level compilation.
    Independent compilations use independent instances and may run in
    parallel, sharing only read-only configuration and the sprite cache.
    """

    def __init__(
        self,
        main_file: Union[str, Path],
        include_paths: Optional[Iterable[Union[str, Path]]] = None,
        image_dir: Optional[Union[str, Path]] = None,
        gen_img_dir: Optional[Union[str, Path]] = None,
        build_dir: Optional[Union[str, Path]] = None,
        custom_functions: Optional[Iterable[Union[str, FunctionSignature]]] = None,
        sprite_cache: Optional[SpriteCache] = None,
        sprite_options: Optional[SpriteOptions] = None,
    ) -> None:
        """
        Initialize parser for a root file

        Args:
            main_file: Root style-sheet file
            include_paths: Directories searched after the importer's own;
                           defaults to the configured include paths
            image_dir: Base directory for sprite globs and image files;
                       defaults to the configured one, else the root's dir
            gen_img_dir: Directory receiving packed sheets
            build_dir: Directory the CSS will be written to (for URLs)
            custom_functions: Signatures such as "foo($bar, $baz)"
            sprite_cache: Cache shared with other compilations
            sprite_options: Default packing options

        Attributes:
            main_file: Absolute path of the root file
            state: Current ParserState
            result: ParseResult after a successful parse()
        """
        from ..config import appsettings

        self.main_file = Path(main_file).resolve()
        root_dir = self.main_file.parent

        if include_paths is None:
            include_paths = appsettings.include_paths
        self.include_paths: List[Path] = [Path(p).resolve() for p in include_paths]

        if image_dir is None:
            image_dir = appsettings.image_dir or root_dir
        if gen_img_dir is None:
            gen_img_dir = appsettings.gen_img_dir or image_dir
        if build_dir is None:
            build_dir = appsettings.build_dir
        if custom_functions is None:
            custom_functions = appsettings.custom_functions
        if sprite_options is None:
            sprite_options = SpriteOptions(
                spacing=appsettings.sprite_spacing, layout=appsettings.sprite_layout
            )

        self.signatures: List[FunctionSignature] = [
            sig if isinstance(sig, FunctionSignature) else FunctionSignature.parse(sig)
            for sig in custom_functions
        ]

        self.loader = SourceLoader(
            roots=[root_dir] + self.include_paths, root_file=self.main_file
        )
        self.resolver = ImportResolver(self.include_paths)
        self.expander = SpriteExpander(
            image_dir=image_dir,
            gen_img_dir=gen_img_dir,
            build_dir=build_dir,
            cache=sprite_cache,
            options=sprite_options,
        )
        self.scanner = Scanner(self.signatures, self.expander.registry.names())

        self.state = ParserState.IDLE
        self.result: Optional[ParseResult] = None
        self.files: List[SourceFile] = []
        self.calls: List[RecognizedCall] = []
        self.sprites: Dict[str, SpriteSheet] = {}

    def parse(self) -> ParseResult:
        """
        Parse the root file and everything it imports

        Returns:
            ParseResult with the concatenated buffer and its line map

        Raises:
            WellingtonError: The first fatal error encountered (file,
                             import, sprite or scan error), located at the
                             offending directive. No partial result is kept.
        """
        self.state = ParserState.IDLE
        self.result = None
        self.files = []
        self.calls = []
        self.sprites = {}

        LOG(f"Parsing {self.main_file}", level=2)
        try:
            line_map = self.file_parse(
                self.main_file, ImportStack(), VariableTable(), parent=None
            )
        except WellingtonError:
            self.state = ParserState.FAILED
            raise

        self.result = ParseResult(
            buffer=line_map.text,
            line_map=line_map,
            files=list(self.files),
            calls=list(self.calls),
            sprites=dict(self.sprites),
        )
        self.state = ParserState.DONE
        LOG(
            f"Assembled {len(line_map)} lines from {len(self.files)} file(s)",
            level=2,
        )
        return self.result

    def file_parse(
        self,
        path: Path,
        stack: ImportStack,
        variables: VariableTable,
        parent: Optional[Path],
    ) -> LineMap:
        """
        Parse one file into its own line map

        Args:
            path: Absolute resolved path of the file
            stack: Inclusion stack of this compilation
            variables: Variable table shared along the import tree
            parent: Importing file, None for the root

        Returns:
            LineMap holding the file's output with its imports spliced in
        """
        stack.push(path)
        try:
            self.state = ParserState.SCANNING
            source = SourceFile(path=path, text=self.loader.load(path), parent=parent)
            self.files.append(source)
            line_map = LineMap()

            for directive in self.scanner.scan(source.text):
                source.directives.append(directive)
                self.directive_apply(directive, source, line_map, stack, variables)

            return line_map
        except WellingtonError as e:
            raise e.locate(path)
        finally:
            stack.pop()

    def directive_apply(
        self,
        directive,
        source: SourceFile,
        line_map: LineMap,
        stack: ImportStack,
        variables: VariableTable,
    ) -> None:
        """
        Feed one directive into the file's line map

        Plain text is appended with exact line numbers; directive output is
        attributed to the directive's first line.
        """
        line = directive.span.line

        if isinstance(directive, PlainRun):
            line_map.append(directive.text, source.path, line)
            variables.braces_apply(directive.braces)

        elif isinstance(directive, Assignment):
            line_map.generated_append(directive.text, source.path, line)
            variables.assign(
                directive.name,
                directive.value,
                default=directive.default,
                is_global=directive.is_global,
            )

        elif isinstance(directive, Import):
            self.import_splice(directive, source, line_map, stack, variables)

        elif isinstance(directive, SpriteRule):
            try:
                expansion = self.expander.expand(directive, variables)
            except WellingtonError as e:
                raise e.locate(source.path, line)
            line_map.generated_append(expansion.text, source.path, line)
            if directive.assign:
                self.sprites[directive.assign] = variables.lookup(directive.assign)

        elif isinstance(directive, CustomFunctionCall):
            line_map.generated_append(directive.text, source.path, line)
            self.calls.append(RecognizedCall(
                name=directive.name,
                args=list(directive.args),
                origin=LineOrigin(source.path, line),
            ))

    def import_splice(
        self,
        directive: Import,
        source: SourceFile,
        line_map: LineMap,
        stack: ImportStack,
        variables: VariableTable,
    ) -> None:
        """
        Resolve an import, parse the target and splice its output

        Raises:
            ImportResolveError: NOT_FOUND or CYCLIC, located at the directive
            FileError: If the resolved file cannot be loaded
        """
        line = directive.span.line
        try:
            target = self.resolver.resolve(directive.target, source.path.parent)
        except WellingtonError as e:
            raise e.locate(source.path, line)

        if not self.loader.permitted(target):
            raise FileError(
                f"Import '{directive.target}' resolves outside the permitted include directories",
                FileErrorReason.NOT_PERMITTED,
                path=source.path,
                line=line,
            )

        if target in stack:
            # Report the cycle at the directive that closes it
            try:
                stack.push(target)
            except WellingtonError as e:
                raise e.locate(source.path, line)

        self.state = ParserState.SPLICING
        LOG(f"Importing {target.name} from {source.path.name}:{line}", level=2)
        child = self.file_parse(target, stack, variables, parent=source.path)
        line_map.splice(child)
        self.state = ParserState.RESUMING

    def file_lookup(self, output_line: int) -> Optional[LineOrigin]:
        """
        Trace an output line back to the file the user wrote

        Args:
            output_line: 1-based line in the assembled buffer

        Returns:
            LineOrigin, or None if the line is unknown (out of range, or no
            successful parse yet)
        """
        if self.state != ParserState.DONE or self.result is None:
            return None
        try:
            return self.result.line_map.lookup(output_line)
        except LineMapError:
            return None
