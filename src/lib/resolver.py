"""
Import resolution and cycle detection

Resolves `@import` targets to files on disk and guards the inclusion stack
of one top-level parse against cycles.
"""

from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from ..models.directives import DEFAULT_EXTENSION, PARTIAL_PREFIX
from .errors import ImportErrorReason, ImportResolveError
from .log import LOG


def candidates_generate(target: str) -> Iterator[str]:
    """
    Filenames to try for an import target, in order

    1. The target exactly as written
    2. The partial form (basename prefixed with `_`)
    3. Both again with the default extension, when the target has none

    Example:
        >>> list(candidates_generate("lib/mixins"))
        ['lib/mixins', 'lib/_mixins', 'lib/mixins.scss', 'lib/_mixins.scss']
    """
    path = Path(target)
    forms = [path]
    if not path.name.startswith(PARTIAL_PREFIX):
        forms.append(path.with_name(PARTIAL_PREFIX + path.name))

    seen = set()
    for form in forms:
        text = form.as_posix()
        if text not in seen:
            seen.add(text)
            yield text

    if path.suffix != DEFAULT_EXTENSION:
        for form in forms:
            text = form.as_posix() + DEFAULT_EXTENSION
            if text not in seen:
                seen.add(text)
                yield text


class ImportResolver:
    """
    Searches the importing file's directory, then each include path

    Attributes:
        include_paths: Ordered directories searched after the importer's own
    """

    def __init__(self, include_paths: Iterable[Union[str, Path]] = ()) -> None:
        self.include_paths: List[Path] = [Path(p) for p in include_paths]

    def resolve(self, target: str, current_dir: Union[str, Path]) -> Path:
        """
        Resolve an import target to an absolute path

        Args:
            target: Import target as written (unquoted)
            current_dir: Directory of the importing file

        Returns:
            Absolute resolved path of the first matching file

        Raises:
            ImportResolveError: NOT_FOUND if no directory holds a candidate
        """
        searched = []
        for directory in [Path(current_dir)] + self.include_paths:
            searched.append(directory)
            for candidate in candidates_generate(target):
                path = directory / candidate
                if path.is_file():
                    resolved = path.resolve()
                    LOG(f"Resolved import '{target}' -> {resolved}", level=2)
                    return resolved

        raise ImportResolveError(
            f"Could not find import '{target}' (searched: "
            f"{', '.join(str(d) for d in searched)})",
            ImportErrorReason.NOT_FOUND,
            target=target,
        )


class ImportStack:
    """
    Files currently being parsed, root first

    A path may appear at most once; pushing a path already on the stack is
    a fatal cyclic import.
    """

    def __init__(self) -> None:
        self.paths: List[Path] = []

    def __contains__(self, path: Path) -> bool:
        return path in self.paths

    def __len__(self) -> int:
        return len(self.paths)

    @property
    def current(self) -> Optional[Path]:
        return self.paths[-1] if self.paths else None

    def push(self, path: Path) -> None:
        """
        Enter a file

        Raises:
            ImportResolveError: CYCLIC if `path` is already being parsed
        """
        if path in self.paths:
            chain = self.paths + [path]
            raise ImportResolveError(
                "Cyclic import: " + " -> ".join(str(p) for p in chain),
                ImportErrorReason.CYCLIC,
                target=str(path),
                stack=chain,
            )
        self.paths.append(path)

    def pop(self) -> Path:
        return self.paths.pop()
