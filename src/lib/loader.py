"""
Source loader

Reads style-sheet sources from disk, constrained to a set of permitted
directories plus the explicitly given root file. File handles live only
for the duration of a single `load()` call.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from .errors import FileError, FileErrorReason
from .log import LOG


class SourceLoader:
    """
    Loads source text from permitted locations

    Attributes:
        roots: Resolved directories a loaded file must live under
        root_file: The explicitly given top-level file (always permitted)
    """

    def __init__(
        self,
        roots: Iterable[Union[str, Path]] = (),
        root_file: Optional[Union[str, Path]] = None,
    ) -> None:
        self.roots: List[Path] = [Path(r).resolve() for r in roots]
        self.root_file: Optional[Path] = Path(root_file).resolve() if root_file else None

    def permitted(self, path: Path) -> bool:
        """Check whether a resolved path lies in the permitted set"""
        if self.root_file is not None and path == self.root_file:
            return True
        return any(path.is_relative_to(root) for root in self.roots)

    def load(self, path: Union[str, Path]) -> str:
        """
        Read a file as UTF-8 text

        Args:
            path: File to read; resolved (symlinks included) before checking

        Returns:
            The full file contents

        Raises:
            FileError: NOT_PERMITTED if the file escapes the permitted set,
                       NOT_FOUND if it does not exist, READ_FAILURE on I/O
                       or decoding failure
        """
        resolved = Path(path).resolve()

        if not self.permitted(resolved):
            raise FileError(
                f"'{resolved}' is outside the permitted include directories",
                FileErrorReason.NOT_PERMITTED,
                path=resolved,
            )

        try:
            with open(resolved, 'r', encoding='utf-8') as handle:
                text = handle.read()
        except FileNotFoundError:
            raise FileError(
                f"File not found: {resolved}", FileErrorReason.NOT_FOUND, path=resolved
            )
        except (OSError, UnicodeDecodeError) as e:
            raise FileError(
                f"Failed to read {resolved}: {e}", FileErrorReason.READ_FAILURE, path=resolved
            )

        LOG(f"Read {len(text)} characters from {resolved.name}", level=3)
        return text
