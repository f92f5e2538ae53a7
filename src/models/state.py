"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing transformation stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, List, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the compilation pipeline (state bus pattern).

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity and the CLI options
        - env_check: buildOutputdir, envOK
        - sources_find: sources
        - sources_compile: results
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Directory containing the style-sheet sources
        outputdir: Base output directory for compiled CSS
        verbosity: Logging verbosity level (1-3)
        inputFile: Root files to compile (relative to inputdir); empty
                   means every non-partial .scss file under inputdir
        includes: Extra import search directories
        imageDir: Image directory for sprites and image functions
        genDir: Directory for generated sprite sheets
        style: CSS output style
        comments: Emit source comments
        workers: Files compiled in parallel
        envOK: Environment validation passed
        buildOutputdir: Resolved output directory
        sources: Root files found by sources_find
        results: Per-source outcome: {"css": Path} or {"error": str,
                 "excerpt": str}
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    inputFile: List[str] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)
    imageDir: Optional[str] = field(default=None)
    genDir: Optional[str] = field(default=None)
    style: Optional[str] = field(default=None)
    comments: Optional[bool] = field(default=None)
    workers: Optional[int] = field(default=None)

    # Pipeline state
    envOK: bool = field(default=False)
    buildOutputdir: Path = field(default=Path("/"))
    sources: List[Path] = field(default_factory=list)
    results: Dict[Path, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments
            inputdir: Directory containing source files
            outputdir: Directory for compilation output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Only options that name a ProgramState field
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": inputdir, "outputdir": outputdir}
        return cls(**merged_args)

    @property
    def failed(self) -> bool:
        return any("error" in outcome for outcome in self.results.values())

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting ProgramState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final ProgramState after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            sources_find,
            sources_compile,
            results_report
        )
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
