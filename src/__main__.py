#!/usr/bin/env python3
"""
wt - Sass preprocessor with imports, sprites and line attribution

Assembles each root style sheet and everything it imports into one buffer,
expands sprite and image functions, compiles the result with libsass and,
when compilation fails, reports the file and line the user actually wrote.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Philosophy:
    - Partials (_name.scss) are only ever compiled through an import
    - One file's failure never stops the others
    - Errors point at source files, never at the assembled buffer

Usage:
    wt inputdir/ outputdir/

    Every non-partial .scss file under inputdir/ is compiled to the same
    relative path under outputdir/ with a .css extension.

Examples:
    # Compile a whole tree
    wt sass/ css/

    # Selected files, extra import paths, compressed output
    wt sass/ css/ --inputFile main.scss print.scss -p vendor -s compressed

    # Sprites from sass/img, sheets written to css/img, four at a time
    wt sass/ css/ -d img --gen img --workers 4 -vv
"""

import sys
from pathlib import Path
from argparse import (
    ArgumentParser,
    Namespace,
    ArgumentDefaultsHelpFormatter,
    BooleanOptionalAction,
)
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from typing import Any, Dict

from chris_plugin import chris_plugin
from .config import appsettings, OUTPUT_STYLES
from .lib import (
    LOG,
    ERROR,
    SpriteCache,
    StylesheetError,
    WellingtonError,
    __version__,
    excerpt_render,
    source_connect,
    state_connectToLogger,
    stylesheet_compile,
)
from .models import LineOrigin, PARTIAL_PREFIX, DEFAULT_EXTENSION, ProgramState, pipeline


# Define CLI arguments
parser = ArgumentParser(
    description="wt - Sass preprocessor with imports, sprites and line attribution",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--inputFile",
    nargs="+",
    default=[],
    type=str,
    help="Root files to compile (relative to inputdir). Defaults to every non-partial .scss file",
)

parser.add_argument(
    "-p",
    "--includes",
    action="append",
    default=None,
    type=str,
    help="Additional import search directory (relative to inputdir, repeatable)",
)

parser.add_argument(
    "-d",
    "--imageDir",
    default=None,
    type=str,
    help="Image directory for sprites and image functions (relative to inputdir)",
)

parser.add_argument(
    "--gen",
    dest="genDir",
    default=None,
    type=str,
    help="Directory for generated sprite sheets (relative to outputdir)",
)

parser.add_argument(
    "-s",
    "--style",
    default=None,
    choices=OUTPUT_STYLES,
    help="CSS output style (default: configured output style)",
)

parser.add_argument(
    "-c",
    "--comment",
    dest="comments",
    action=BooleanOptionalAction,
    default=None,
    help="Emit source comments (default: configured setting)",
)

parser.add_argument(
    "--workers",
    default=None,
    type=int,
    help="Number of files compiled in parallel (default: configured workers)",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve directories.

    Args:
        inputstate: Initial program state with CLI options

    Returns:
        ProgramState with added fields:
            - buildOutputdir: Created output directory path
            - envOK: True if environment is valid

    Exits:
        1 if inputdir or a requested input file does not exist
    """

    state = inputstate.copy()

    LOG("Checking environment...", level=2)

    if not state.inputdir.is_dir():
        print(f"Error: Input directory not found: {state.inputdir}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    for name in state.inputFile:
        if not (state.inputdir / name).is_file():
            print(f"Error: Input file not found: {state.inputdir / name}", file=sys.stderr)
            state.envOK = False
            sys.exit(1)

    state.includes = state.includes or []
    state.style = state.style or appsettings.output_style
    state.workers = state.workers or appsettings.workers
    if state.workers < 1:
        print("Error: --workers must be at least 1", file=sys.stderr)
        state.envOK = False
        sys.exit(1)

    state.buildOutputdir = state.outputdir
    state.buildOutputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.buildOutputdir}", level=2)

    state.envOK = True
    return state


def sources_find(inputstate: ProgramState) -> ProgramState:
    """
    Collect the root files to compile.

    Partials are skipped: they are compiled only through the files that
    import them.

    Args:
        inputstate: Program state after env_check

    Returns:
        ProgramState with added field:
            - sources: Root files in compilation order
    """

    state = inputstate.copy()

    if state.inputFile:
        candidates = [state.inputdir / name for name in state.inputFile]
    else:
        candidates = sorted(state.inputdir.rglob(f"*{DEFAULT_EXTENSION}"))

    output_root = state.buildOutputdir.resolve()
    sources = []
    for candidate in candidates:
        if candidate.name.startswith(PARTIAL_PREFIX):
            LOG(f"Skipping partial {candidate}", level=2)
            continue
        if output_root in candidate.resolve().parents:
            continue
        sources.append(candidate)

    state.sources = sources
    LOG(f"Found {len(sources)} file(s) to compile", level=1)
    return state


def source_compile(state: ProgramState, source: Path, cache: SpriteCache) -> Dict[str, Any]:
    """
    Compile one root file and write its CSS.

    Args:
        state: Program state after sources_find
        source: Root file
        cache: Sprite cache shared by all compilations of this run

    Returns:
        {"css": Path} on success, {"error": str, "excerpt": str} on failure
    """
    state_connectToLogger(state)
    source_connect(source)

    try:
        relative = source.relative_to(state.inputdir)
    except ValueError:
        return {"error": f"{source}: not inside {state.inputdir}", "excerpt": ""}
    css_path = state.buildOutputdir / relative.with_suffix(".css")
    image_dir = state.inputdir / state.imageDir if state.imageDir else None
    gen_dir = state.buildOutputdir / (state.genDir or ".")

    try:
        result = stylesheet_compile(
            source,
            include_paths=[state.inputdir / p for p in state.includes],
            image_dir=image_dir,
            gen_img_dir=gen_dir,
            build_dir=css_path.parent,
            output_style=state.style,
            source_comments=state.comments,
            sprite_cache=cache,
        )
    except StylesheetError as e:
        return {"error": str(e), "excerpt": excerpt_render(e.origin, color=sys.stderr.isatty())}
    except WellingtonError as e:
        origin = LineOrigin(e.path, e.line) if e.path is not None and e.line else None
        return {"error": str(e), "excerpt": excerpt_render(origin, color=sys.stderr.isatty())}
    except OSError as e:
        return {"error": f"{source}: {e}", "excerpt": ""}

    try:
        css_path.parent.mkdir(parents=True, exist_ok=True)
        css_path.write_text(result.css, encoding="utf-8")
    except OSError as e:
        return {"error": f"{css_path}: {e}", "excerpt": ""}
    LOG(f"Wrote {css_path}", level=2)
    return {"css": css_path}


def sources_compile(inputstate: ProgramState) -> ProgramState:
    """
    Compile every source, in parallel when workers > 1.

    Compilations share nothing but their configuration and one SpriteCache,
    so identical sprite maps are packed once per run.

    Args:
        inputstate: Program state with sources populated

    Returns:
        ProgramState with added field:
            - results: Outcome per source
    """

    state = inputstate.copy()
    cache = SpriteCache()

    LOG(f"Compiling with {state.workers} worker(s)...", level=1)
    with ThreadPoolExecutor(max_workers=state.workers) as executor:
        futures = {
            source: executor.submit(copy_context().run, source_compile, state, source, cache)
            for source in state.sources
        }
        state.results = {source: future.result() for source, future in futures.items()}

    LOG(f"Packed {len(cache)} sprite sheet(s)", level=2)
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display per-file results.

    Args:
        inputstate: Program state with results populated

    Returns:
        ProgramState unchanged (terminal pipeline stage)

    Exits:
        1 if any file failed to compile
    """
    state: ProgramState = inputstate.copy()

    for source, outcome in state.results.items():
        if "error" in outcome:
            ERROR(f"✗ {source}: {outcome['error']}")
            if outcome["excerpt"]:
                print(outcome["excerpt"], file=sys.stderr)
        else:
            LOG(f"✓ {source} -> {outcome['css']}", level=1)

    failures = sum("error" in outcome for outcome in state.results.values())
    LOG(f"\n{len(state.results) - failures} compiled, {failures} failed", level=1)
    if state.failed:
        sys.exit(1)
    return state


@chris_plugin(
    parser=parser,
    title="wt - Sass preprocessor",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - compile style sheets from inputdir into outputdir.

    Orchestrates the full pipeline:
        1. env_check: Validate paths and resolve defaults
        2. sources_find: Collect non-partial root files
        3. sources_compile: Parse, expand and compile each root file
        4. results_report: Report outcomes, exit non-zero on any failure

    Args:
        options: CLI arguments from argparse
        inputdir: Directory containing style-sheet sources
        outputdir: Directory where compiled CSS will be written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, env_check, sources_find, sources_compile, results_report)


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
