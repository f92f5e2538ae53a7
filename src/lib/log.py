"""
Verbosity-gated logging for compilations running side by side.

Each worker thread runs in its own copy of the caller's context, so the
ProgramState and the style sheet being compiled are held in context
variables rather than module globals. Every line carries the name of the
root file it belongs to, which keeps interleaved output from parallel
compilations readable.

Usage:
    from wellington.lib.log import LOG, source_connect, state_connectToLogger

    state_connectToLogger(state)
    source_connect(Path("main.scss"))
    LOG("Resolved import 'mixins' -> _mixins.scss", level=2)
"""

import sys
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger

_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)
_source: ContextVar[str] = ContextVar('source', default='-')

# verbosity needed -> loguru level
LEVELS = {1: "INFO", 2: "DEBUG", 3: "TRACE"}

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<magenta>{extra[source]: <16}</magenta> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.configure(extra={"source": "-"})
logger.add(sys.stderr, format=logger_format, level="TRACE")


def state_connectToLogger(state: Any) -> None:
    """Make `state.verbosity` gate LOG() calls in the current context"""
    _program_state.set(state)


def source_connect(source: Union[str, Path, None]) -> None:
    """Tag log lines of the current context with a root style sheet"""
    _source.set(Path(source).name if source else '-')


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log a message if the connected state's verbosity allows it.

    Args:
        message: Text to log
        level: Verbosity needed to show it
            1 = normal: per-file outcomes and run summaries
            2 = verbose (-v): files read, imports resolved, sheets packed
            3 = debug (-vv): individual directives
        **kwargs: Passed to loguru as formatting arguments
    """
    state = _program_state.get()
    if state is None or getattr(state, 'verbosity', 0) < level:
        return
    logger.bind(source=_source.get()).opt(depth=1).log(
        LEVELS.get(level, "TRACE"), message, **kwargs
    )


def ERROR(message: str) -> None:
    """Report an error regardless of verbosity"""
    logger.bind(source=_source.get()).opt(depth=1).error(message)
