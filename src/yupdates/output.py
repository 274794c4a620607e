"""Diagnostic output for the SDK, written to stderr.

The SDK never writes to stdout: API results are returned to the caller,
and the only thing emitted here is debug diagnostics (request traces and
retry notices).  :class:`OutputManager` holds a Rich stderr console and
the verbose flag; the transport and operation layer reach it through
:func:`get_output`.

The process-wide manager installed with :func:`set_output` is the one
piece of global mutable state in the package.  It carries diagnostics
only and never affects requests or results.  The default manager is
non-verbose, so a library user sees nothing unless they install their
own::

    from yupdates.output import OutputManager, set_output

    set_output(OutputManager(verbose=True))

Colour follows the ``NO_COLOR`` and ``TERM=dumb`` conventions.  API
tokens are never passed to this module.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console


class OutputManager:
    """Central manager for SDK diagnostics.

    Args:
        no_color: Disable all colour and Rich styling.
        verbose: Enable debug-level messages (request traces, retries).
    """

    def __init__(self, no_color: bool = False, verbose: bool = False) -> None:
        self._no_color = no_color or _should_disable_color()
        self._verbose = verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def is_verbose(self) -> bool:
        """Whether verbose mode is enabled."""
        return self._verbose

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when verbose.

        The message is printed literally; Rich markup in it is not
        interpreted.
        """
        if not self._verbose:
            return
        if self._no_color:
            print(f"[debug] {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[debug] {message}", style="dim", markup=False)


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a silent one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance."""
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None
