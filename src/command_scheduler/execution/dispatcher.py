"""Dispatcher: resolve a command and run it behind a fault boundary.

``Dispatcher.run(command, arguments, env_overrides, sink)`` never raises
for anything the target does:

    resolver has no target ──► DispatchResult(found=False, exit_code=-1)
    target returns N ────────► DispatchResult(exit_code=N)
    target raises ───────────► message + traceback written to the sink,
                               DispatchResult(exit_code=-1, fault=...)
    target calls sys.exit(N) ► DispatchResult(exit_code=N)

The argument string is shell-split; ambient options (the environment
selector) travel as environment overrides.
"""

from __future__ import annotations

import shlex
import traceback
from collections.abc import Mapping
from dataclasses import dataclass

from command_scheduler.core.errors import TargetFaultError, TargetNotFoundError
from command_scheduler.core.logging import get_logger
from command_scheduler.execution.resolvers import CommandResolver, Invocation
from command_scheduler.execution.sinks import NullSink, OutputSink
from command_scheduler.scheduling.models import FAILURE_RETURN_CODE

logger = get_logger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    exit_code: int
    found: bool = True
    fault: TargetFaultError | None = None

    @property
    def succeeded(self) -> bool:
        return self.found and self.exit_code == 0


def _exit_code_from(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    return 1


class Dispatcher:
    """Runs job targets synchronously.

    Args:
        resolver: Host-supplied command resolver
    """

    def __init__(self, resolver: CommandResolver) -> None:
        self.resolver = resolver

    def run(
        self,
        command: str,
        arguments: str = "",
        env_overrides: Mapping[str, str] | None = None,
        sink: OutputSink | None = None,
    ) -> DispatchResult:
        sink = sink or NullSink()

        try:
            target = self.resolver.resolve(command)
        except TargetNotFoundError:
            logger.warning("dispatch.not_found", command=command)
            return DispatchResult(exit_code=FAILURE_RETURN_CODE, found=False)

        try:
            invocation = Invocation(
                command=command,
                argv=shlex.split(arguments or ""),
                env=dict(env_overrides or {}),
                output=sink,
            )
            exit_code = target.run(invocation)
        except SystemExit as e:
            exit_code = _exit_code_from(e)
        except Exception as e:
            fault = TargetFaultError(
                f"{command} raised {type(e).__name__}: {e}",
                context={"command": command},
                cause=e,
            )
            try:
                sink.writeln(str(e))
                sink.write("".join(traceback.format_exception(e)))
            except OSError as sink_error:
                logger.error("dispatch.sink_failed", command=command, error=str(sink_error))
            logger.warning("dispatch.fault", command=command, error_type=type(e).__name__)
            return DispatchResult(exit_code=FAILURE_RETURN_CODE, fault=fault)

        logger.debug("dispatch.finished", command=command, exit_code=exit_code)
        return DispatchResult(exit_code=exit_code)


__all__ = ["DispatchResult", "Dispatcher"]
