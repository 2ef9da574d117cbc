"""Command resolvers: injectable name → target lookup.

Manifesto:
The scheduler stores a command *name* per job and knows nothing about
what the name refers to.  The host application supplies a resolver that
maps the name to a runnable ``Target`` or reports it as missing.  The
registry decouples registration (at import time or startup) from
resolution (at dispatch time).

ARCHITECTURE
────────────
::

    CommandResolver (Protocol)
      ├── CommandRegistry     ─ in-process Python callables ("cache:clear")
      ├── ExecutableResolver  ─ programs on PATH ("echo", "pg_dump")
      └── ChainResolver       ─ first resolver that knows the name wins

    Target (Protocol)
      ├── CallableTarget  ─ handler(invocation) -> int | None
      └── ProcessTarget   ─ subprocess.run, output captured into the sink

    load_registry("myapp.jobs")  ─ import a module's ``registry`` attribute

Example::

    registry = CommandRegistry()

    @registry.command("report:generate")
    def generate(invocation):
        invocation.output.writeln("generating")
        return 0

    resolver = ChainResolver([registry, ExecutableResolver()])

Tags:
    execution, registry, resolver, subprocess
"""

from __future__ import annotations

import importlib
import os
import shutil
import subprocess
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from command_scheduler.core.errors import ConfigError, TargetNotFoundError
from command_scheduler.core.logging import get_logger
from command_scheduler.execution.sinks import NullSink, OutputSink

logger = get_logger(__name__)

#: Namespace of commands whose name has no ``namespace:`` prefix.
GLOBAL_NAMESPACE = "_global"


@dataclass
class Invocation:
    """Everything a target receives for one run."""

    command: str
    argv: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    output: OutputSink = field(default_factory=NullSink)


@runtime_checkable
class Target(Protocol):
    name: str

    def run(self, invocation: Invocation) -> int: ...


@runtime_checkable
class CommandResolver(Protocol):
    def resolve(self, name: str) -> Target:
        """Return the target for ``name`` or raise ``TargetNotFoundError``."""
        ...


# === Targets ===


class CallableTarget:
    """Wraps an in-process handler; a ``None`` return means success."""

    def __init__(self, name: str, handler: Callable[[Invocation], int | None]) -> None:
        self.name = name
        self.handler = handler

    def run(self, invocation: Invocation) -> int:
        result = self.handler(invocation)
        return 0 if result is None else int(result)

    def __repr__(self) -> str:
        return f"CallableTarget({self.name!r})"


class ProcessTarget:
    """Runs an executable synchronously, copying its output into the sink.

    stderr is merged into stdout so the job log keeps the original order.
    Output is decoded as UTF-8; undecodable bytes become U+FFFD.
    """

    def __init__(self, name: str, executable: str) -> None:
        self.name = name
        self.executable = executable

    def run(self, invocation: Invocation) -> int:
        env = {**os.environ, **invocation.env}
        completed = subprocess.run(
            [self.executable, *invocation.argv],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            env=env,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
        invocation.output.write(completed.stdout or "")
        return completed.returncode

    def __repr__(self) -> str:
        return f"ProcessTarget({self.name!r}, {self.executable!r})"


# === Resolvers ===


class CommandRegistry:
    """Injectable command registry.

    Can be passed to the Dispatcher for:
    - Testing (isolated registries per test)
    - Host applications (their own command set)
    - Plugins (dynamic loading via ``load_registry``)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[Invocation], int | None]] = {}
        self._descriptions: dict[str, str | None] = {}

    def register(
        self,
        name: str,
        handler: Callable[[Invocation], int | None],
        description: str | None = None,
    ) -> None:
        """Register a handler under ``name`` (``namespace:command`` or bare)."""
        self._handlers[name] = handler
        self._descriptions[name] = description
        logger.debug("registry.registered", command=name)

    def command(self, name: str, description: str | None = None):
        """Decorator form of ``register``."""

        def decorator(func: Callable[[Invocation], int | None]):
            self.register(name, func, description=description or func.__doc__)
            return func

        return decorator

    def has(self, name: str) -> bool:
        return name in self._handlers

    def resolve(self, name: str) -> Target:
        handler = self._handlers.get(name)
        if handler is None:
            raise TargetNotFoundError(name)
        return CallableTarget(name, handler)

    def unregister(self, name: str) -> bool:
        if name in self._handlers:
            del self._handlers[name]
            del self._descriptions[name]
            return True
        return False

    def clear(self) -> None:
        """Clear all handlers (for testing)."""
        self._handlers.clear()
        self._descriptions.clear()

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def describe(self, name: str) -> str | None:
        return self._descriptions.get(name)

    def list_commands(
        self, excluded_namespaces: Iterable[str] = ()
    ) -> dict[str, list[str]]:
        """Registered commands grouped by namespace.

        A name's namespace is everything before its first ``:``; bare names
        fall under ``_global``.  Namespaces listed in ``excluded_namespaces``
        are omitted.
        """
        excluded = set(excluded_namespaces)
        grouped: dict[str, list[str]] = {}
        for name in self.names():
            namespace = name.split(":", 1)[0] if ":" in name else GLOBAL_NAMESPACE
            if namespace in excluded:
                continue
            grouped.setdefault(namespace, []).append(name)
        return dict(sorted(grouped.items()))


class ExecutableResolver:
    """Resolves command names to programs found on ``PATH``."""

    def __init__(self, path: str | None = None) -> None:
        self.path = path

    def resolve(self, name: str) -> Target:
        executable = shutil.which(name, path=self.path)
        if executable is None:
            raise TargetNotFoundError(name)
        return ProcessTarget(name, executable)


class ChainResolver:
    """Tries each resolver in order; the first one that knows the name wins."""

    def __init__(self, resolvers: Iterable[CommandResolver]) -> None:
        self.resolvers = list(resolvers)

    def resolve(self, name: str) -> Target:
        for resolver in self.resolvers:
            try:
                return resolver.resolve(name)
            except TargetNotFoundError:
                continue
        raise TargetNotFoundError(name)


def load_registry(module_path: str, attribute: str = "registry") -> CommandRegistry:
    """Import ``module_path`` and return its ``registry`` attribute.

    Raises:
        ConfigError: Module cannot be imported or exposes no registry
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigError(f"Cannot import commands module {module_path!r}", cause=e) from e

    registry: Any = getattr(module, attribute, None)
    if not isinstance(registry, CommandRegistry):
        raise ConfigError(
            f"{module_path}.{attribute} is not a CommandRegistry",
            context={"module": module_path},
        )
    return registry


def build_resolver(commands_module: str | None = None) -> ChainResolver:
    """Default resolver for the CLI: host registry first, then ``PATH``."""
    resolvers: list[CommandResolver] = []
    if commands_module:
        resolvers.append(load_registry(commands_module))
    resolvers.append(ExecutableResolver())
    return ChainResolver(resolvers)


__all__ = [
    "GLOBAL_NAMESPACE",
    "CallableTarget",
    "ChainResolver",
    "CommandRegistry",
    "CommandResolver",
    "ExecutableResolver",
    "Invocation",
    "ProcessTarget",
    "Target",
    "build_resolver",
    "load_registry",
]
