"""Typed command bus used for cross-component actions.

Owners register handlers for the commands they understand; callers only
hold the bus. There is no module-level registry.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mkvbatch.errors import UnhandledCommandError
from mkvbatch.models.external import ExternalKind

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


@dataclass(frozen=True)
class Command:
    """Base class for commands. ``route`` selects among same-type handlers."""

    @property
    def route(self) -> str | None:
        return None


@dataclass(frozen=True)
class AddTrackSlot(Command):
    """Add a new numbered slot to the audio or subtitle tab."""

    kind: ExternalKind

    @property
    def route(self) -> str | None:
        return self.kind.value


@dataclass(frozen=True)
class RemoveTrackSlot(Command):
    """Remove one numbered slot from a tab."""

    kind: ExternalKind
    slot: str

    @property
    def route(self) -> str | None:
        return self.kind.value


@dataclass(frozen=True)
class ResetTab(Command):
    """Reset a tab to its defaults, allowing the preset to apply again."""

    kind: ExternalKind

    @property
    def route(self) -> str | None:
        return self.kind.value


class CommandBus:
    """Routes commands to the handler registered for their type and route."""

    def __init__(self) -> None:
        self._handlers: dict[tuple[type, str | None], Handler] = {}

    def register(
        self,
        command_type: type[Command],
        handler: Handler,
        route: str | None = None,
    ) -> Callable[[], None]:
        """Register a handler, replacing any previous one for the same key.

        Returns:
            A callable that unregisters the handler
        """
        key = (command_type, route)
        self._handlers[key] = handler

        def unregister() -> None:
            if self._handlers.get(key) is handler:
                del self._handlers[key]

        return unregister

    def dispatch(self, command: Command) -> Any:
        """Run the handler for a command and return its result.

        Raises:
            UnhandledCommandError: If no handler is registered
        """
        handler = self._handlers.get((type(command), command.route))
        if handler is None:
            raise UnhandledCommandError(
                f"No handler for {type(command).__name__} ({command.route})"
            )
        logger.debug("Dispatching %s", command)
        return handler(command)
