"""Base class for flight components: ports, events, telemetry and command responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from flightsw.types import CmdResponse

_log = logging.getLogger(__name__)


class PortNotConnectedError(LookupError):
    """Raised when output is sent on a port nothing is connected to."""


@dataclass(frozen=True)
class Event:
    """An event emitted by a component."""

    name: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class CommandResponse:
    """The response a component gave to a command."""

    opcode: int
    cmd_seq: int
    response: CmdResponse


class Component:
    """A named component with output ports, an event log and telemetry channels."""

    def __init__(self, name):
        self.name = name
        self.events: list[Event] = []
        self.telemetry: dict[str, Any] = {}
        self.telemetry_history: list[tuple[str, Any]] = []
        self.responses: list[CommandResponse] = []
        self._ports: dict[str, Callable[..., Any]] = {}

    def connect(self, port, handler):
        """Attach a callable to an output port, replacing any previous one."""
        if not callable(handler):
            raise TypeError(f"handler for port {port!r} is not callable")
        self._ports[port] = handler

    def send(self, port, *args):
        """Invoke the handler connected to an output port and return its result."""
        try:
            handler = self._ports[port]
        except KeyError:
            raise PortNotConnectedError(f"{self.name}: port {port!r} is not connected") from None
        return handler(*args)

    def log(self, event, *args):
        """Record an event."""
        record = Event(event, tuple(args))
        self.events.append(record)
        _log.debug("%s: %s %s", self.name, event, args)
        return record

    def write_telemetry(self, channel, value):
        """Update a telemetry channel."""
        self.telemetry[channel] = value
        self.telemetry_history.append((channel, value))

    def respond(self, opcode, cmd_seq, response):
        """Record the completion status of a command."""
        record = CommandResponse(opcode, cmd_seq, CmdResponse(response))
        self.responses.append(record)
        return record

    def events_named(self, event):
        """All recorded events with the given name, oldest first."""
        return [record for record in self.events if record.name == event]