"""Deployment topology: configuration tables, the simulated clock and the command line."""

from __future__ import annotations

import getopt
import os
import re
import signal
import sys
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional, Union

CMD_SEQ_BUFFER_SIZE = 5 * 1024
FILE_DOWNLINK_TIMEOUT = 1000
FILE_DOWNLINK_COOLDOWN = 1000
FILE_DOWNLINK_CYCLE_TIME = 1000
FILE_DOWNLINK_FILE_QUEUE_DEPTH = 10
HEALTH_WATCHDOG_CODE = 0x123
COMM_PRIORITY = 100
FRAMER_BUFFER_COUNT = 30
DEFRAMER_BUFFER_COUNT = 30
COM_DRIVER_BUFFER_SIZE = 3000
COM_DRIVER_BUFFER_COUNT = 30
BUFFER_MANAGER_ID = 200

PING_WARN = 3
PING_FATAL = 5

DEFAULT_CYCLE_INTERVAL = timedelta(seconds=1)

_PING_NAMES = (
    "blockDrv",
    "chanTlm",
    "cmdDisp",
    "cmdSeq",
    "eventLogger",
    "fileDownlink",
    "fileManager",
    "fileUplink",
    "prmDb",
    "rateGroup1",
    "rateGroup2",
    "rateGroup3",
)

_U16_RANGE = 1 << 16
_ATOI_PREFIX = re.compile(r"\s*([+-]?\d+)", re.ASCII)


class HelpRequested(Exception):
    """The command line asked for the usage message."""


class UsageError(ValueError):
    """The command line could not be understood."""


@dataclass(frozen=True)
class TopologyState:
    """Settings taken from the command line that shape the topology."""

    hostname: Optional[str] = None
    port: int = 0

    def has_socket(self):
        """Whether a ground connection is specified: a hostname and a non-zero port."""
        return self.hostname is not None and self.port != 0


@dataclass(frozen=True)
class PingEntry:
    """Health-ping thresholds for one component instance."""

    warn: int
    fatal: int
    name: str


@dataclass(frozen=True)
class QueueConfig:
    """Depth and priority of one communication queue (lower priority number goes first)."""

    depth: int
    priority: int


def ping_entries():
    """The health-ping table for every pinged component."""
    return [PingEntry(PING_WARN, PING_FATAL, name) for name in _PING_NAMES]


def queue_configuration():
    """Queues for events, telemetry and file downlink, in that order."""
    return [
        QueueConfig(depth=100, priority=0),
        QueueConfig(depth=500, priority=2),
        QueueConfig(depth=100, priority=1),
    ]


def rate_group_divisors():
    """(divisor, offset) pairs splitting the base clock into 1, 1/2 and 1/4 rate groups."""
    return ((1, 0), (2, 0), (4, 0))


@dataclass
class _RateGroupDriver:
    """Divides a base tick into rate groups, calling each group's members when due."""

    divisors: tuple[tuple[int, int], ...]
    groups: list[list[Callable[[int, int], object]]] = field(default_factory=list)
    ticks: int = 0

    def __post_init__(self) -> None:
        if not self.groups:
            self.groups = [[] for _ in self.divisors]

    def tick(self) -> None:
        for (divisor, offset), members in zip(self.divisors, self.groups):
            if self.ticks % divisor == offset:
                for context, member in enumerate(members):
                    member(0, context)
        self.ticks += 1


class SimulatedCycle:
    """Calls an interrupt routine at a fixed interval until stopped.

    Once stopped the cycle stays stopped; a later start returns at once.
    """

    def __init__(self):
        self._stopped = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def start(self, interval, isr):
        """Run the loop, calling ``isr`` once per interval; returns the number of calls."""
        seconds = interval.total_seconds() if isinstance(interval, timedelta) else float(interval)
        if seconds < 0:
            raise ValueError("cycle interval must not be negative")
        calls = 0
        while not self._stopped.is_set():
            isr()
            calls += 1
            self._stopped.wait(seconds)
        return calls

    def stop(self):
        """Stop the loop at the end of the current interval."""
        self._stopped.set()


def _atoi(text: str) -> int:
    match = _ATOI_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def parse_args(argv):
    """Read ``-a host`` and ``-p port`` options into a TopologyState.

    Raises HelpRequested for ``-h`` and UsageError for anything not understood.
    """
    try:
        options, _rest = getopt.getopt(list(argv), "hp:a:")
    except getopt.GetoptError as error:
        raise UsageError(str(error)) from None
    hostname: Optional[str] = None
    port = 0
    for option, value in options:
        if option == "-a":
            hostname = value
        elif option == "-p":
            port = _atoi(value) % _U16_RANGE
        else:
            raise HelpRequested()
    return TopologyState(hostname=hostname, port=port)


def _usage(app: str) -> str:
    return f"Usage: ./{app} [options]\n-a\thostname/IP address\n-p\tport_number\n"


def main(argv=None):
    """Run the deployment's simulated clock until interrupted."""
    app = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "flightsw"
    if argv is None:
        argv = sys.argv[1:]
    try:
        state = parse_args(argv)
    except HelpRequested:
        print(_usage(app), end="")
        return 0
    except UsageError:
        print(_usage(app), end="")
        return 1

    cycle = SimulatedCycle()
    driver = _RateGroupDriver(rate_group_divisors())

    def _on_signal(signum, frame):
        cycle.stop()

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    print("Hit Ctrl-C to quit")
    try:
        if state.has_socket():
            print(f"Ground link: {state.hostname}:{state.port}")
        cycle.start(DEFAULT_CYCLE_INTERVAL, driver.tick)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
    print("Exiting...")
    return 0