"""Enumerations and constants shared by the flight components."""

from __future__ import annotations

from enum import Enum

SCHEDULER_INIT_NUM_CONNECTIONS = 3
STATE_MACHINE_INIT_NUM_CONNECTIONS = 2


class _NamedEnum(str, Enum):
    """Enum whose values are the member names, so names and values parse alike."""

    def __str__(self) -> str:
        return self.value


class ScheduleOp(_NamedEnum):
    """Action requested of the scheduler for a named task."""

    START = "START"
    STOP = "STOP"


class ScheduleStatus(_NamedEnum):
    """State of a scheduled task as reported by the scheduler."""

    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


class SMState(_NamedEnum):
    """Operating state of the state machine."""

    START_UP = "START_UP"
    CRUISE = "CRUISE"
    SAFE_ANOM = "SAFE_ANOM"
    SAFE_CRIT_PWR = "SAFE_CRIT_PWR"
    RESTART = "RESTART"
    SHUTDOWN = "SHUTDOWN"
    IDLE = "IDLE"
    RESET = "RESET"
    ANON = "ANON"


class CruiseMode(_NamedEnum):
    """Sub-mode used while cruising."""

    NOMINAL = "NOMINAL"
    MEME = "MEME"
    BBS = "BBS"


class EpsCommandRecv(_NamedEnum):
    """Packets exchanged with the electrical power system."""

    HEARTBEAT_PKT = "HEARTBEAT_PKT"
    CRUISE_PKT = "CRUISE_PKT"
    IDLE_PKT = "IDLE_PKT"
    RESET_PKT = "RESET_PKT"


class EpsCommand(_NamedEnum):
    """Commands the ground can ask the state machine to forward to the EPS."""

    HEARTBEAT = "HEARTBEAT"
    CRUISE = "CRUISE"
    IDLE = "IDLE"
    RESET = "RESET"


class CmdResponse(_NamedEnum):
    """Completion status returned for a command."""

    OK = "OK"
    INVALID_OPCODE = "INVALID_OPCODE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORMAT_ERROR = "FORMAT_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    BUSY = "BUSY"