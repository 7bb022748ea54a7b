"""Spacecraft operating-state machine component."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from flightsw.component import Component
from flightsw.types import CruiseMode, EpsCommandRecv, SMState

DEFAULT_DATA_PATH = "persistent_data.txt"
MAX_PERSISTENT_BYTES = 256

MEME_BAUD = 40000
BBS_BAUD = 9600

EPS_COMMAND_PORT = "SM_EpsCommand"
READY_FOR_POWER_OFF_PORT = "SM_ReadyForPowerOff"
RADIO_COMMAND_PORT = "SM_RadioCommand"

DEBUG_EVENT = "SM_Debug_Event"
PERSISTENT_DATA_ERROR_EVENT = "SM_Persistent_Data_Error"
STATE_CHANGE_EVENT = "SM_State_Change"
INVALID_STATE_CHANGE_EVENT = "SM_Invalid_State_Change"
CRUISE_MODE_CHANGE_EVENT = "SM_Cruise_Mode_Change"
RESTART_EVENT = "SM_Restart"
SHUTDOWN_EVENT = "SM_Shutdown"

STATE_CHANNEL = "SM_State"
CRUISE_MODE_CHANNEL = "SM_CruiseMode"
RESTART_COUNT_CHANNEL = "SM_RestartCount"
SHUTDOWN_COUNT_CHANNEL = "SM_ShutdownCount"

_MSG_TYPE = 0x04
_MSG_LENGTH = 0x0E
_MSG_ACK = 0x01
_MCU_STATE_CONTROL = 0x05

_STATE_CODES = {
    SMState.CRUISE: 0x02,
    SMState.SAFE_ANOM: 0x01,
    # Critical power shares the start-up code.
    SMState.SAFE_CRIT_PWR: 0x00,
    SMState.START_UP: 0x00,
    SMState.RESTART: 0x05,
    SMState.SHUTDOWN: 0x05,
}

_COMMAND_PACKETS = {
    SMState.CRUISE: EpsCommandRecv.CRUISE_PKT,
    SMState.IDLE: EpsCommandRecv.IDLE_PKT,
    SMState.RESET: EpsCommandRecv.RESET_PKT,
}

_NUMBER_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.ASCII | re.IGNORECASE,
)


class PowerAction(str, Enum):
    """What the system is asked to do with its power."""

    RESTART = "RESTART"
    POWER_OFF = "POWER_OFF"


def encode_state(state):
    """The four-byte state message sent to the power-system MCU."""
    code = _STATE_CODES.get(SMState(state), 0x01)
    return bytes((_MSG_TYPE, _MSG_LENGTH, _MSG_ACK, code))


def _leading_number(text: str) -> float:
    match = _NUMBER_PREFIX.match(text)
    if match is None:
        raise ValueError(f"no number in {text!r}")
    return float(match.group(1))


def load_persistent_data(path):
    """Read ``name:value`` lines from the first bytes of the file.

    Only complete lines are used; a value is the number at the start of the
    text after the first colon, or of the whole line if it has no colon.
    """
    text = Path(path).read_bytes()[:MAX_PERSISTENT_BYTES].decode("latin-1")
    *lines, _partial = text.split("\n")
    data: dict[str, float] = {}
    for line in lines:
        param, colon, value = line.partition(":")
        data[param] = _leading_number(value if colon else line)
    return data


def save_persistent_data(path, data):
    """Write the data as ``name:value`` lines sorted by name."""
    text = "".join(f"{name}:{value:f}\n" for name, value in sorted(data.items()))
    Path(path).write_text(text, encoding="latin-1")


class StateMachine(Component):
    """Tracks the spacecraft state, talks to the EPS and handles power-down."""

    def __init__(self, name, data_path=DEFAULT_DATA_PATH,
                 power: Optional[Callable[[PowerAction], object]] = None):
        super().__init__(name)
        self.data_path = Path(data_path)
        self.power = power
        self.power_actions: list[PowerAction] = []
        self.current_state = SMState.START_UP
        self.next_state = SMState.START_UP
        self.cruise_mode = CruiseMode.NOMINAL
        self.heartbeat = False
        self.last_state_message = b""
        self.persistent_data: dict[str, float] = {}
        try:
            raw = self.data_path.open("rb")
        except OSError:
            self.log(PERSISTENT_DATA_ERROR_EVENT)
            return
        raw.close()
        self.log(DEBUG_EVENT, "File opened")
        try:
            self.persistent_data = load_persistent_data(self.data_path)
        except OSError:
            self.log(PERSISTENT_DATA_ERROR_EVENT)

    # -- input ports -------------------------------------------------------

    def run(self, port_num, context):
        """Rate-group input: advance the state machine and send the heartbeat."""
        self.update()
        self.last_state_message = encode_state(self.current_state)
        if self.heartbeat:
            self.send(EPS_COMMAND_PORT, EpsCommandRecv.HEARTBEAT_PKT)

    def change_state(self, port_num, state):
        """Another component requests a state; cruise may only come from the ground."""
        state = SMState(state)
        if state is SMState.CRUISE:
            self.log(INVALID_STATE_CHANGE_EVENT, state)
            return
        self.next_state = state
        self.log(STATE_CHANGE_EVENT, state)

    def eps_command_in(self, port_num, command):
        """A packet arrived from the EPS."""
        self.log(DEBUG_EVENT, "SM_EpsCommandIn_handler")
        if EpsCommandRecv(command) is EpsCommandRecv.HEARTBEAT_PKT:
            self.log(DEBUG_EVENT, "EPS -> HEARTBEAT")
            self.heartbeat = True

    # -- commands ----------------------------------------------------------

    def change_state_cmd(self, opcode, cmd_seq, state):
        """Ground command to change state; cruise, idle and reset are forwarded to the EPS."""
        state = SMState(state)
        self.log(STATE_CHANGE_EVENT, state)
        self.respond(opcode, cmd_seq, "OK")
        packet = _COMMAND_PACKETS.get(state)
        if packet is not None:
            self.next_state = state
            self.log(STATE_CHANGE_EVENT, state)
            self.send(EPS_COMMAND_PORT, packet)

    def set_cruise_mode_cmd(self, opcode, cmd_seq, mode):
        """Ground command for the cruise mode; reports the mode in force."""
        CruiseMode(mode)
        self.log(CRUISE_MODE_CHANGE_EVENT, self.cruise_mode)
        self.respond(opcode, cmd_seq, "OK")
        self.send(EPS_COMMAND_PORT, EpsCommandRecv.CRUISE_PKT)

    def eps_command_out_cmd(self, opcode, cmd_seq, command):
        """Ground command to forward to the EPS; none are recognised yet."""
        self.log(DEBUG_EVENT, "UNKNOWN_CMD -> EPS")
        self.respond(opcode, cmd_seq, "OK")

    # -- state handling ----------------------------------------------------

    def _check_state(self, state: SMState) -> None:
        if self.current_state is SMState.SAFE_CRIT_PWR and state is SMState.CRUISE:
            self.log(INVALID_STATE_CHANGE_EVENT, state)
        elif self.current_state is not state and state is not SMState.START_UP:
            self.current_state = self.next_state
            self.write_telemetry(STATE_CHANNEL, self.current_state)

    def update(self):
        """Apply the pending transition and act on the current state."""
        self._check_state(self.next_state)
        state = self.current_state
        if state is SMState.CRUISE:
            self.write_telemetry(CRUISE_MODE_CHANNEL, self.cruise_mode)
        elif state is SMState.SAFE_ANOM:
            pass
        elif state is SMState.SAFE_CRIT_PWR or state is SMState.SHUTDOWN:
            self._shutdown()
        elif state is SMState.START_UP:
            self.next_state = SMState.SAFE_ANOM
        elif state is SMState.RESTART:
            self._restart()
        else:
            self.next_state = SMState.SAFE_ANOM

    def _ready_for_power_off(self) -> None:
        try:
            save_persistent_data(self.data_path, self.persistent_data)
        except OSError:
            self.log(PERSISTENT_DATA_ERROR_EVENT)
        self.send(READY_FOR_POWER_OFF_PORT, True)

    def _request_power(self, action: PowerAction) -> None:
        self.power_actions.append(action)
        if self.power is not None:
            self.power(action)

    def _restart(self) -> None:
        self.persistent_data["restarts"] = self.persistent_data.get("restarts", 0.0) + 1
        self._ready_for_power_off()
        self.write_telemetry(RESTART_COUNT_CHANNEL, self.persistent_data["restarts"])
        self.log(RESTART_EVENT)
        self._request_power(PowerAction.RESTART)

    def _shutdown(self) -> None:
        self._ready_for_power_off()
        self.persistent_data["shutdowns"] = self.persistent_data.get("shutdowns", 0.0) + 1
        self.write_telemetry(SHUTDOWN_COUNT_CHANNEL, self.persistent_data["shutdowns"])
        self.log(SHUTDOWN_EVENT)
        self._request_power(PowerAction.POWER_OFF)