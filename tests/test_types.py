import pytest

from flightsw.types import (
    CmdResponse,
    CruiseMode,
    EpsCommand,
    EpsCommandRecv,
    ScheduleOp,
    ScheduleStatus,
    SMState,
)


def test_schedule_op_round_trip():
    for member in ScheduleOp:
        assert ScheduleOp(member.value) is member
        assert ScheduleOp[member.name] is member
    assert ScheduleOp(ScheduleOp["STOP"].value) is ScheduleOp.STOP


def test_schedule_status_round_trip():
    for member in ScheduleStatus:
        assert ScheduleStatus(member.value) is member
        assert ScheduleStatus[member.name] is member
    for name in ("RUNNING", "STOPPED", "FAILED"):
        assert ScheduleStatus(ScheduleStatus[name].value).name == name


def test_sm_state_round_trip():
    for member in SMState:
        assert SMState(member.value) is member
        assert SMState[member.name] is member


def test_cruise_mode_round_trip():
    for member in CruiseMode:
        assert CruiseMode(member.value) is member
        assert CruiseMode[member.name] is member
    assert CruiseMode(CruiseMode["NOMINAL"].value) is CruiseMode.NOMINAL


def test_eps_command_recv_round_trip():
    for member in EpsCommandRecv:
        assert EpsCommandRecv(member.value) is member
        assert EpsCommandRecv[member.name] is member


def test_eps_command_round_trip():
    for member in EpsCommand:
        assert EpsCommand(member.value) is member
        assert EpsCommand[member.name] is member


def test_cmd_response_round_trip():
    for member in CmdResponse:
        assert CmdResponse(member.value) is member
        assert CmdResponse[member.name] is member
    assert CmdResponse(CmdResponse["OK"].value) is CmdResponse.OK


def test_values_are_unique():
    assert len({ScheduleOp(m.value) for m in ScheduleOp}) == len(ScheduleOp)
    assert len({ScheduleStatus(m.value) for m in ScheduleStatus}) == len(ScheduleStatus)
    assert len({SMState(m.value) for m in SMState}) == len(SMState)
    assert len({CruiseMode(m.value) for m in CruiseMode}) == len(CruiseMode)
    assert len({EpsCommandRecv(m.value) for m in EpsCommandRecv}) == len(EpsCommandRecv)
    assert len({EpsCommand(m.value) for m in EpsCommand}) == len(EpsCommand)
    assert len({CmdResponse(m.value) for m in CmdResponse}) == len(CmdResponse)


@pytest.mark.parametrize(
    "member, name",
    [
        (ScheduleOp.START, "START"),
        (ScheduleOp.STOP, "STOP"),
        (ScheduleStatus.RUNNING, "RUNNING"),
        (ScheduleStatus.STOPPED, "STOPPED"),
        (ScheduleStatus.FAILED, "FAILED"),
        (SMState.CRUISE, "CRUISE"),
        (SMState.START_UP, "START_UP"),
        (CruiseMode.NOMINAL, "NOMINAL"),
        (EpsCommandRecv.HEARTBEAT_PKT, "HEARTBEAT_PKT"),
        (CmdResponse.OK, "OK"),
    ],
)
def test_str_is_member_name(member, name):
    assert str(member) == name


def test_str_of_every_member_is_its_name():
    assert [str(SMState(m.value)) for m in SMState] == [m.name for m in SMState]
    assert [str(EpsCommand(m.value)) for m in EpsCommand] == [m.name for m in EpsCommand]


def test_parse_schedule_status_from_text():
    assert ScheduleStatus("FAILED") is ScheduleStatus.FAILED
    assert ScheduleOp("START") is ScheduleOp.START


def test_unknown_value_is_rejected():
    with pytest.raises(ValueError):
        ScheduleOp("PAUSE")
    with pytest.raises(ValueError):
        SMState("NOT_A_STATE")


@pytest.mark.parametrize(
    "name", ["CRUISE", "SAFE_ANOM", "SAFE_CRIT_PWR", "START_UP", "RESTART", "SHUTDOWN"]
)
def test_state_machine_knows_states_used_by_flight_logic(name):
    member = SMState[name]
    assert SMState(member.value).name == name


def test_eps_packets_used_by_flight_logic():
    expected = {"HEARTBEAT_PKT", "CRUISE_PKT", "IDLE_PKT", "RESET_PKT"}
    found = {EpsCommandRecv(EpsCommandRecv[name].value).name for name in expected}
    assert found == expected
    assert {EpsCommandRecv(m.value).name for m in EpsCommandRecv} == expected