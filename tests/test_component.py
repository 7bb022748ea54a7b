import pytest

from flightsw.component import CommandResponse, Component, Event, PortNotConnectedError
from flightsw.types import CmdResponse


@pytest.fixture
def component():
    return Component("StateMachine")


def test_construction_starts_clean(component):
    assert component.name == "StateMachine"
    assert component.events == []
    assert component.telemetry == {}
    assert component.responses == []


def test_send_calls_connected_handler(component):
    calls = []
    component.connect("out", lambda *args: calls.append(args) or len(args))
    result = component.send("out", 1, "two")
    assert calls == [(1, "two")]
    assert result == 2


def test_send_on_unconnected_port_raises(component):
    with pytest.raises(PortNotConnectedError):
        component.send("missing", 0)


def test_connect_rejects_non_callable(component):
    with pytest.raises(TypeError):
        component.connect("out", 42)


def test_connect_replaces_handler(component):
    component.connect("out", lambda: "first")
    component.connect("out", lambda: "second")
    assert component.send("out") == "second"


def test_log_and_events_named(component):
    component.log("A", 1)
    component.log("B")
    component.log("A", 2)
    assert component.events_named("A") == [Event("A", (1,)), Event("A", (2,))]
    assert component.events_named("B") == [Event("B", ())]
    assert component.events_named("C") == []


def test_write_telemetry_keeps_latest_and_history(component):
    component.write_telemetry("chan", 1)
    component.write_telemetry("chan", 5)
    assert component.telemetry["chan"] == 5
    assert component.telemetry_history == [("chan", 1), ("chan", 5)]


def test_respond_records_response(component):
    record = component.respond(7, 3, CmdResponse.OK)
    assert record == CommandResponse(7, 3, CmdResponse.OK)
    assert component.responses == [record]


def test_respond_rejects_unknown_status(component):
    with pytest.raises(ValueError):
        component.respond(1, 1, "MAYBE")