import threading
from datetime import timedelta

import pytest

from flightsw.topology import (
    HelpRequested,
    PingEntry,
    QueueConfig,
    SimulatedCycle,
    TopologyState,
    UsageError,
    main,
    parse_args,
    ping_entries,
    queue_configuration,
    rate_group_divisors,
)


@pytest.mark.parametrize(
    "state, expected",
    [
        (TopologyState("localhost", 50000), True),
        (TopologyState(None, 50000), False),
        (TopologyState("localhost", 0), False),
        (TopologyState(), False),
    ],
)
def test_has_socket(state, expected):
    assert state.has_socket() is expected


def test_parse_args_host_and_port():
    state = parse_args(["-a", "localhost", "-p", "50000"])
    assert state == TopologyState("localhost", 50000)


def test_parse_args_defaults():
    state = parse_args([])
    assert state.hostname is None
    assert state.port == 0
    assert not state.has_socket()


def test_parse_args_port_wraps_to_sixteen_bits():
    assert parse_args(["-p", str(5 + 65536)]).port == parse_args(["-p", "5"]).port


def test_parse_args_port_non_numeric_is_zero():
    assert parse_args(["-p", "abc"]).port == 0


def test_parse_args_port_leading_digits():
    assert parse_args(["-p", "12abc"]).port == 12


def test_parse_args_help():
    with pytest.raises(HelpRequested):
        parse_args(["-h"])


@pytest.mark.parametrize("argv", [["-x"], ["-p"], ["-a"]])
def test_parse_args_errors(argv):
    with pytest.raises(UsageError):
        parse_args(argv)


def test_main_help_returns_zero(capsys):
    assert main(["-h"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Usage: ./")
    assert "-a\thostname/IP address" in out


def test_main_bad_option_returns_one(capsys):
    assert main(["-z"]) == 1
    assert "-p\tport_number" in capsys.readouterr().out


def test_ping_entries():
    entries = ping_entries()
    assert [e.name for e in entries] == [
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
    ]
    assert all(e.warn == 3 and e.fatal == 5 for e in entries)
    assert entries[0] == PingEntry(3, 5, "blockDrv")


def test_queue_configuration():
    assert queue_configuration() == [
        QueueConfig(depth=100, priority=0),
        QueueConfig(depth=500, priority=2),
        QueueConfig(depth=100, priority=1),
    ]


def test_rate_group_divisors():
    assert rate_group_divisors() == ((1, 0), (2, 0), (4, 0))


def test_cycle_runs_until_isr_stops_it():
    cycle = SimulatedCycle()
    calls = []

    def isr():
        calls.append(None)
        if len(calls) == 3:
            cycle.stop()

    assert cycle.start(0, isr) == 3
    assert len(calls) == 3
    assert cycle.stopped


def test_cycle_stopped_before_start_never_calls_isr():
    cycle = SimulatedCycle()
    cycle.stop()
    calls = []
    assert cycle.start(timedelta(seconds=0), lambda: calls.append(None)) == 0
    assert calls == []


def test_cycle_stopped_from_another_thread():
    cycle = SimulatedCycle()
    timer = threading.Timer(0.05, cycle.stop)
    timer.start()
    try:
        count = cycle.start(timedelta(milliseconds=5), lambda: None)
    finally:
        timer.cancel()
    assert count >= 1
    assert cycle.stopped


def test_cycle_negative_interval_rejected():
    with pytest.raises(ValueError):
        SimulatedCycle().start(-1, lambda: None)