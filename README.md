# flightsw

Flight-software components for a small satellite onboard computer, written
as plain Python objects that talk to each other through named ports. It has
no dependencies outside the standard library.

## What is inside

- `flightsw.types`: the enumerations shared between components
  (`ScheduleOp`, `ScheduleStatus`, `SMState`, `CruiseMode`,
  `EpsCommandRecv`, `EpsCommand`, `CmdResponse`) and the port-count
  constants `SCHEDULER_INIT_NUM_CONNECTIONS` and
  `STATE_MACHINE_INIT_NUM_CONNECTIONS`. Every enum value is its member
  name, so `ScheduleOp("START")` works.
- `flightsw.component`: the `Component` base class. A component connects
  output ports to callables (`connect`), calls them (`send`, which raises
  `PortNotConnectedError` for an unconnected port), records `Event`s
  (`log`, `events_named`), writes telemetry channels (`write_telemetry`,
  kept in `telemetry` and `telemetry_history`) and records command
  responses (`respond`).
- `flightsw.scheduler`: the `Scheduler` component. It keeps named cron
  tasks in an in-memory table driven by the local clock.
  - `get_schedule(port_num, name, schedule, action)` starts or stops a
    task. A `START` for a task that already exists removes it instead. The
    resulting `ScheduleStatus` is returned, logged, and written to
    telemetry for ports 0 and 1. A schedule that cannot be parsed gives
    `FAILED`.
  - `tick(port_num, context)` runs every task that is due; each firing
    sends `ScheduleStatus.RUNNING` on the `runSchedule` port.
  - `write_schedule_list()` writes one line per task, its name and the
    nanoseconds until it next runs, to `schedule_list_path`
    (`schedule_list.txt` by default). `get_schedule_list` writes that file
    and sends it on the `downlinkCurrentSchedules` port.
  - `stop_schedule` removes a task.
  - `create_schedule` only checks the schedule text and logs the outcome;
    it does not add a task.
  - Schedules may be five- or six-field cron expressions (numbers, `*`,
    `?`, ranges, lists, steps, month and day names), the macros
    `@yearly`, `@annually`, `@monthly`, `@weekly`, `@daily`, `@hourly`,
    `@reboot` (runs once), or `@every` intervals such as `@every 1h30m`.
  - `is_valid_schedule` checks the shape of a schedule string, and
    `format_duration` renders a `timedelta` as hours, minutes, seconds and
    milliseconds.
- `flightsw.tlmchan`: the `TlmChanWrapper` component. `preamble` and
  `set_schedule` send the `TlmChan` task with its schedule on the
  `sendSchedule` port; `scheduled_handler` sends on `tlmChanOut` when the
  status is `RUNNING` and logs an error event otherwise.
- `flightsw.statemachine`: the `StateMachine` component. It moves between
  start-up, safe, cruise, restart and shutdown states on each `run`,
  forwards cruise, idle and reset requests from `change_state_cmd` to the
  EPS port, rejects cruise requests from other components
  (`change_state`), and sends a heartbeat packet once one has been
  received (`eps_command_in`). Restart and shutdown counters are kept in a
  small `name:value` text file (`load_persistent_data`,
  `save_persistent_data`). `encode_state` gives the four-byte state
  message for the power controller.
- `flightsw.topology`: the deployment tables (`ping_entries`,
  `queue_configuration`, `rate_group_divisors`), `TopologyState`,
  `SimulatedCycle`, `parse_args` and the command-line entry point `main`.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the deployment

```
flightsw -a 127.0.0.1 -p 50000
```

Options:

- `-a` host name or IP address of the ground link
- `-p` port number of the ground link
- `-h` print usage and exit

The command prints `Hit Ctrl-C to quit`, then ticks a rate-group driver
with 1, 1/2 and 1/4 rate groups once a second until it receives SIGINT or
SIGTERM, and prints `Exiting...`. When both an address and a non-zero port
are given it prints the ground-link address it was given.

## Using the components

```python
from flightsw.scheduler import Scheduler, is_valid_schedule
from flightsw.types import ScheduleOp

is_valid_schedule("@hourly")  # True
is_valid_schedule("not a schedule")  # False

scheduler = Scheduler("scheduler")
scheduler.connect("runSchedule", print)
scheduler.get_schedule(1, "TlmChan", "@every 5s", ScheduleOp.START)
scheduler.tick(0, 0)
```

Components are wired by connecting an output port of one to a handler of
another with `Component.connect`, then driven by calling their handlers,
for example `Scheduler.tick` from a rate group or `StateMachine.run` once
per cycle.

## What this package does not do

- The `flightsw` command does not open a network socket or a serial
  device, and does not frame, deframe or exchange packets with a ground
  station. Its rate groups have no components attached; it only runs the
  timing loop.
- `StateMachine` does not reboot or power off the machine. A restart or
  shutdown is recorded in `power_actions` and passed to the optional
  `power` callable given to the constructor; what that callable does is up
  to the caller.
- Schedules live only in memory; they are not kept across runs.