"""Cron-style task scheduler component."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from flightsw.component import Component
from flightsw.types import SCHEDULER_INIT_NUM_CONNECTIONS, ScheduleOp, ScheduleStatus

GET_SCHEDULE_PORT_COUNT = SCHEDULER_INIT_NUM_CONNECTIONS
DEFAULT_SCHEDULE_LIST_PATH = "schedule_list.txt"

RUN_SCHEDULE_PORT = "runSchedule"
DOWNLINK_PORT = "downlinkCurrentSchedules"

PORT_NUM_WARN_EVENT = "SCH_PortNumGetScheduleWarn"
NAME_EMPTY_WARN_EVENT = "SCH_NameStringEmptyWarn"
TASK_RUNNING_EVENT = "SCH_TaskRunning"
SCHEDULE_DOWNLINKED_EVENT = "SCH_ScheduleDownlinked"
COMMAND_SENT_EVENT = "SCH_CommandSent"
SCHEDULE_INCORRECT_EVENT = "SCH_ScheduleIncorrectWarn"
SCHEDULE_PROCESSED_EVENT = "SCH_ScheduleProcessed"

FILE_RECYCLER_STATUS_CHANNEL = "SCH_FileRecyclerPortStatus"
TLM_CHAN_STATUS_CHANNEL = "SCH_TlmChanPortStatus"

_SCHEDULE_PATTERN = re.compile(
    r"(^((((\d+,)+\d+|(\d+(\/|-|#)\d+)|\d+L?|\*(\/\d+)?|L(-\d+)?|\?|[A-Z]{3}(-[A-Z]{3})?) ?){5,7})$)|"
    r"(@(annually|yearly|monthly|weekly|daily|hourly|reboot))|"
    r"(@every (\d+(ns|us|µs|ms|s|m|h))+)",
    re.ASCII,
)


def format_duration(duration):
    """Render a timedelta as hours, minutes, seconds and milliseconds."""
    micros = duration // timedelta(microseconds=1)
    sign = -1 if micros < 0 else 1
    micros = abs(micros)
    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds, micros = divmod(micros, 1_000_000)
    millis = micros // 1000
    hours, minutes, seconds, millis = (sign * v for v in (hours, minutes, seconds, millis))

    parts = []
    if hours > 0:
        parts.append(f"{hours} hours_ ")
    if minutes > 0:
        parts.append(f"{minutes} minutes_ ")
    if seconds > 0:
        parts.append(f"{seconds} seconds_ ")
    if millis > 0 or (hours == 0 and minutes == 0 and seconds == 0):
        parts.append(f"{millis} ms")
    return "".join(parts)


def is_valid_schedule(schedule):
    """Whether the text has the shape of a cron schedule."""
    return _SCHEDULE_PATTERN.fullmatch(schedule) is not None


# ---------------------------------------------------------------------------
# Cron table
# ---------------------------------------------------------------------------

_MACROS = {
    "@yearly": "0 0 0 1 1 *",
    "@annually": "0 0 0 1 1 *",
    "@monthly": "0 0 0 1 * *",
    "@weekly": "0 0 0 * * 0",
    "@daily": "0 0 0 * * *",
    "@hourly": "0 0 * * * *",
}

_MONTH_NAMES = {
    name: index
    for index, name in enumerate(
        ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"),
        start=1,
    )
}
_DAY_NAMES = {name: index for index, name in enumerate(("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"))}

_EVERY_PATTERN = re.compile(r"@every ((?:\d+(?:ns|us|µs|ms|s|m|h))+)", re.ASCII)
_EVERY_PART = re.compile(r"(\d+)(ns|us|µs|ms|s|m|h)", re.ASCII)
_UNIT_MICROS = {"ns": 0.001, "us": 1, "µs": 1, "ms": 1000, "s": 1_000_000, "m": 60_000_000, "h": 3_600_000_000}

_SEARCH_YEARS = 5


def _field_value(text: str, names: Optional[dict[str, int]]) -> int:
    if text.isdigit():
        return int(text)
    if names and text.upper() in names:
        return names[text.upper()]
    raise ValueError(f"bad cron value {text!r}")


def _parse_field(text: str, low: int, high: int, names: Optional[dict[str, int]] = None) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        if not part:
            raise ValueError(f"empty element in cron field {text!r}")
        base, has_step, step_text = part.partition("/")
        step = 1
        if has_step:
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"bad step in cron field {text!r}")
            step = int(step_text)
        if base in ("*", "?"):
            start, end = low, high
        elif "-" in base:
            first, _, last = base.partition("-")
            start, end = _field_value(first, names), _field_value(last, names)
        else:
            start = _field_value(base, names)
            end = high if has_step else start
        if not (low <= start <= end <= high):
            raise ValueError(f"cron field {text!r} out of range {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


@dataclass(frozen=True)
class _CronFields:
    seconds: frozenset[int]
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]

    @classmethod
    def parse(cls, expression: str) -> "_CronFields":
        fields = expression.split()
        if len(fields) == 5:
            fields.insert(0, "0")
        if len(fields) != 6:
            raise ValueError(f"cron expression {expression!r} needs 5 or 6 fields")
        sec, minute, hour, day, month, weekday = fields
        weekdays = _parse_field(weekday, 0, 7, _DAY_NAMES)
        return cls(
            seconds=_parse_field(sec, 0, 59),
            minutes=_parse_field(minute, 0, 59),
            hours=_parse_field(hour, 0, 23),
            days=_parse_field(day, 1, 31),
            months=_parse_field(month, 1, 12, _MONTH_NAMES),
            weekdays=frozenset(d % 7 for d in weekdays),
        )

    def next_after(self, moment: datetime) -> datetime:
        """The first matching second strictly after the given moment."""
        t = moment.replace(microsecond=0) + timedelta(seconds=1)
        limit = t.year + _SEARCH_YEARS
        while t.year <= limit:
            if t.month not in self.months:
                year, month = (t.year + 1, 1) if t.month == 12 else (t.year, t.month + 1)
                t = t.replace(year=year, month=month, day=1, hour=0, minute=0, second=0)
                continue
            # isoweekday: Monday=1 .. Sunday=7; cron counts Sunday as 0.
            if t.day not in self.days or t.isoweekday() % 7 not in self.weekdays:
                t = t.replace(hour=0, minute=0, second=0) + timedelta(days=1)
                continue
            if t.hour not in self.hours:
                t = t.replace(minute=0, second=0) + timedelta(hours=1)
                continue
            if t.minute not in self.minutes:
                t = t.replace(second=0) + timedelta(minutes=1)
                continue
            if t.second not in self.seconds:
                t += timedelta(seconds=1)
                continue
            return t
        raise ValueError("cron expression never fires")


@dataclass
class _Task:
    name: str
    expression: str
    callback: Callable[[str], object]
    next_run: datetime
    fields: Optional[_CronFields] = None
    interval: Optional[timedelta] = None
    once: bool = False

    def reschedule(self, now: datetime) -> bool:
        """Move to the next run time; False if the task is finished."""
        if self.once:
            return False
        if self.interval is not None:
            self.next_run = now + self.interval
        else:
            self.next_run = self.fields.next_after(now)
        return True


class _CronTable:
    """Named tasks run from cron expressions against a local clock."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._tasks: dict[str, _Task] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def add_schedule(self, name: str, expression: str, callback: Callable[[str], object]) -> None:
        """Add or replace a task; raises ValueError for a schedule that cannot run."""
        now = self._clock()
        text = _MACROS.get(expression.strip(), expression.strip())
        if text == "@reboot":
            task = _Task(name, expression, callback, now, once=True)
        elif text.startswith("@every"):
            match = _EVERY_PATTERN.fullmatch(text)
            if match is None:
                raise ValueError(f"bad interval schedule {expression!r}")
            micros = sum(int(n) * _UNIT_MICROS[unit] for n, unit in _EVERY_PART.findall(match.group(1)))
            interval = timedelta(microseconds=micros)
            if interval <= timedelta(0):
                raise ValueError(f"interval schedule {expression!r} is empty")
            task = _Task(name, expression, callback, now + interval, interval=interval)
        else:
            fields = _CronFields.parse(text)
            task = _Task(name, expression, callback, fields.next_after(now), fields=fields)
        self._tasks[name] = task

    def remove_schedule(self, name: str) -> None:
        self._tasks.pop(name, None)

    def tick(self, now: Optional[datetime] = None) -> list[str]:
        """Run every task that is due and return their names."""
        now = self._clock() if now is None else now
        ran = []
        for task in sorted(self._tasks.values(), key=lambda t: t.next_run):
            if task.next_run > now:
                continue
            task.callback(task.name)
            ran.append(task.name)
            if not task.reschedule(now):
                self._tasks.pop(task.name, None)
        return ran

    def time_until_expiry(self, now: Optional[datetime] = None) -> list[tuple[str, timedelta]]:
        """(name, time until next run) for every task, soonest first."""
        now = self._clock() if now is None else now
        tasks = sorted(self._tasks.values(), key=lambda t: t.next_run)
        return [(task.name, task.next_run - now) for task in tasks]


# ---------------------------------------------------------------------------
# Component
# ---------------------------------------------------------------------------


class Scheduler(Component):
    """Starts and stops named cron tasks on request and reports their status."""

    def __init__(self, name, cron=None, schedule_list_path=DEFAULT_SCHEDULE_LIST_PATH):
        super().__init__(name)
        self.cron = _CronTable() if cron is None else cron
        self.schedule_list_path = Path(schedule_list_path)

    def write_schedule_list(self):
        """Write each task's name and nanoseconds until expiry to the schedule list file."""
        lines = [
            f"{task} {duration // timedelta(microseconds=1) * 1000}\n"
            for task, duration in self.cron.time_until_expiry()
        ]
        self.schedule_list_path.write_text("".join(lines))
        return self.schedule_list_path

    def _run_task(self, _task_name):
        self.send(RUN_SCHEDULE_PORT, ScheduleStatus.RUNNING)

    def get_schedule(self, port_num, name, schedule, action):
        """Start or stop the named task; START on a running task stops it instead."""
        if GET_SCHEDULE_PORT_COUNT < port_num:
            self.log(PORT_NUM_WARN_EVENT, port_num)
            return None
        if not name:
            self.log(NAME_EMPTY_WARN_EVENT, port_num)
            return None

        is_task = name in {task for task, _ in self.cron.time_until_expiry()}
        status = ScheduleStatus.RUNNING if is_task else ScheduleStatus.STOPPED
        self.log(TASK_RUNNING_EVENT, name, status)
        try:
            op = ScheduleOp(action)
            if op is ScheduleOp.START:
                if is_task:
                    self.cron.remove_schedule(name)
                    status = ScheduleStatus.STOPPED
                else:
                    status = ScheduleStatus.RUNNING
                    self.cron.add_schedule(name, schedule, self._run_task)
            else:
                self.cron.remove_schedule(name)
                status = ScheduleStatus.STOPPED
        except Exception:
            status = ScheduleStatus.FAILED
        self.log(TASK_RUNNING_EVENT, name, status)

        if port_num == 0:
            self.write_telemetry(FILE_RECYCLER_STATUS_CHANNEL, status)
        elif port_num == 1:
            self.write_telemetry(TLM_CHAN_STATUS_CHANNEL, status)
        return status

    def tick(self, port_num, context):
        """Rate-group input: run the tasks that are due."""
        return self.cron.tick()

    def get_schedule_list(self, opcode, cmd_seq, dest_file_name):
        """Command: write the schedule list and downlink it to the given destination."""
        source = self.write_schedule_list()
        self.send(DOWNLINK_PORT, str(source), dest_file_name, 0, 0)
        self.log(SCHEDULE_DOWNLINKED_EVENT, dest_file_name)
        self.respond(opcode, cmd_seq, "OK")

    def stop_schedule(self, opcode, cmd_seq, name):
        """Command: remove the named task."""
        self.cron.remove_schedule(name)
        self.log(TASK_RUNNING_EVENT, name, ScheduleStatus.STOPPED)
        self.respond(opcode, cmd_seq, "OK")

    def create_schedule(self, opcode, cmd_seq, name, schedule, capture_param, lambda_param, lambda_fn):
        """Command: check a proposed schedule and report the outcome as events."""
        self.log(COMMAND_SENT_EVENT, name, schedule)
        if not is_valid_schedule(schedule):
            self.log(SCHEDULE_INCORRECT_EVENT, schedule, 1, name, ScheduleStatus.FAILED)
            return False
        self.log(SCHEDULE_PROCESSED_EVENT, schedule, name)
        self.log(SCHEDULE_INCORRECT_EVENT, schedule, 2, name, ScheduleStatus.FAILED)
        return True