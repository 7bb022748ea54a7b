"""Component that asks the scheduler to run telemetry-channel output periodically."""

from __future__ import annotations

from flightsw.component import Component
from flightsw.types import ScheduleOp, ScheduleStatus

SCHEDULE_PARAM_ID = 1
TASK_NAME = "TlmChan"

SEND_SCHEDULE_PORT = "sendSchedule"
TLM_CHAN_OUT_PORT = "tlmChanOut"

SCHEDULE_ERROR_EVENT = "TLMWR_ScheduleError"
SCHEDULE_CHANGED_EVENT = "TLMWR_ScheduleChangedTo"


class TlmChanWrapper(Component):
    """Registers the telemetry task with the scheduler and triggers it when due."""

    def __init__(self, name, schedule=None):
        super().__init__(name)
        self.schedule = schedule

    def _valid_schedule(self) -> str:
        if self.schedule is None:
            raise ValueError("TLMWR_Schedule parameter is not valid")
        return str(self.schedule)

    def preamble(self):
        """Request the scheduler to start the task with the current schedule."""
        schedule = self._valid_schedule()
        self.send(SEND_SCHEDULE_PORT, TASK_NAME, schedule, ScheduleOp.START)

    def scheduled_handler(self, port_num, status):
        """Called when the scheduler fires; emit telemetry unless the task is down."""
        status = ScheduleStatus(status)
        if status in (ScheduleStatus.FAILED, ScheduleStatus.STOPPED):
            self.log(SCHEDULE_ERROR_EVENT, status)
            return
        self.send(TLM_CHAN_OUT_PORT, 0, 0)

    def set_schedule(self, schedule):
        """Change the schedule parameter and apply it."""
        self.schedule = schedule
        self.parameter_updated(SCHEDULE_PARAM_ID)

    def parameter_updated(self, param_id):
        """React to a changed parameter by re-registering the schedule."""
        if param_id != SCHEDULE_PARAM_ID:
            return
        schedule = self._valid_schedule()
        self.send(SEND_SCHEDULE_PORT, TASK_NAME, schedule, ScheduleOp.START)
        self.log(SCHEDULE_CHANGED_EVENT, schedule)