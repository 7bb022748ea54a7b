"""Flight-software components: shared types, component base, cron scheduler, telemetry wrapper, state machine and a simulated deployment loop."""

__version__ = "0.1.0"

__all__ = [
    "types",
    "component",
    "tlmchan",
    "scheduler",
    "statemachine",
    "topology",
]