from enum import Enum


class BackfillState(str, Enum):
    """Backfill coordinator state."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"


class BackfillTrigger(str, Enum):
    """What started a backfill run."""

    STARTUP = "STARTUP"
    SCHEDULE = "SCHEDULE"
    ON_DEMAND = "ON_DEMAND"
    WORKER = "WORKER"
