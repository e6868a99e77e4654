from commercetax.domain.enums.backfill import BackfillState, BackfillTrigger
from commercetax.domain.enums.events import FilingEvent

__all__ = [
    "BackfillState",
    "BackfillTrigger",
    "FilingEvent",
]
