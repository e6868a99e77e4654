from enum import Enum


class FilingEvent(str, Enum):
    """Domain events emitted to observers."""

    FILING_CREATED = "filing-created"
    FILING_BACKFILLED = "filing-backfilled"
    FILING_RECTIFIED = "filing-rectified"
    FILING_TRANSMITTED = "filing-transmitted"
    RECTIFICATION_TRANSMITTED = "rectification-transmitted"
    CONFIGURATION_UPDATED = "configuration-updated"
    NOTIFICATION_READ = "notification-read"
