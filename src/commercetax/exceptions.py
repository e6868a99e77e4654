"""Error taxonomy for the filing compliance engine."""


class CommerceTaxError(Exception):
    """Base class for all domain errors."""

    code = "error"


class ValidationError(CommerceTaxError):
    """Missing or invalid input. Never retried."""

    code = "invalid"


class DuplicateFilingError(CommerceTaxError):
    """A filing already exists for the (taxpayer, trade, period) key."""

    code = "duplicate"

    def __init__(self, taxpayer_id: int, trade_id: int, year: int, month: int) -> None:
        self.taxpayer_id = taxpayer_id
        self.trade_id = trade_id
        self.year = year
        self.month = month
        super().__init__(
            f"A filing for trade {trade_id} of taxpayer {taxpayer_id} already exists for {month:02d}/{year}"
        )


class ConfigurationMissingError(CommerceTaxError):
    """No tax policy row exists. Indicates a deployment/initialization failure."""

    code = "configuration_missing"

    def __init__(self, message: str = "Tax configuration is not initialized") -> None:
        super().__init__(message)


class PersistenceError(CommerceTaxError):
    """Storage layer failure not otherwise classified."""

    code = "persistence"


class FilingNotFoundError(CommerceTaxError):
    code = "not_found"


class TradeNotFoundError(CommerceTaxError):
    code = "not_found"
