from commercetax.db.models.configuration import TaxConfiguration
from commercetax.db.models.filing import Filing
from commercetax.db.models.notification import Notification
from commercetax.db.models.rectification import Rectification
from commercetax.db.models.registry import Taxpayer, Trade

__all__ = [
    "Filing",
    "Notification",
    "Rectification",
    "TaxConfiguration",
    "Taxpayer",
    "Trade",
]
