from commercetax.db.repos.configuration_repo import ConfigurationRepo
from commercetax.db.repos.filing_repo import FilingRepo
from commercetax.db.repos.notification_repo import NotificationRepo
from commercetax.db.repos.rectification_repo import RectificationRepo
from commercetax.db.repos.registry_repo import RegistryRepo

__all__ = ["ConfigurationRepo", "FilingRepo", "NotificationRepo", "RectificationRepo", "RegistryRepo"]
