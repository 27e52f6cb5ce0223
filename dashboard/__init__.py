from .aggregator import Aggregator, ContainerAggregator, OverviewBoard
from .poller import Poller
from .registry import ServerRegistry, normalize_address
from .settings import DEFAULT_SETTINGS, AppSettings, InvalidSettingError, SettingsStore
from .store import KeyValueStore
from .views import DashboardView, ServiceView

__all__ = [
    "Aggregator",
    "ContainerAggregator",
    "OverviewBoard",
    "Poller",
    "ServerRegistry",
    "normalize_address",
    "DEFAULT_SETTINGS",
    "AppSettings",
    "InvalidSettingError",
    "SettingsStore",
    "KeyValueStore",
    "DashboardView",
    "ServiceView",
]
