from .base import (
    BaseCollector,
    ContainerStats,
    Err,
    Ok,
    Result,
    ServerOverview,
    ServerRecord,
    SystemStats,
)
from .easypanel_collector import EasyPanelCollector

__all__ = [
    "BaseCollector",
    "ContainerStats",
    "Err",
    "Ok",
    "Result",
    "ServerOverview",
    "ServerRecord",
    "SystemStats",
    "EasyPanelCollector",
]
