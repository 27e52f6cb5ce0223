"""Base collector ABC and shared data types."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

SECONDS_PER_DAY = 24 * 60 * 60


class MalformedResponse(ValueError):
    """Raised while decoding a provider payload that does not match its schema."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    reason: str
    status: int | None = None
    ok: bool = field(default=False, init=False)


Result = Union[Ok[T], Err]


@dataclass(frozen=True)
class ServerRecord:
    """One registered EasyPanel server. Never mutated; replaced on change."""

    id: str
    address: str
    credential: str
    username: str | None = None


@dataclass(frozen=True)
class SystemStats:
    uptime_seconds: float
    mem_used_mb: float
    mem_total_mb: float
    mem_used_percent: float
    disk_used_gb: float
    disk_total_gb: float
    disk_used_percent: float
    cpu_used_percent: float

    @property
    def uptime_days(self) -> float:
        return math.floor(self.uptime_seconds / SECONDS_PER_DAY * 10 + 0.5) / 10


@dataclass(frozen=True)
class ContainerStats:
    id: str
    project_name: str
    service_name: str
    container_name: str
    cpu_percent: float
    memory_usage_bytes: float
    memory_percent: float
    network_in_bytes: float
    network_out_bytes: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectName": self.project_name,
            "serviceName": self.service_name,
            "containerName": self.container_name,
            "cpu": {"percent": self.cpu_percent},
            "memory": {"usageBytes": self.memory_usage_bytes, "percent": self.memory_percent},
            "network": {"inBytes": self.network_in_bytes, "outBytes": self.network_out_bytes},
        }


ONLINE = "online"
ERROR = "error"
# Reserved by the data model; nothing in this package produces it.
OFFLINE = "offline"


@dataclass(frozen=True)
class ServerOverview:
    """Display-ready status of one server for one refresh cycle.

    The numeric fields are populated if and only if ``status == "online"``.
    Build instances through :meth:`online` and :meth:`error` so that
    invariant cannot be broken.
    """

    hostname: str
    token_key: str
    status: str
    uptime_days: float | None = None
    ram_percent: float | None = None
    ram_used_mb: float | None = None
    ram_total_mb: float | None = None
    disk_percent: float | None = None
    disk_used_gb: float | None = None
    disk_total_gb: float | None = None
    cpu_percent: float | None = None
    detail: str | None = None

    @classmethod
    def online(cls, record: ServerRecord, stats: SystemStats) -> ServerOverview:
        return cls(
            hostname=record.address,
            token_key=record.id,
            status=ONLINE,
            uptime_days=stats.uptime_days,
            ram_percent=stats.mem_used_percent,
            ram_used_mb=stats.mem_used_mb,
            ram_total_mb=stats.mem_total_mb,
            disk_percent=stats.disk_used_percent,
            disk_used_gb=stats.disk_used_gb,
            disk_total_gb=stats.disk_total_gb,
            cpu_percent=stats.cpu_used_percent,
        )

    @classmethod
    def error(cls, record: ServerRecord, detail: str | None = None) -> ServerOverview:
        return cls(hostname=record.address, token_key=record.id, status=ERROR, detail=detail)

    @property
    def is_online(self) -> bool:
        return self.status == ONLINE

    def to_dict(self) -> dict[str, Any]:
        """JSON shape for the presentation layer. Absent fields are omitted, never zeroed."""
        data: dict[str, Any] = {
            "hostname": self.hostname,
            "tokenKey": self.token_key,
            "status": self.status,
        }
        if self.is_online:
            data.update(
                uptimeDays=self.uptime_days,
                ramPercent=self.ram_percent,
                ramUsedMb=self.ram_used_mb,
                ramTotalMb=self.ram_total_mb,
                diskPercent=self.disk_percent,
                diskUsedGb=self.disk_used_gb,
                diskTotalGb=self.disk_total_gb,
                cpuPercent=self.cpu_percent,
            )
        elif self.detail:
            data["detail"] = self.detail
        return data


class BaseCollector(ABC):
    """Abstract base for remote metrics providers."""

    def __init__(self, name: str, timeout: float = 10.0) -> None:
        self.name = name
        self.timeout = timeout

    @abstractmethod
    async def system_stats(self, address: str, credential: str) -> Result[SystemStats]:
        """Fetch aggregate host stats. Must not raise; return Err instead."""
        ...

    @abstractmethod
    async def containers(self, address: str, credential: str) -> Result[list[ContainerStats]]:
        """Fetch per-container stats. Must not raise; return Err instead."""
        ...

    async def login(self, address: str, email: str, password: str) -> Result[str]:
        return Err(f"{self.name} does not support login")
