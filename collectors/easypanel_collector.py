"""Collector for EasyPanel servers exposing the tRPC monitor API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .base import (
    BaseCollector,
    ContainerStats,
    Err,
    MalformedResponse,
    Ok,
    Result,
    SystemStats,
)

logger = logging.getLogger(__name__)

USER_AGENT = "EasyPanel-Monitor/1.0"

SYSTEM_STATS_PATH = "/api/trpc/monitor.getSystemStats"
MONITOR_TABLE_PATH = "/api/trpc/monitor.getMonitorTableData"
LOGIN_PATH = "/api/trpc/auth.login"

_STATUS_DETAILS = {
    401: "Invalid or expired token",
    404: "EasyPanel API endpoint not found. Please check your hostname.",
}


def _unwrap(payload: Any) -> Any:
    """Return ``result.data.json`` from a tRPC response body."""
    try:
        return payload["result"]["data"]["json"]
    except (KeyError, TypeError) as e:
        raise MalformedResponse(f"missing result.data.json ({e})") from e


def _number(obj: Any, *path: str) -> float:
    """Read a numeric field, accepting string-encoded numbers."""
    value = obj
    for key in path:
        if not isinstance(value, dict) or key not in value:
            raise MalformedResponse(f"missing field {'.'.join(path)}")
        value = value[key]
    if isinstance(value, bool):
        raise MalformedResponse(f"field {'.'.join(path)} is not numeric")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    raise MalformedResponse(f"field {'.'.join(path)} is not numeric: {value!r}")


def _text(obj: Any, key: str) -> str:
    value = obj.get(key) if isinstance(obj, dict) else None
    if not isinstance(value, str):
        raise MalformedResponse(f"field {key} is not a string")
    return value


def decode_system_stats(payload: Any) -> SystemStats:
    data = _unwrap(payload)
    return SystemStats(
        uptime_seconds=_number(data, "uptime"),
        mem_used_mb=_number(data, "memInfo", "usedMemMb"),
        mem_total_mb=_number(data, "memInfo", "totalMemMb"),
        mem_used_percent=_number(data, "memInfo", "usedMemPercentage"),
        disk_used_gb=_number(data, "diskInfo", "usedGb"),
        disk_total_gb=_number(data, "diskInfo", "totalGb"),
        disk_used_percent=_number(data, "diskInfo", "usedPercentage"),
        cpu_used_percent=_number(data, "cpuInfo", "usedPercentage"),
    )


def decode_containers(payload: Any) -> list[ContainerStats]:
    rows = _unwrap(payload)
    if not isinstance(rows, list):
        raise MalformedResponse("monitor table is not a list")

    containers: list[ContainerStats] = []
    for row in rows:
        containers.append(
            ContainerStats(
                id=_text(row, "id"),
                project_name=_text(row, "projectName"),
                service_name=_text(row, "serviceName"),
                container_name=_text(row, "containerName"),
                cpu_percent=_number(row, "stats", "cpu", "percent"),
                memory_usage_bytes=_number(row, "stats", "memory", "usage"),
                memory_percent=_number(row, "stats", "memory", "percent"),
                network_in_bytes=_number(row, "stats", "network", "in"),
                network_out_bytes=_number(row, "stats", "network", "out"),
            )
        )
    return containers


def decode_login_token(payload: Any) -> str:
    token = _unwrap(payload)
    if isinstance(token, dict):
        token = token.get("token")
    if not isinstance(token, str) or not token:
        raise MalformedResponse("login response carries no token")
    return token


class EasyPanelCollector(BaseCollector):
    def __init__(
        self,
        name: str = "easypanel",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, timeout)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            headers={"User-Agent": USER_AGENT, "Content-Type": "application/json"},
        )

    async def _call(self, method: str, url: str, decoder, **kwargs) -> Result:
        try:
            async with self._client() as client:
                resp = await asyncio.wait_for(
                    client.request(method, url, **kwargs), timeout=self.timeout
                )
            if resp.is_error:
                detail = _STATUS_DETAILS.get(resp.status_code, "Server error")
                logger.warning("%s %s failed: %s %s", method, url, resp.status_code, detail)
                return Err(detail, status=resp.status_code)
            return Ok(decoder(resp.json()))

        except httpx.ConnectError:
            logger.warning("%s %s failed: connection refused", method, url)
            return Err("Connection refused")
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning("%s %s timed out after %.1fs", method, url, self.timeout)
            return Err(f"Timed out after {self.timeout:g}s")
        except MalformedResponse as e:
            logger.warning("%s %s returned a malformed payload: %s", method, url, e)
            return Err(f"Malformed response: {e}")
        except ValueError as e:
            # resp.json() on a non-JSON body
            logger.warning("%s %s returned invalid JSON", method, url)
            return Err(f"Invalid JSON response from server: {e}")
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return Err(str(e) or e.__class__.__name__)

    async def system_stats(self, address: str, credential: str) -> Result[SystemStats]:
        return await self._call(
            "GET",
            f"{address}{SYSTEM_STATS_PATH}",
            decode_system_stats,
            headers={"Authorization": f"Bearer {credential}"},
        )

    async def containers(self, address: str, credential: str) -> Result[list[ContainerStats]]:
        return await self._call(
            "GET",
            f"{address}{MONITOR_TABLE_PATH}",
            decode_containers,
            headers={"Authorization": f"Bearer {credential}"},
        )

    async def login(self, address: str, email: str, password: str) -> Result[str]:
        """Exchange EasyPanel credentials for an API token."""
        result = await self._call(
            "POST",
            f"{address}{LOGIN_PATH}",
            decode_login_token,
            json={"json": {"email": email, "password": password, "rememberMe": False, "code": "string"}},
        )
        if not result.ok and result.status == 401:
            return Err("Invalid credentials", status=401)
        return result
