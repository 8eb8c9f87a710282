# -*- coding: utf-8 -*-

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from core.clock import parse_iso

KINDS = ("task", "project")


class ClientError(Exception):
    """A tracking request failed; status_code is None for transport errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class RemoteTimer:
    """Server-authoritative timer fields of a task or project."""

    kind: str
    id: str
    label: str
    is_tracking: bool
    tracked_start_time: Optional[datetime]
    total_tracked_time: int
    raw: Dict[str, Any]

    @classmethod
    def from_json(cls, kind: str, data: Dict[str, Any]) -> "RemoteTimer":
        is_tracking = bool(data.get("isTracking"))
        return cls(
            kind=kind,
            id=data["id"],
            label=data.get("title") or data.get("name") or data["id"],
            is_tracking=is_tracking,
            tracked_start_time=parse_iso(data.get("trackedStartTime")) if is_tracking else None,
            total_tracked_time=int(data.get("totalTrackedTime") or 0),
            raw=data,
        )


class TrackingClient:
    """Thin client for the time-tracking endpoints."""

    def __init__(self, base_url: str = "http://127.0.0.1:8000", timeout: float = 10.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _path(self, kind: str, entity_id: str) -> str:
        if kind not in KINDS:
            raise ValueError(f"Unknown timer kind: {kind}")
        return f"{self.base_url}/{kind}s/{entity_id}"

    def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ClientError(f"Request failed: {e}") from e

        if not response.ok:
            message = f"HTTP {response.status_code}"
            try:
                message = response.json().get("message", message)
            except ValueError:
                pass
            raise ClientError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ClientError(f"Invalid JSON from {url}") from e

    def _timer(self, kind: str, data: Any) -> RemoteTimer:
        try:
            return RemoteTimer.from_json(kind, data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ClientError(f"Malformed {kind} in response: {e!r}") from e

    def fetch(self, kind: str, entity_id: str) -> RemoteTimer:
        data = self._send("GET", self._path(kind, entity_id))
        return self._timer(kind, data)

    def start(self, kind: str, entity_id: str) -> RemoteTimer:
        data = self._send(
            "POST",
            self._path(kind, entity_id) + "/time-tracking",
            json={"action": "start"},
        )
        return self._timer(kind, data)

    def stop(self, kind: str, entity_id: str, description: Optional[str] = None) -> RemoteTimer:
        payload: Dict[str, Any] = {"action": "stop"}
        if description and kind == "task":
            payload["description"] = description
        data = self._send("POST", self._path(kind, entity_id) + "/time-tracking", json=payload)
        return self._timer(kind, data)
