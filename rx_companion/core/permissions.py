"""
Process-wide capability state (e.g. notification permission).

A capability is requested once during startup via `acquire`, queried freely
afterwards, and only re-requested when the user explicitly asks (`retry`).
"""
import logging
from typing import Callable, Dict, Literal

logger = logging.getLogger(__name__)

PermissionStatus = Literal["GRANTED", "DENIED", "UNDETERMINED"]

NOTIFICATIONS = "notifications"

Requester = Callable[[], bool]


class CapabilityRegistry:
    def __init__(self) -> None:
        self._requesters: Dict[str, Requester] = {}
        self._status: Dict[str, PermissionStatus] = {}

    def register(self, name: str, requester: Requester) -> None:
        self._requesters[name] = requester
        self._status.setdefault(name, "UNDETERMINED")

    def _request(self, name: str) -> PermissionStatus:
        requester = self._requesters.get(name)
        if requester is None:
            raise KeyError(f"No requester registered for capability {name!r}")
        try:
            granted = bool(requester())
        except Exception as e:
            logger.warning("Permission request for %s failed: %s", name, e)
            granted = False
        status: PermissionStatus = "GRANTED" if granted else "DENIED"
        self._status[name] = status
        logger.info("Permission %s -> %s", name, status)
        return status

    def acquire(self, name: str) -> PermissionStatus:
        current = self._status.get(name, "UNDETERMINED")
        if current != "UNDETERMINED":
            return current
        return self._request(name)

    def retry(self, name: str) -> PermissionStatus:
        return self._request(name)

    def status(self, name: str) -> PermissionStatus:
        return self._status.get(name, "UNDETERMINED")

    def is_granted(self, name: str) -> bool:
        return self.status(name) == "GRANTED"

    def snapshot(self) -> Dict[str, PermissionStatus]:
        return dict(self._status)

    def reset(self) -> None:
        self._requesters.clear()
        self._status.clear()


PERMISSIONS = CapabilityRegistry()
