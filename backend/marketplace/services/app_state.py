"""
应用状态 - 数据状态 (database health banner) 与轮询

AppState is created once by the app factory and handed to whoever needs it;
it replaces the ad hoc window.currentDataStatus / window.usingFallbackData
signals of the old frontend.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from marketplace.logger import get_logger
from .api_client import MarketplaceApiClient, MarketplaceApiError

logger = get_logger(__name__)

HTTP_ERROR_MESSAGE = 'Failed to connect to AWS database. All data requires AWS database connection.'
NETWORK_ERROR_MESSAGE = 'AWS Database connection required. Cannot proceed without database connection.'


@dataclass
class DataStatus:
    """数据源健康状态"""
    type: str = 'unknown'
    message: str = ''
    source: str = 'none'
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.type == 'error'

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DataStatus':
        if not isinstance(data, dict):
            return cls()
        extra = {k: v for k, v in data.items() if k not in ('type', 'message', 'source')}
        return cls(
            type=str(data.get('type') or 'unknown'),
            message=str(data.get('message') or ''),
            source=str(data.get('source') or 'none'),
            extra=extra,
        )

    @classmethod
    def error(cls, message: str) -> 'DataStatus':
        return cls(type='error', message=message, source='none')

    def to_dict(self) -> Dict[str, Any]:
        return {**self.extra, 'type': self.type, 'message': self.message, 'source': self.source}


class AppState:
    """Thread-safe holder for the shared data status."""

    def __init__(self):
        self._lock = threading.Lock()
        self._status = DataStatus()
        self._listeners: List[Callable[[DataStatus], None]] = []

    @property
    def data_status(self) -> DataStatus:
        with self._lock:
            return self._status

    @property
    def using_fallback_data(self) -> bool:
        return self.data_status.is_error

    def set_data_status(self, status: DataStatus) -> None:
        with self._lock:
            self._status = status
            listeners = list(self._listeners)
        for listener in listeners:
            listener(status)

    def subscribe(self, listener: Callable[[DataStatus], None]) -> Callable[[], None]:
        """Register a listener; returns the unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe


class DataStatusMonitor:
    """Poll GET /data-status every `interval` seconds until stopped."""

    def __init__(self, client: MarketplaceApiClient, state: AppState, interval: float = 30):
        self.client = client
        self.state = state
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def check(self) -> DataStatus:
        """一次检查，结果写入 AppState"""
        try:
            status = DataStatus.from_dict(self.client.get_data_status())
        except MarketplaceApiError as e:
            logger.warning("Data status check failed: %s", e)
            status = DataStatus.error(HTTP_ERROR_MESSAGE if e.status_code else NETWORK_ERROR_MESSAGE)
        self.state.set_data_status(status)
        return status

    def _run(self) -> None:
        while not self._stop.is_set():
            self.check()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='data-status-monitor', daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())
