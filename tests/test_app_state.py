"""Data status state + monitor tests."""

import threading
from unittest.mock import MagicMock

from marketplace.services.api_client import MarketplaceApiError
from marketplace.services.app_state import (
    HTTP_ERROR_MESSAGE,
    NETWORK_ERROR_MESSAGE,
    AppState,
    DataStatus,
    DataStatusMonitor,
)


def test_check_success_updates_state():
    client = MagicMock()
    client.get_data_status.return_value = {"type": "success", "message": "OK", "source": "database", "count": 42}
    state = AppState()

    status = DataStatusMonitor(client, state).check()

    assert status.type == "success"
    assert state.data_status.extra == {"count": 42}
    assert state.using_fallback_data is False


def test_check_http_and_network_failures():
    client = MagicMock()
    state = AppState()
    monitor = DataStatusMonitor(client, state)

    client.get_data_status.side_effect = MarketplaceApiError("HTTP error! Status: 500", status_code=500)
    assert monitor.check().message == HTTP_ERROR_MESSAGE

    client.get_data_status.side_effect = MarketplaceApiError("refused")
    assert monitor.check().message == NETWORK_ERROR_MESSAGE
    assert state.using_fallback_data is True


def test_unsubscribe_stops_notifications():
    state = AppState()
    seen = []
    unsubscribe = state.subscribe(seen.append)
    state.set_data_status(DataStatus.error("down"))
    unsubscribe()
    state.set_data_status(DataStatus(type="success"))
    assert [s.type for s in seen] == ["error"]


def test_monitor_polls_until_stopped():
    client = MagicMock()
    checked = threading.Event()

    def fake_status():
        checked.set()
        return {"type": "success"}

    client.get_data_status.side_effect = fake_status
    monitor = DataStatusMonitor(client, AppState(), interval=0.01)

    monitor.start()
    assert checked.wait(2)
    assert monitor.running is True
    monitor.stop(timeout=2)
    assert monitor.running is False


def test_data_status_round_trip_keeps_extra_fields():
    raw = {"type": "warning", "message": "Partial", "source": "cache", "lastSync": "2024-05-01"}
    assert DataStatus.from_dict(raw).to_dict() == raw
    assert DataStatus.from_dict(None).type == "unknown"
