import json

import pytest

import constants


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, url="http://jellyfin.local/Items"):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")
        self.reason = "OK" if 200 <= status_code < 300 else "Error"
        self.url = url

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Records every request and replays queued responses (or raises queued exceptions)."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


class FakeGateway:
    """
    Scripted stand-in for JellyfinAPIClient.

    images: item id -> list of image lists, consumed one per lookup (last one repeats).
    refetch: item id -> list of re-fetch results (dict, None, or exception), consumed in order.
    refresh_results: item id -> list of None (accepted) or exception, consumed in order.
    """

    def __init__(self, items=None, images=None, refetch=None, refresh_results=None, list_error=None):
        self.items = items or []
        self.images = images or {}
        self.refetch = refetch or {}
        self.refresh_results = refresh_results or {}
        self.list_error = list_error
        self.refresh_calls = []
        self.image_calls = []
        self.refetch_calls = []
        self.list_calls = []
        self.closed = False

    def get_recent_episodes(self, min_premiere_date):
        self.list_calls.append(min_premiere_date)
        if self.list_error is not None:
            raise self.list_error
        return list(self.items)

    def get_item_images(self, item_id):
        self.image_calls.append(item_id)
        queue = self.images.get(item_id, [[]])
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def refresh_item_metadata(self, item_id):
        self.refresh_calls.append(item_id)
        queue = self.refresh_results.get(item_id, [])
        result = queue.pop(0) if queue else None
        if isinstance(result, Exception):
            raise result

    def get_item_by_id(self, item_id):
        self.refetch_calls.append(item_id)
        queue = self.refetch.get(item_id, [])
        result = queue.pop(0) if queue else None
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


def make_item(item_id="ep1", overview="An overview.", name="Pilot", series="Show"):
    return {"Id": item_id, "Name": name, "SeriesName": series, "Overview": overview}


def primary(height):
    return {"ImageType": "Primary", "Height": height}


@pytest.fixture
def base_config():
    return {
        constants.CONFIG_OPTION_JELLYFIN_URL: "http://jellyfin.local",
        constants.CONFIG_OPTION_JELLYFIN_API_KEY: "secret-key",
        constants.CONFIG_OPTION_JELLYFIN_API_TIMEOUT: 30,
        constants.CONFIG_OPTION_DESIRED_IMAGE_HEIGHT: 360,
        constants.CONFIG_OPTION_LOOKBACK_DAYS: 3,
        constants.CONFIG_OPTION_REQUEST_INTERVAL: 2.0,
        constants.CONFIG_OPTION_PROPAGATION_DELAY: 5.0,
        constants.CONFIG_OPTION_LOG_LEVEL: "INFO",
        constants.CONFIG_OPTION_LOG_TO_FILE: False,
    }
