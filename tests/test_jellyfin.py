import pytest
import requests

import handler.jellyfin as jellyfin
from conftest import FakeResponse, FakeSession


def make_client(responses):
    session = FakeSession(responses)
    client = jellyfin.JellyfinAPIClient("http://jellyfin.local/", "secret-key", timeout=7, session=session)
    return client, session


def test_requests_carry_mediabrowser_token_and_timeout():
    client, session = make_client([FakeResponse(200, {"Items": []})])
    client.get_items({"ids": "a"})

    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://jellyfin.local/Items"
    assert call["headers"]["Authorization"] == 'MediaBrowser Token="secret-key"'
    assert call["timeout"] == 7


def test_get_recent_episodes_query_and_normalization():
    payload = {"Items": [
        {"Id": "ep1", "Name": "Pilot", "SeriesName": "Show", "Overview": "Text"},
        {"Id": "ep2", "Name": "Second", "SeriesName": "Show", "Overview": None},
    ]}
    client, session = make_client([FakeResponse(200, payload)])

    items = client.get_recent_episodes("2026-10-15T00:00:00Z")

    assert session.calls[0]["params"] == {
        "includeItemTypes": "Episode",
        "recursive": "true",
        "fields": "Overview",
        "minPremiereDate": "2026-10-15T00:00:00Z",
    }
    assert items == [
        {"Id": "ep1", "Name": "Pilot", "SeriesName": "Show", "Overview": "Text"},
        {"Id": "ep2", "Name": "Second", "SeriesName": "Show", "Overview": ""},
    ]


def test_get_items_non_success_raises_server_error():
    client, _ = make_client([FakeResponse(401, {"error": "unauthorized"})])
    with pytest.raises(jellyfin.ServerError) as excinfo:
        client.get_items({})
    assert excinfo.value.status == 401


def test_get_items_transport_failure_raises_transport_error():
    client, _ = make_client([requests.exceptions.ConnectionError("refused")])
    with pytest.raises(jellyfin.TransportError):
        client.get_items({})


def test_get_items_malformed_body_raises_decode_error():
    client, _ = make_client([FakeResponse(200, text="<html>not json</html>")])
    with pytest.raises(jellyfin.DecodeError):
        client.get_items({})


def test_get_items_missing_items_key_raises_decode_error():
    client, _ = make_client([FakeResponse(200, {"TotalRecordCount": 0})])
    with pytest.raises(jellyfin.DecodeError):
        client.get_items({})


def test_get_item_by_id_uses_single_item_query():
    payload = {"Items": [{"Id": "ep1", "Name": "Pilot", "SeriesName": "Show", "Overview": "New"}]}
    client, session = make_client([FakeResponse(200, payload)])

    item = client.get_item_by_id("ep1")

    assert session.calls[0]["params"] == {"ids": "ep1", "fields": "Overview"}
    assert item["Overview"] == "New"


def test_get_item_by_id_returns_none_when_item_is_gone():
    client, _ = make_client([FakeResponse(200, {"Items": []})])
    assert client.get_item_by_id("ep1") is None


def test_get_item_images_parses_descriptors():
    payload = [
        {"ImageType": "Primary", "Height": 720, "Width": 1280},
        {"ImageType": "Backdrop", "Height": None},
    ]
    client, session = make_client([FakeResponse(200, payload)])

    images = client.get_item_images("ep1")

    assert session.calls[0]["url"] == "http://jellyfin.local/Items/ep1/Images"
    assert images == [
        {"ImageType": "Primary", "Height": 720},
        {"ImageType": "Backdrop", "Height": 0},
    ]


@pytest.mark.parametrize("response", [
    FakeResponse(404, {"error": "not found"}),
    FakeResponse(200, text="garbage"),
    FakeResponse(200, {"unexpected": "object"}),
    requests.exceptions.Timeout("slow"),
])
def test_get_item_images_failures_mean_no_artwork(response):
    client, _ = make_client([response])
    assert client.get_item_images("ep1") == []


def test_refresh_item_metadata_sends_full_refresh_flags():
    client, session = make_client([FakeResponse(204, text="")])
    client.refresh_item_metadata("ep1")

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://jellyfin.local/Items/ep1/Refresh"
    assert call["params"] == {
        "metadataRefreshMode": "FullRefresh",
        "imageRefreshMode": "FullRefresh",
        "replaceAllMetadata": "true",
        "replaceAllImages": "true",
    }


def test_refresh_item_metadata_rejection_raises_refresh_error():
    client, _ = make_client([FakeResponse(500, text="boom")])
    with pytest.raises(jellyfin.RefreshError) as excinfo:
        client.refresh_item_metadata("ep1")
    assert excinfo.value.status == 500


def test_refresh_item_metadata_transport_failure():
    client, _ = make_client([requests.exceptions.ConnectionError("down")])
    with pytest.raises(jellyfin.TransportError):
        client.refresh_item_metadata("ep1")


def test_retry_session_only_retries_idempotent_reads():
    session = jellyfin.requests_retry_session()
    retry = session.get_adapter("http://jellyfin.local").max_retries
    assert isinstance(retry, jellyfin.LoggedRetry)
    assert "POST" not in retry.allowed_methods
    assert "GET" in retry.allowed_methods


def test_close_closes_session():
    client, session = make_client([])
    client.close()
    assert session.closed


@pytest.mark.parametrize("field, value", [
    ("Overview", 5),
    ("Overview", ["a", "b"]),
    ("Name", {"text": "Pilot"}),
    ("SeriesName", 3.5),
])
def test_get_items_non_string_text_field_raises_decode_error(field, value):
    raw_item = {"Id": "ep1", "Name": "Pilot", "SeriesName": "Show", "Overview": "Text"}
    raw_item[field] = value
    client, _ = make_client([FakeResponse(200, {"Items": [raw_item]})])
    with pytest.raises(jellyfin.DecodeError):
        client.get_items({})


def test_get_item_by_id_non_string_overview_raises_decode_error():
    payload = {"Items": [{"Id": "ep1", "Name": "Pilot", "SeriesName": "Show", "Overview": 5}]}
    client, _ = make_client([FakeResponse(200, payload)])
    with pytest.raises(jellyfin.DecodeError):
        client.get_item_by_id("ep1")
