"""Tests for the album API client and the list synchronizer."""

from __future__ import annotations

import pytest
import requests

from album_api import AlbumApi, AlbumApiError, AlbumListSynchronizer
from album_form import Creating, Editing

BASE = "https://albums.example.test"


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None) -> None:
        self.status_code = status_code
        self._body = body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class FakeSession:
    """Records every call and answers from a queue of responses (or exceptions)."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[tuple] = []

    def _next(self):
        item = self.responses.pop(0) if self.responses else FakeResponse(200, [])
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, params=None, timeout=None):
        self.calls.append(("GET", url, params))
        return self._next()

    def request(self, method, url, json=None, timeout=None):
        self.calls.append((method, url, json))
        return self._next()

    def delete(self, url, timeout=None):
        self.calls.append(("DELETE", url, None))
        return self._next()


PAYLOAD = {"title": "T", "artist": "A", "type": "Album", "songs": [{"title": "s", "rating": "5", "note": ""}]}


def make_api(*responses) -> tuple[AlbumApi, FakeSession]:
    session = FakeSession(*responses)
    return AlbumApi(BASE + "/", session=session, timeout=1), session


def test_list_albums_sends_sort_params() -> None:
    api, session = make_api(FakeResponse(200, [{"id": 1}]))
    assert api.list_albums("total_score", "asc") == [{"id": 1}]
    assert session.calls == [("GET", BASE, {"sort": "total_score", "order": "asc"})]


@pytest.mark.parametrize("sort, order", [("rank", "desc"), ("average", "up")])
def test_list_albums_rejects_unknown_sort(sort, order) -> None:
    api, session = make_api()
    with pytest.raises(ValueError):
        api.list_albums(sort, order)
    assert session.calls == []


def test_create_and_update_urls() -> None:
    api, session = make_api(FakeResponse(201, {"id": 7}), FakeResponse(200, {"id": 7}))
    assert api.create_album(PAYLOAD) == {"id": 7}
    assert api.update_album(7, PAYLOAD) == {"id": 7}
    assert session.calls == [("POST", BASE, PAYLOAD), ("PUT", f"{BASE}/7", PAYLOAD)]


@pytest.mark.parametrize("status", [302, 400, 500])
def test_save_non_2xx_raises(status) -> None:
    api, _ = make_api(FakeResponse(status, {"error": "nope"}))
    with pytest.raises(AlbumApiError, match="Error saving album") as exc_info:
        api.create_album(PAYLOAD)
    assert exc_info.value.status_code == status


def test_save_transport_error_raises_api_error() -> None:
    api, _ = make_api(requests.ConnectionError("down"))
    with pytest.raises(AlbumApiError):
        api.update_album(3, PAYLOAD)


def test_refresh_failure_keeps_stale_list(capsys) -> None:
    api, _ = make_api(requests.ConnectionError("down"))
    stale = [{"id": 1, "title": "Old"}]
    sync = AlbumListSynchronizer(api, albums=stale)
    assert sync.refresh() == stale
    assert "[warn]" in capsys.readouterr().out


def test_refresh_ignores_non_list_body() -> None:
    api, _ = make_api(FakeResponse(200, {"detail": "oops"}))
    sync = AlbumListSynchronizer(api, albums=[{"id": 2}])
    assert sync.refresh() == [{"id": 2}]


def test_save_creates_then_refetches() -> None:
    fresh = [{"id": 9, "rank": 1}]
    api, session = make_api(FakeResponse(201, {"id": 9}), FakeResponse(200, fresh))
    sync = AlbumListSynchronizer(api, "title", "asc")
    assert sync.save(PAYLOAD, Creating()) == {"id": 9}
    assert sync.albums == fresh
    assert [c[0] for c in session.calls] == ["POST", "GET"]
    assert session.calls[1][2] == {"sort": "title", "order": "asc"}


def test_save_in_edit_mode_updates() -> None:
    api, session = make_api(FakeResponse(200, {"id": 4}), FakeResponse(200, []))
    AlbumListSynchronizer(api).save(PAYLOAD, Editing(4))
    assert session.calls[0][:2] == ("PUT", f"{BASE}/4")


def test_failed_save_does_not_refetch() -> None:
    api, session = make_api(FakeResponse(500))
    sync = AlbumListSynchronizer(api, albums=[{"id": 1}])
    with pytest.raises(AlbumApiError):
        sync.save(PAYLOAD, Creating())
    assert len(session.calls) == 1
    assert sync.albums == [{"id": 1}]


def test_delete_failure_is_swallowed_and_list_refreshed() -> None:
    api, session = make_api(requests.ConnectionError("down"), FakeResponse(200, []))
    sync = AlbumListSynchronizer(api, albums=[{"id": 5}])
    assert sync.delete(5) == []
    assert [c[0] for c in session.calls] == ["DELETE", "GET"]


def test_delete_ignores_response_status() -> None:
    api, _ = make_api(FakeResponse(404), FakeResponse(200, [{"id": 1}]))
    sync = AlbumListSynchronizer(api)
    assert sync.delete(99) == [{"id": 1}]


def test_synchronizer_set_sort_validates() -> None:
    api, session = make_api(FakeResponse(200, []))
    sync = AlbumListSynchronizer(api)
    with pytest.raises(ValueError):
        sync.set_sort("artist", "desc")
    sync.set_sort("average", "asc")
    assert session.calls == [("GET", BASE, {"sort": "average", "order": "asc"})]


def test_client_reads_env_when_built(monkeypatch) -> None:
    monkeypatch.setenv("ALBUM_API_URL", "https://env.example.test/")
    monkeypatch.setenv("ALBUM_API_TIMEOUT", "5")
    api = AlbumApi(session=FakeSession())
    assert api.base_url == "https://env.example.test"
    assert api.timeout == 5.0


def test_explicit_arguments_beat_env(monkeypatch) -> None:
    monkeypatch.setenv("ALBUM_API_URL", "https://env.example.test")
    api = AlbumApi(BASE, session=FakeSession(), timeout=2)
    assert (api.base_url, api.timeout) == (BASE, 2)
