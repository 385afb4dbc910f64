"""
Client for the album ranking backend plus the list synchronizer used by the UI.

The backend owns ids, ranks and scores; this side only sends drafts and
reads back the sorted list.

    GET    /?sort=<key>&order=<asc|desc>   -> [Album, ...]
    POST   /                               -> Album
    PUT    /<id>                           -> Album
    DELETE /<id>
"""
import os
from typing import Dict, List, Optional

import requests
from dotenv import load_dotenv

from album_form import AlbumRankError, Editing, Mode

# --------- Config ----------
DEFAULT_API_URL = "https://albumbackende-1.onrender.com"
DEFAULT_TIMEOUT = 20.0

SORT_KEYS = ("average", "title", "total_score")
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT = {"key": "average", "order": "desc"}

SAVE_ERROR_MESSAGE = "Error saving album"


class AlbumApiError(AlbumRankError):
    """A create/update request did not come back with a 2xx status."""

    def __init__(self, message: str = SAVE_ERROR_MESSAGE, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def check_sort(key: str, order: str) -> None:
    if key not in SORT_KEYS:
        raise ValueError(f"Unsupported sort key: {key!r} (expected one of {', '.join(SORT_KEYS)})")
    if order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sort order: {order!r} (expected asc or desc)")


class AlbumApi:
    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        # ALBUM_API_URL / ALBUM_API_TIMEOUT may come from a .env file
        load_dotenv()
        if base_url is None:
            base_url = os.getenv("ALBUM_API_URL", DEFAULT_API_URL)
        if timeout is None:
            timeout = float(os.getenv("ALBUM_API_TIMEOUT", DEFAULT_TIMEOUT))
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _album_url(self, album_id) -> str:
        return f"{self.base_url}/{album_id}"

    def list_albums(self, sort: str = "average", order: str = "desc") -> List[Dict]:
        check_sort(sort, order)
        r = self.session.get(self.base_url, params={"sort": sort, "order": order}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def _save(self, method: str, url: str, payload: Dict) -> Dict:
        try:
            r = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise AlbumApiError() from e
        if not 200 <= r.status_code < 300:
            raise AlbumApiError(status_code=r.status_code)
        try:
            return r.json()
        except ValueError:
            # saved, but the body was not JSON
            return {}

    def create_album(self, payload: Dict) -> Dict:
        return self._save("POST", self.base_url, payload)

    def update_album(self, album_id, payload: Dict) -> Dict:
        return self._save("PUT", self._album_url(album_id), payload)

    def delete_album(self, album_id) -> None:
        self.session.delete(self._album_url(album_id), timeout=self.timeout)


class AlbumListSynchronizer:
    """Holds the ranked list for one sort setting and refreshes it after each mutation.

    Failure policy:
      - list fetch fails  -> keep the stale list, warn on the console
      - create/update fails -> AlbumApiError propagates, list untouched
      - delete fails      -> warn on the console, refresh anyway
    """

    def __init__(self, api: AlbumApi, sort_key: str = DEFAULT_SORT["key"],
                 sort_order: str = DEFAULT_SORT["order"], albums: Optional[List[Dict]] = None):
        check_sort(sort_key, sort_order)
        self.api = api
        self.sort_key = sort_key
        self.sort_order = sort_order
        self.albums: List[Dict] = list(albums or [])

    def set_sort(self, key: str, order: str) -> List[Dict]:
        check_sort(key, order)
        self.sort_key, self.sort_order = key, order
        return self.refresh()

    def refresh(self) -> List[Dict]:
        try:
            albums = self.api.list_albums(self.sort_key, self.sort_order)
        except (requests.RequestException, ValueError) as e:
            print(f"[warn] Album list fetch failed, keeping {len(self.albums)} cached album(s): {e}")
            return self.albums
        if not isinstance(albums, list):
            print(f"[warn] Album list response was not a list ({type(albums).__name__}); ignored")
            return self.albums
        self.albums = albums
        print(f"[info] Fetched {len(albums)} album(s) sorted by {self.sort_key} {self.sort_order}")
        return self.albums

    def save(self, payload: Dict, mode: Mode) -> Dict:
        if isinstance(mode, Editing):
            saved = self.api.update_album(mode.album_id, payload)
            print(f"[info] Updated album {mode.album_id}")
        else:
            saved = self.api.create_album(payload)
            print(f"[info] Created album {saved.get('id', '?') if isinstance(saved, dict) else '?'}")
        self.refresh()
        return saved

    def delete(self, album_id) -> List[Dict]:
        try:
            self.api.delete_album(album_id)
            print(f"[info] Deleted album {album_id}")
        except requests.RequestException as e:
            print(f"[warn] Delete of album {album_id} failed: {e}")
        return self.refresh()

    def find(self, album_id) -> Optional[Dict]:
        return next((a for a in self.albums if a.get("id") == album_id), None)
