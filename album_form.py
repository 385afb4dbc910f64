"""
Album draft state for the ranking form.

Everything here is pure: transitions take a FormState and return a new one,
so the Dash callbacks in app.py only have to (de)serialise the state to a
dcc.Store and render it.

- aggregate():      total / average / max over the rated songs of a draft
- begin_edit(), reset(), edit_*(), add_song_field(): draft transitions
- build_payload():  presence checks + song filtering before a create/update
"""
import math
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Dict, List, Optional, Tuple, Union

MAX_SONGS = 50          # add-song is ignored past this many rows
RATING_CEILING = 10     # per-song maximum used for the "max" total
DEFAULT_TYPE = "Album"

ALBUM_FIELDS = ("title", "artist", "type")
SONG_FIELDS = ("title", "rating", "note")

VALIDATION_MESSAGE = "Fill out album info and songs."


class AlbumRankError(Exception):
    """Base class for errors raised by the album ranking client."""


class DraftValidationError(AlbumRankError, ValueError):
    """Draft is missing a title, an artist, or a complete song."""

    def __init__(self, message: str = VALIDATION_MESSAGE):
        super().__init__(message)


# --------- Data ----------
@dataclass
class SongEntry:
    title: str = ""
    rating: Union[str, int, float, None] = ""
    note: str = ""

    @classmethod
    def from_dict(cls, d: Dict) -> "SongEntry":
        rating = d.get("rating")
        return cls(
            title=d.get("title") or "",
            rating="" if rating is None else rating,
            note=d.get("note") or "",
        )

    def to_dict(self) -> Dict:
        return {"title": self.title, "rating": self.rating, "note": self.note}


def _blank_songs() -> List[SongEntry]:
    return [SongEntry()]


@dataclass
class AlbumDraft:
    title: str = ""
    artist: str = ""
    type: str = DEFAULT_TYPE
    songs: List[SongEntry] = field(default_factory=_blank_songs)

    @classmethod
    def from_dict(cls, d: Dict) -> "AlbumDraft":
        return cls(
            title=d.get("title") or "",
            artist=d.get("artist") or "",
            type=d.get("type") if d.get("type") is not None else DEFAULT_TYPE,
            songs=[SongEntry.from_dict(s) for s in (d.get("songs") or [])],
        )

    def to_dict(self) -> Dict:
        return {
            "title": self.title,
            "artist": self.artist,
            "type": self.type,
            "songs": [s.to_dict() for s in self.songs],
        }


@dataclass(frozen=True)
class AggregateResult:
    total: float
    average: Optional[str]
    max: int

    def to_dict(self) -> Dict:
        return {"total": self.total, "average": self.average, "max": self.max}

    @classmethod
    def from_dict(cls, d: Optional[Dict]) -> Optional["AggregateResult"]:
        if d is None:
            return None
        return cls(total=d["total"], average=d["average"], max=d["max"])


@dataclass(frozen=True)
class Creating:
    def to_dict(self) -> Dict:
        return {"mode": "creating"}


@dataclass(frozen=True)
class Editing:
    album_id: Any

    def to_dict(self) -> Dict:
        return {"mode": "editing", "album_id": self.album_id}


Mode = Union[Creating, Editing]


def mode_from_dict(d: Optional[Dict]) -> Mode:
    if d and d.get("mode") == "editing":
        return Editing(d.get("album_id"))
    return Creating()


@dataclass(frozen=True)
class FormState:
    draft: AlbumDraft
    mode: Mode = Creating()
    aggregate: Optional[AggregateResult] = None

    @property
    def editing(self) -> bool:
        return isinstance(self.mode, Editing)

    def to_store(self) -> Dict:
        """Plain-JSON form for a dcc.Store."""
        return {
            "draft": self.draft.to_dict(),
            "mode": self.mode.to_dict(),
            "aggregate": self.aggregate.to_dict() if self.aggregate else None,
        }

    @classmethod
    def from_store(cls, data: Optional[Dict]) -> "FormState":
        if not data:
            return initial_state()
        return cls(
            draft=AlbumDraft.from_dict(data.get("draft") or {}),
            mode=mode_from_dict(data.get("mode")),
            aggregate=AggregateResult.from_dict(data.get("aggregate")),
        )


def initial_state() -> FormState:
    return FormState(draft=AlbumDraft())


# --------- Rating aggregation ----------
# Longest numeric prefix after leading whitespace, the way a browser's
# parseFloat reads form input ("7.5" -> 7.5, "9kg" -> 9, "abc" -> fail).
_NUMBER_PREFIX = re.compile(r"\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


def parse_rating(value) -> Optional[float]:
    """Return the rating as a float, or None when it does not parse."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        v = float(value)
        return None if math.isnan(v) else v
    m = _NUMBER_PREFIX.match(str(value))
    if not m:
        return None
    return float(m.group(1))


def format_average(value: float) -> str:
    """Two-decimal string, ties rounded away from zero like Number.toFixed(2)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if abs(value) >= 1e21:
        # toFixed switches to exponent notation here: "1e+30"
        return repr(value)
    with localcontext() as ctx:
        ctx.prec = 40
        return str(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def aggregate(songs: List[SongEntry]) -> AggregateResult:
    ratings = [r for r in (parse_rating(s.rating) for s in songs) if r is not None]
    total = sum(ratings, 0.0)
    avg = format_average(total / len(ratings)) if ratings else None
    return AggregateResult(total=total, average=avg, max=len(ratings) * RATING_CEILING)


# --------- Draft transitions ----------
def _with_songs(state: FormState, songs: List[SongEntry]) -> FormState:
    draft = replace(state.draft, songs=songs)
    return replace(state, draft=draft, aggregate=aggregate(songs))


def edit_album_field(state: FormState, name: str, value) -> FormState:
    if name not in ALBUM_FIELDS:
        raise ValueError(f"Unknown album field: {name}")
    value = "" if value is None else value
    return replace(state, draft=replace(state.draft, **{name: value}))


def edit_song_field(state: FormState, index: int, name: str, value) -> FormState:
    if name not in SONG_FIELDS:
        raise ValueError(f"Unknown song field: {name}")
    songs = [replace(s) for s in state.draft.songs]
    if not 0 <= index < len(songs):
        raise IndexError(f"Song index {index} out of range (have {len(songs)})")
    songs[index] = replace(songs[index], **{name: "" if value is None else value})
    return _with_songs(state, songs)


def add_song_field(state: FormState) -> FormState:
    if len(state.draft.songs) >= MAX_SONGS:
        return state
    return _with_songs(state, [replace(s) for s in state.draft.songs] + [SongEntry()])


def begin_edit(state: FormState, album: Dict) -> FormState:
    """Load a stored album into the form, replacing the whole draft."""
    draft = AlbumDraft(
        title=album.get("title") or "",
        artist=album.get("artist") or "",
        type=album.get("type") or "",
        songs=[SongEntry.from_dict(s) for s in (album.get("songs") or [])],
    )
    return FormState(draft=draft, mode=Editing(album.get("id")), aggregate=aggregate(draft.songs))


def reset(state: Optional[FormState] = None) -> FormState:
    return initial_state()


cancel_edit = reset


def complete_submission(state: FormState) -> FormState:
    return reset(state)


# --------- Submission gate ----------
def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    return True


def submittable_songs(songs: List[SongEntry]) -> List[SongEntry]:
    return [s for s in songs if _present(s.title) and _present(s.rating)]


def build_payload(draft: AlbumDraft) -> Dict:
    """Request body for create/update; raises DraftValidationError if incomplete."""
    songs = submittable_songs(draft.songs)
    if not draft.title or not draft.artist or not songs:
        raise DraftValidationError()
    return {
        "title": draft.title,
        "artist": draft.artist,
        "type": draft.type,
        "songs": [s.to_dict() for s in songs],
    }


def submit_target(mode: Mode) -> Tuple[str, Optional[Any]]:
    if isinstance(mode, Editing):
        return "PUT", mode.album_id
    return "POST", None
