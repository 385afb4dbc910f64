#!/usr/bin/env python3
import argparse
from typing import Dict, List, Optional, Tuple

import dash
from dash import Dash, html, dcc, Input, Output, State, ALL, no_update
import dash_bootstrap_components as dbc

from album_api import (
    AlbumApi, AlbumApiError, AlbumListSynchronizer,
    DEFAULT_SORT, SAVE_ERROR_MESSAGE,
)
from album_form import (
    DraftValidationError, FormState, SongEntry,
    add_song_field, begin_edit, build_payload, cancel_edit, complete_submission,
    edit_album_field, edit_song_field, initial_state,
)
from rating_svg import rating_strip

# --------- Config ----------
SORT_KEY_OPTIONS = [
    {"label": "Average", "value": "average"},
    {"label": "Title", "value": "title"},
    {"label": "Score", "value": "total_score"},
]
SORT_ORDER_OPTIONS = [
    {"label": "↓ Desc", "value": "desc"},
    {"label": "↑ Asc", "value": "asc"},
]

API: Optional[AlbumApi] = None  # built on first use, or by main()

# --------- Utilities ----------
def get_api() -> AlbumApi:
    global API
    if API is None:
        API = AlbumApi()
    return API

def format_number(v) -> str:
    """Render a score the way the list shows it: 16.0 -> '16', 7.5 -> '7.5'."""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)

def notice(message:str, color:str="danger") -> dbc.Alert:
    return dbc.Alert(message, color=color, dismissable=True, className="mt-2")

# --------- Form rendering ----------
def render_song_rows(songs:List[SongEntry]) -> List:
    rows = []
    for idx, song in enumerate(songs):
        rows.append(html.Div([
            dbc.Input(id={"type":"song-title","ix":idx}, value=song.title,
                      placeholder="Song Title"),
            dbc.Input(id={"type":"song-rating","ix":idx}, value=song.rating, type="number",
                      min=0, max=10, step="any", placeholder="Rating",
                      style={"maxWidth":"110px"}),
            dbc.Input(id={"type":"song-note","ix":idx}, value=song.note,
                      placeholder="Note"),
        ], className="song-row d-flex gap-2 mb-2"))
    return rows

def render_aggregate(state:FormState):
    agg = state.aggregate
    if agg is None:
        return None
    return html.P([
        " Avg: ",
        html.Strong(f"{agg.average if agg.average is not None else '—'}/10"),
        f" ({format_number(agg.total)}/{agg.max})",
    ], className="mb-2")

def form_chrome(state:FormState) -> Tuple:
    """(aggregate line, submit label, cancel button style) for a form state."""
    label = "Update Album" if state.editing else "Add Album"
    cancel_style = {} if state.editing else {"display":"none"}
    return render_aggregate(state), label, cancel_style

def draft_outputs(state:FormState) -> Tuple:
    """Store data, song rows and album input values for a freshly loaded/reset draft."""
    d = state.draft
    return state.to_store(), render_song_rows(d.songs), d.title, d.artist, d.type

def album_form():
    state = initial_state()
    return dbc.Card(dbc.CardBody([
        dbc.Row([
            dbc.Col(dbc.Input(id="album-title", value=state.draft.title, placeholder="Album Title"), md=5),
            dbc.Col(dbc.Input(id="album-artist", value=state.draft.artist, placeholder="Artist"), md=4),
            dbc.Col(dbc.Input(id="album-type", value=state.draft.type, placeholder="Album Type"), md=3),
        ], className="gy-2"),
        html.H3("Songs", className="mt-3"),
        html.Div(id="songs-container", children=render_song_rows(state.draft.songs)),
        dbc.Button("+ Add Song", id="add-song-btn", color="secondary", size="sm", className="mb-3"),
        html.Div(id="aggregate-display", children=render_aggregate(state)),
        html.Div([
            dbc.Button("Add Album", id="submit-btn", color="primary", className="me-2"),
            dbc.Button("Cancel Edit", id="cancel-edit-btn", color="secondary", outline=True,
                       style={"display":"none"}),
        ]),
        html.Div(id="form-notice"),
        dcc.Store(id="form-state", data=state.to_store()),
    ]), className="mb-4")

# --------- List rendering ----------
def song_line(song:Dict) -> str:
    line = f"{song.get('title', '')} — {format_number(song.get('rating', ''))}/10"
    if song.get("note"):
        line += f" ({song['note']})"
    return line

def render_album_card(album:Dict):
    aid = album.get("id")
    songs = album.get("songs") or []
    return dbc.Card(dbc.CardBody([
        html.H3(f"{album.get('rank')}. {album.get('title')} by {album.get('artist')}"),
        html.P(f"Type: {album.get('type')}", className="muted mb-1"),
        html.P(f"Avg: {album.get('average')}/10 "
               f"({format_number(album.get('total_score'))}/{format_number(album.get('max_score'))})"),
        rating_strip(songs),
        html.Ul([html.Li(song_line(s)) for s in songs], className="mt-2"),
        html.Div([
            dbc.Button(" Edit", id={"type":"edit-album","album_id":aid}, color="secondary",
                       size="sm", className="me-2"),
            dbc.Button(" Delete", id={"type":"delete-album","album_id":aid}, color="danger",
                       outline=True, size="sm"),
        ]),
    ]), className="album-card mb-3")

def render_album_list(albums:Optional[List[Dict]]):
    if not albums:
        return html.Div("No albums yet.", className="muted")
    return [render_album_card(a) for a in albums]

def delete_modal():
    return dbc.Modal([
        dbc.ModalHeader(dbc.ModalTitle("Confirm Deletion")),
        dbc.ModalBody(html.P("Delete this album?", className="fw-bold")),
        dbc.ModalFooter([
            dbc.Button("Cancel", id="delete-cancel-btn", className="me-2"),
            dbc.Button("Delete Album", id="delete-confirm-btn", color="danger"),
        ]),
    ], id="delete-modal", is_open=False, centered=True, backdrop="static")

# --------- Layout Root ---------
app = Dash(__name__, external_stylesheets=[dbc.themes.DARKLY], suppress_callback_exceptions=True)
server = app.server

app.layout = dbc.Container([
    html.H1(" Album Ranking App", className="my-3"),
    album_form(),
    html.H2(" Ranked Albums"),
    html.Div([
        html.Label("Sort by: ", className="me-2"),
        dbc.Select(id="sort-key", options=SORT_KEY_OPTIONS, value=DEFAULT_SORT["key"],
                   style={"width":"160px"}, className="me-2"),
        dbc.Select(id="sort-order", options=SORT_ORDER_OPTIONS, value=DEFAULT_SORT["order"],
                   style={"width":"120px"}),
    ], className="d-flex align-items-center mb-3"),
    html.Div(id="albums-list"),
    dcc.Store(id="albums-store", data=[]),
    dcc.Store(id="pending-delete"),
    delete_modal(),
], fluid=True)

# --------- Callback helpers ----------
def _clicked_id():
    """Pattern id of the button that fired, or None for the n_clicks=None render events."""
    ctx = dash.callback_context
    if not ctx.triggered or not ctx.triggered[0].get("value"):
        return None
    return ctx.triggered_id

def sync_song_inputs(state:FormState, titles, ratings, notes) -> Optional[FormState]:
    """Fold the current song input values into the draft; None if rows and draft disagree."""
    songs = state.draft.songs
    if not (len(titles) == len(ratings) == len(notes) == len(songs)):
        return None
    new = state
    for i, song in enumerate(songs):
        for name, value in (("title", titles[i]), ("rating", ratings[i]), ("note", notes[i])):
            value = "" if value is None else value
            if getattr(song, name) != value:
                new = edit_song_field(new, i, name, value)
    return new

def load_album_for_edit(state_data, albums, album_id) -> Tuple:
    album = next((a for a in (albums or []) if a.get("id") == album_id), None)
    if album is None:
        return (no_update,) * 5 + (notice("Album is no longer in the list."),)
    state = begin_edit(FormState.from_store(state_data), album)
    return draft_outputs(state) + (None,)

def submit_draft(state_data, sort_key, sort_order, albums) -> Tuple:
    """Run the submission gate and save. Returns draft outputs, notice and album list."""
    state = FormState.from_store(state_data)
    try:
        payload = build_payload(state.draft)
    except DraftValidationError as e:
        return (no_update,) * 5 + (notice(str(e)), no_update)
    sync = AlbumListSynchronizer(get_api(), sort_key or DEFAULT_SORT["key"],
                                 sort_order or DEFAULT_SORT["order"], albums)
    try:
        sync.save(payload, state.mode)
    except AlbumApiError as e:
        print(f"[warn] Saving album failed (status {e.status_code}): {e}")
        return (no_update,) * 5 + (notice(SAVE_ERROR_MESSAGE), no_update)
    return draft_outputs(complete_submission(state)) + (None, sync.albums)

# --------- Callbacks ---------

@app.callback(
    Output("albums-store", "data"),
    Input("sort-key", "value"),
    Input("sort-order", "value"),
    State("albums-store", "data"),
)
def fetch_albums(sort_key, sort_order, albums):
    sync = AlbumListSynchronizer(get_api(), sort_key or DEFAULT_SORT["key"],
                                 sort_order or DEFAULT_SORT["order"], albums)
    return sync.refresh()

@app.callback(
    Output("albums-list", "children"),
    Input("albums-store", "data"),
)
def show_albums(albums):
    return render_album_list(albums)

@app.callback(
    Output("aggregate-display", "children"),
    Output("submit-btn", "children"),
    Output("cancel-edit-btn", "style"),
    Input("form-state", "data"),
)
def show_form_state(state_data):
    return form_chrome(FormState.from_store(state_data))

@app.callback(
    Output("form-state", "data", allow_duplicate=True),
    Input("album-title", "value"),
    Input("album-artist", "value"),
    Input("album-type", "value"),
    State("form-state", "data"),
    prevent_initial_call=True
)
def update_album_fields(title, artist, album_type, state_data):
    state = FormState.from_store(state_data)
    new = state
    for name, value in (("title", title), ("artist", artist), ("type", album_type)):
        new = edit_album_field(new, name, value)
    if new == state:
        return no_update
    return new.to_store()

@app.callback(
    Output("form-state", "data", allow_duplicate=True),
    Input({"type":"song-title","ix":ALL}, "value"),
    Input({"type":"song-rating","ix":ALL}, "value"),
    Input({"type":"song-note","ix":ALL}, "value"),
    State("form-state", "data"),
    prevent_initial_call=True
)
def update_song_fields(titles, ratings, notes, state_data):
    state = FormState.from_store(state_data)
    new = sync_song_inputs(state, titles, ratings, notes)
    if new is None or new == state:
        return no_update
    return new.to_store()

@app.callback(
    Output("form-state", "data", allow_duplicate=True),
    Output("songs-container", "children", allow_duplicate=True),
    Input("add-song-btn", "n_clicks"),
    State("form-state", "data"),
    prevent_initial_call=True
)
def add_song(n_clicks, state_data):
    if not n_clicks:
        return no_update, no_update
    state = FormState.from_store(state_data)
    new = add_song_field(state)
    if new is state:
        return no_update, no_update
    return new.to_store(), render_song_rows(new.draft.songs)

@app.callback(
    Output("form-state", "data", allow_duplicate=True),
    Output("songs-container", "children", allow_duplicate=True),
    Output("album-title", "value", allow_duplicate=True),
    Output("album-artist", "value", allow_duplicate=True),
    Output("album-type", "value", allow_duplicate=True),
    Output("form-notice", "children", allow_duplicate=True),
    Input({"type":"edit-album","album_id":ALL}, "n_clicks"),
    State("form-state", "data"),
    State("albums-store", "data"),
    prevent_initial_call=True
)
def edit_album(n_clicks_list, state_data, albums):
    trig = _clicked_id()
    if not isinstance(trig, dict):
        return (no_update,) * 6
    return load_album_for_edit(state_data, albums, trig.get("album_id"))

@app.callback(
    Output("form-state", "data", allow_duplicate=True),
    Output("songs-container", "children", allow_duplicate=True),
    Output("album-title", "value", allow_duplicate=True),
    Output("album-artist", "value", allow_duplicate=True),
    Output("album-type", "value", allow_duplicate=True),
    Output("form-notice", "children", allow_duplicate=True),
    Input("cancel-edit-btn", "n_clicks"),
    State("form-state", "data"),
    prevent_initial_call=True
)
def cancel_editing(n_clicks, state_data):
    if not n_clicks:
        return (no_update,) * 6
    return draft_outputs(cancel_edit(FormState.from_store(state_data))) + (None,)

@app.callback(
    Output("form-state", "data", allow_duplicate=True),
    Output("songs-container", "children", allow_duplicate=True),
    Output("album-title", "value", allow_duplicate=True),
    Output("album-artist", "value", allow_duplicate=True),
    Output("album-type", "value", allow_duplicate=True),
    Output("form-notice", "children", allow_duplicate=True),
    Output("albums-store", "data", allow_duplicate=True),
    Input("submit-btn", "n_clicks"),
    State("form-state", "data"),
    State("sort-key", "value"),
    State("sort-order", "value"),
    State("albums-store", "data"),
    prevent_initial_call=True
)
def submit_album(n_clicks, state_data, sort_key, sort_order, albums):
    if not n_clicks:
        return (no_update,) * 7
    return submit_draft(state_data, sort_key, sort_order, albums)

@app.callback(
    Output("delete-modal", "is_open"),
    Output("pending-delete", "data"),
    Input({"type":"delete-album","album_id":ALL}, "n_clicks"),
    Input("delete-cancel-btn", "n_clicks"),
    prevent_initial_call=True
)
def toggle_delete_modal(delete_clicks, cancel_click):
    trig = _clicked_id()
    if trig is None:
        return no_update, no_update
    if trig == "delete-cancel-btn":
        return False, None
    if isinstance(trig, dict):
        return True, {"album_id": trig.get("album_id")}
    return no_update, no_update

@app.callback(
    Output("albums-store", "data", allow_duplicate=True),
    Output("delete-modal", "is_open", allow_duplicate=True),
    Output("pending-delete", "data", allow_duplicate=True),
    Input("delete-confirm-btn", "n_clicks"),
    State("pending-delete", "data"),
    State("sort-key", "value"),
    State("sort-order", "value"),
    State("albums-store", "data"),
    prevent_initial_call=True
)
def confirm_delete(n_clicks, pending, sort_key, sort_order, albums):
    if not n_clicks or not pending:
        return no_update, False, None
    sync = AlbumListSynchronizer(get_api(), sort_key or DEFAULT_SORT["key"],
                                 sort_order or DEFAULT_SORT["order"], albums)
    return sync.delete(pending.get("album_id")), False, None

# --------------- CLI ----------------

def main(argv=None):
    global API
    ap = argparse.ArgumentParser(description="Album ranking form backed by the album API.")
    ap.add_argument("--api-url", default=None, help="Base URL of the album API (default: $ALBUM_API_URL)")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8050)
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args(argv)

    API = AlbumApi(args.api_url)
    print(f"[info] Using album API at {API.base_url}")
    app.run(host=args.host, port=args.port, debug=args.debug)

if __name__ == "__main__":
    main()
