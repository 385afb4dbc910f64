# rating_svg.py
from dash_svg import Svg, Line, Text, Rect
import numpy as np

from album_form import parse_rating

# ======== Config ========
Y_MIN, Y_MAX = 0.0, 10.0
PLACEHOLDER = 5.0        # height drawn for a song without a usable rating

# SVG canvas + plot area
SVG_W, SVG_H = 360, 72
MARGIN_L, MARGIN_R, MARGIN_T, MARGIN_B = 22, 6, 6, 6
PLOT_W = SVG_W - MARGIN_L - MARGIN_R
PLOT_H = SVG_H - MARGIN_T - MARGIN_B

BAR_COLOR = "#2aa9ff"
PLACEHOLDER_COLOR = "#44484d"

# ======== Geometry helpers ========
def build_geometry(n):
    """Equal-width bar edges across the plot. Returns (lefts, rights) in pixels."""
    edges = MARGIN_L + np.linspace(0.0, PLOT_W, n + 1)
    return edges[:-1], edges[1:]

def y_to_px(y):
    y = float(np.clip(y, Y_MIN, Y_MAX))
    return MARGIN_T + (Y_MAX - y) * (PLOT_H / (Y_MAX - Y_MIN))

def strip_values(songs):
    """(value, rated) per song; values outside 0..10 are only clipped when drawn."""
    out = []
    for s in songs:
        raw = s.get("rating") if isinstance(s, dict) else getattr(s, "rating", None)
        v = parse_rating(raw)
        if v is None or not np.isfinite(v):
            out.append((PLACEHOLDER, False))
        else:
            out.append((v, True))
    return out

def render_strip_children(songs):
    elems = []
    baseline = MARGIN_T + PLOT_H

    # y guides at 0 / 5 / 10
    for v in (0, 5, 10):
        y = y_to_px(v)
        elems += [
            Line(x1=MARGIN_L, y1=y, x2=MARGIN_L + PLOT_W, y2=y,
                 stroke="#334955", strokeWidth=1, style={"opacity": 0.35}),
            Text(str(v), x=MARGIN_L - 4, y=y + 3, fill="#9fb3bf",
                 textAnchor="end", style={"fontSize": "9px"}),
        ]

    values = strip_values(songs)
    if not values:
        return elems
    lefts, rights = build_geometry(len(values))
    for i, (v, rated) in enumerate(values):
        top = y_to_px(v)
        elems.append(
            Rect(x=float(lefts[i]) + 1, y=top, width=max(float(rights[i] - lefts[i]) - 2, 1.0),
                 height=baseline - top,
                 fill=BAR_COLOR if rated else PLACEHOLDER_COLOR,
                 style={"fillOpacity": 1.0 if rated else 0.5})
        )
    return elems

def rating_strip(songs, strip_id=None):
    kwargs = {"id": strip_id} if strip_id is not None else {}
    return Svg(
        width=SVG_W, height=SVG_H,
        viewBox=f"0 0 {SVG_W} {SVG_H}",
        style={"background": "#15171c", "borderRadius": "6px"},
        children=render_strip_children(songs),
        **kwargs,
    )
