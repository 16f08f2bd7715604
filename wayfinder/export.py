"""Route export: interactive HTML map and GPX."""

from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

import folium
from folium import plugins

from .models import NavigationState, Route
from .planner import format_distance, format_duration


def build_route_map(route: Route, state: Optional[NavigationState] = None,
                    trace: Optional[list[dict]] = None) -> folium.Map:
    """Create an interactive map of a route.

    Args:
        route: Route to draw.
        state: Optional navigation state; its completed portion and current
            location are highlighted.
        trace: Optional recorded GPS trace entries (see wayfinder.gps).
    """
    if not route.coordinates:
        raise ValueError("Cannot draw a route without coordinates")

    lats = [c.lat for c in route.coordinates]
    lngs = [c.lng for c in route.coordinates]
    center = [sum(lats) / len(lats), sum(lngs) / len(lngs)]

    m = folium.Map(location=center, zoom_start=15)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)

    path = [[c.lat, c.lng] for c in route.coordinates]
    folium.PolyLine(
        path,
        weight=5,
        color="#3b82f6",
        opacity=0.8,
        popup=f"{format_distance(route.distance_meters)}, {format_duration(route.duration_seconds)}"
    ).add_to(m)

    if state and state.completed_coordinates:
        folium.PolyLine(
            [[c.lat, c.lng] for c in state.completed_coordinates],
            weight=6,
            color="#22c55e",
            opacity=0.9,
            popup="Completed"
        ).add_to(m)

    stops_group = folium.FeatureGroup(name="Stops", show=True)
    last = len(route.waypoints) - 1
    for i, wp in enumerate(route.waypoints):
        label = wp.name or f"Stop {i + 1}"
        color = "green" if i == 0 else "red" if i == last else "blue"
        folium.Marker(
            [wp.coordinates.lat, wp.coordinates.lng],
            popup=folium.Popup(f"<b>{i + 1}.</b> {escape(label)}", max_width=200),
            icon=folium.Icon(color=color, icon="flag")
        ).add_to(stops_group)
    stops_group.add_to(m)

    if state and state.current_location:
        folium.CircleMarker(
            location=[state.current_location.lat, state.current_location.lng],
            radius=8,
            color="#ef4444" if state.is_off_route else "#22c55e",
            fill=True,
            popup="Off route" if state.is_off_route else "Current location"
        ).add_to(m)

    if trace:
        fixes = [e["location"] for e in trace if e.get("location")]
        if fixes:
            folium.PolyLine(
                [[f["lat"], f["lng"]] for f in fixes],
                weight=3,
                color="#f97316",
                opacity=0.7,
                dash_array="6",
                popup="GPS trace"
            ).add_to(m)

    folium.LayerControl().add_to(m)
    plugins.Fullscreen().add_to(m)
    m.fit_bounds([[min(lats), min(lngs)], [max(lats), max(lngs)]])
    return m


def save_route_html(route: Route, output_path: str, state: Optional[NavigationState] = None,
                    trace: Optional[list[dict]] = None):
    build_route_map(route, state=state, trace=trace).save(output_path)


def build_gpx(route: Route, name: str = "Wayfinder Route") -> str:
    """GPX 1.1 document with the stops as waypoints and the polyline as a track"""
    timestamp = datetime.now().isoformat()
    title = f"{name} ({format_distance(route.distance_meters)})"

    gpx_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="Wayfinder"',
        '     xmlns="http://www.topografix.com/GPX/1/1"',
        '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
        '     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd">',
        '  <metadata>',
        f'    <name>{escape(title)}</name>',
        f'    <time>{timestamp}</time>',
        '  </metadata>',
    ]

    for i, wp in enumerate(route.waypoints):
        gpx_lines.append(f'  <wpt lat="{wp.coordinates.lat:.6f}" lon="{wp.coordinates.lng:.6f}">')
        gpx_lines.append(f'    <name>{escape(wp.name or f"Stop {i + 1}")}</name>')
        if wp.external_id:
            gpx_lines.append(f'    <desc>{escape(wp.external_id)}</desc>')
        gpx_lines.append('  </wpt>')

    gpx_lines.append('  <trk>')
    gpx_lines.append(f'    <name>{escape(name)}</name>')
    gpx_lines.append('    <trkseg>')
    for c in route.coordinates:
        gpx_lines.append(f'      <trkpt lat="{c.lat:.6f}" lon="{c.lng:.6f}"/>')
    gpx_lines.append('    </trkseg>')
    gpx_lines.append('  </trk>')
    gpx_lines.append('</gpx>')

    return '\n'.join(gpx_lines)


def save_route_gpx(route: Route, output_path: str):
    with open(output_path, 'w') as f:
        f.write(build_gpx(route))
