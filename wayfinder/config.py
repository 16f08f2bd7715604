"""Configuration settings for Wayfinder."""

CONFIG = {
    # Directions provider
    "directions_url": "https://maps.googleapis.com/maps/api/directions/json",
    "api_key_env": "GOOGLE_MAPS_API_KEY",
    "success_status": "OK",
    "request_timeout": 10,  # seconds - single attempt, no retries
    "max_waypoints": 25,  # provider limit - extra waypoints are dropped
    "default_travel_mode": "walking",
    # Navigation
    "off_route_threshold": 50,  # meters - deviation that triggers recalculation
    "location_update_interval": 2000,  # ms - minimum time between location samples
    "location_distance_interval": 5,  # meters - minimum displacement between samples
    # GPS sources
    "gps_fix_timeout": 30,  # seconds
    "playback_max_interval": 5.0,  # seconds - cap on recorded gaps during playback
}
