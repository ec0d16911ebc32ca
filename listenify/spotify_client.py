from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from listenify.config import Settings
from listenify.errors import InvalidInputError, MissingInputError, UpstreamServiceError


logger = logging.getLogger(__name__)

SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-top-read",
    "user-read-recently-played",
    "user-read-playback-state",
    "user-read-currently-playing",
    "playlist-modify-public",
    "playlist-modify-private",
]

TIME_RANGES = ("short_term", "medium_term", "long_term")
MAX_AUDIO_FEATURE_IDS = 100
MAX_PAGE_LIMIT = 50
MAX_PLAYLIST_ITEMS_PER_CALL = 100


def get_spotify_oauth(settings: Settings) -> SpotifyOAuth:
    """Create a SpotifyOAuth for the configured app credentials, without a token cache."""
    return SpotifyOAuth(
        client_id=settings.spotify_client_id,
        client_secret=settings.spotify_client_secret,
        redirect_uri=settings.spotify_redirect_uri,
        scope=" ".join(SCOPES),
        cache_handler=None,
        show_dialog=True,
    )


def ensure_token_valid(oauth: SpotifyOAuth, token_info: dict) -> dict:
    # Refresh if expired or about to
    expires_at = token_info.get("expires_at")
    if expires_at and int(expires_at) - int(time.time()) < 60:
        refresh_token = token_info.get("refresh_token")
        if refresh_token:
            try:
                refreshed = oauth.refresh_access_token(refresh_token)
            except SpotifyOauthError as exc:
                raise UpstreamServiceError(f"Token refresh failed: {exc}", 401) from exc
            token_info = {**token_info, **refreshed}
    return token_info


def create_spotify_client(access_token: str) -> spotipy.Spotify:
    """Create a Spotipy client using a raw access token."""
    return spotipy.Spotify(auth=access_token)


def _call(description: str, func, /, *args, **kwargs) -> Any:
    try:
        return func(*args, **kwargs)
    except SpotifyException as exc:
        status = getattr(exc, "http_status", None) or 502
        logger.warning("Spotify %s failed (%s): %s", description, status, exc)
        raise UpstreamServiceError(f"Failed to fetch {description}", status) from exc


def _time_range(value: Optional[str]) -> str:
    value = value or "medium_term"
    if value not in TIME_RANGES:
        raise InvalidInputError(f"Invalid time_range '{value}', expected one of {', '.join(TIME_RANGES)}")
    return value


def _limit(value: Any, default: int = MAX_PAGE_LIMIT) -> int:
    if value in (None, ""):
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid limit '{value}'")
    return max(1, min(limit, MAX_PAGE_LIMIT))


def get_current_user_profile(client: spotipy.Spotify) -> dict:
    """Fetch the current user's profile."""
    return _call("profile", client.me)


def get_top_tracks(client: spotipy.Spotify, time_range: Optional[str] = "medium_term", limit: Any = MAX_PAGE_LIMIT) -> dict:
    return _call("top tracks", client.current_user_top_tracks, limit=_limit(limit), time_range=_time_range(time_range))


def get_top_artists(client: spotipy.Spotify, time_range: Optional[str] = "medium_term", limit: Any = MAX_PAGE_LIMIT) -> dict:
    return _call("top artists", client.current_user_top_artists, limit=_limit(limit), time_range=_time_range(time_range))


def get_recent_tracks(client: spotipy.Spotify, limit: Any = MAX_PAGE_LIMIT) -> dict:
    return _call("recent tracks", client.current_user_recently_played, limit=_limit(limit))


def parse_track_ids(ids: str | List[str] | None) -> List[str]:
    if isinstance(ids, str):
        ids = ids.split(",")
    return [i.strip() for i in ids or [] if i and i.strip()]


def get_audio_features(client: spotipy.Spotify, ids: str | List[str] | None) -> List[Optional[Dict[str, Any]]]:
    """Return Spotify audio features for up to 100 tracks; unknown tracks stay as ``None``."""
    track_ids = parse_track_ids(ids)
    if not track_ids:
        raise MissingInputError("Missing ids")
    if len(track_ids) > MAX_AUDIO_FEATURE_IDS:
        raise InvalidInputError(f"Too many track IDs (max {MAX_AUDIO_FEATURE_IDS} allowed)")
    return _call("audio features", client.audio_features, track_ids) or []


def create_playlist(client: spotipy.Spotify, name: str, description: str = "", track_uris: Optional[List[str]] = None) -> dict:
    """Create a private playlist for the current user and fill it with ``track_uris``.

    Spotify takes at most 100 items per add request, so longer lists go in batches.
    """
    if not name:
        raise MissingInputError("Playlist name is required")
    user = get_current_user_profile(client)
    playlist = _call(
        "playlist creation",
        client.user_playlist_create,
        user["id"],
        name,
        public=False,
        description=description or "",
    )
    track_uris = list(track_uris or [])
    for start in range(0, len(track_uris), MAX_PLAYLIST_ITEMS_PER_CALL):
        batch = track_uris[start:start + MAX_PLAYLIST_ITEMS_PER_CALL]
        _call("playlist tracks", client.playlist_add_items, playlist["id"], batch)
    logger.info("Created playlist %s with %d tracks", playlist.get("id"), len(track_uris))
    return playlist
