from __future__ import annotations

import functools
import logging
from typing import Callable, Optional

from flask import Flask, current_app, jsonify, redirect, request, session, url_for
from pydantic import ValidationError
from spotipy import Spotify

from listenify.chat import ChatService
from listenify.config import Settings, configure_logging
from listenify.errors import InvalidInputError, ListenifyError, MissingInputError, NotAuthenticatedError
from listenify.models import MoodAnalyzeRequest, utc_timestamp
from listenify.mood import analyze_mood
from listenify.spotify_client import (
    create_playlist,
    create_spotify_client,
    ensure_token_valid,
    get_audio_features,
    get_current_user_profile,
    get_recent_tracks,
    get_spotify_oauth,
    get_top_artists,
    get_top_tracks,
)
from listenify.trends import sample_trends


logger = logging.getLogger(__name__)


def json_errors(fallback: str) -> Callable:
    """Turn ListenifyError into its JSON status and anything else into a logged 500 with ``fallback``."""

    def decorator(view: Callable) -> Callable:
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except ListenifyError as exc:
                return jsonify(exc.to_dict()), exc.status_code
            except Exception:
                logger.exception(fallback)
                return jsonify({"error": fallback}), 500

        return wrapper

    return decorator


def create_app(settings: Optional[Settings] = None, chat_service: Optional[ChatService] = None) -> Flask:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = Flask(__name__)
    app.secret_key = settings.app_secret_key
    app.config["SESSION_COOKIE_NAME"] = "listenify_session"
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["LISTENIFY_SETTINGS"] = settings
    app.extensions["listenify_chat"] = chat_service or ChatService.from_settings(settings)

    def get_chat() -> ChatService:
        return current_app.extensions["listenify_chat"]

    def get_spotify_client() -> Optional[Spotify]:
        token_info = session.get("token_info")
        if not token_info:
            return None
        refreshed = ensure_token_valid(get_spotify_oauth(settings), token_info)
        if refreshed is not token_info:
            session["token_info"] = refreshed
        access_token = refreshed.get("access_token")
        if not access_token:
            return None
        return create_spotify_client(access_token)

    def require_spotify() -> Spotify:
        sp = get_spotify_client()
        if sp is None:
            raise NotAuthenticatedError()
        return sp

    @app.route("/health")
    def health():
        return {"ok": True}

    # ---------- Auth ----------

    @app.route("/api/auth/login")
    def login():
        oauth = get_spotify_oauth(settings)
        return jsonify({"url": oauth.get_authorize_url()})

    @app.route("/api/auth/callback")
    def callback():
        error = request.args.get("error")
        if error:
            return jsonify({"error": error}), 400
        code = request.args.get("code")
        if not code:
            return jsonify({"error": "Missing authorization code"}), 400
        oauth = get_spotify_oauth(settings)
        try:
            token_info = oauth.get_access_token(code)
        except Exception:
            logger.exception("Token exchange failed")
            return jsonify({"error": "Failed to authenticate"}), 400
        if not token_info or not token_info.get("access_token"):
            return jsonify({"error": "No access token returned from Spotify"}), 400
        session["token_info"] = token_info
        if settings.frontend_url:
            return redirect(settings.frontend_url)
        return redirect(url_for("auth_status"))

    @app.route("/api/auth/status")
    def auth_status():
        token_info = session.get("token_info") or {}
        return jsonify({"isAuthenticated": bool(token_info.get("access_token"))})

    @app.route("/api/auth/logout", methods=["POST"])
    def logout():
        session.clear()
        return jsonify({"success": True})

    # ---------- Spotify ----------

    @app.route("/api/spotify/profile")
    @json_errors("Failed to fetch profile")
    def spotify_profile():
        return jsonify(get_current_user_profile(require_spotify()))

    @app.route("/api/spotify/top-tracks")
    @json_errors("Failed to fetch top tracks")
    def spotify_top_tracks():
        sp = require_spotify()
        return jsonify(get_top_tracks(sp, request.args.get("time_range"), request.args.get("limit")))

    @app.route("/api/spotify/top-artists")
    @json_errors("Failed to fetch top artists")
    def spotify_top_artists():
        sp = require_spotify()
        return jsonify(get_top_artists(sp, request.args.get("time_range"), request.args.get("limit")))

    @app.route("/api/spotify/recent")
    @json_errors("Failed to fetch recent tracks")
    def spotify_recent():
        return jsonify(get_recent_tracks(require_spotify(), request.args.get("limit")))

    @app.route("/api/spotify/audio-features")
    @json_errors("Failed to fetch audio features")
    def spotify_audio_features():
        ids = request.args.get("ids")
        if not ids:
            raise MissingInputError("Missing ids")
        sp = require_spotify()
        return jsonify({"audio_features": get_audio_features(sp, ids)})

    @app.route("/api/spotify/create-playlist", methods=["POST"])
    @json_errors("Failed to create playlist")
    def spotify_create_playlist():
        sp = require_spotify()
        payload = request.get_json(silent=True) or {}
        playlist = create_playlist(sp, payload.get("name"), payload.get("description") or "", payload.get("trackUris"))
        return jsonify(playlist)

    # ---------- Mood ----------

    @app.route("/api/mood/analyze", methods=["POST"])
    @json_errors("Failed to analyze mood")
    def mood_analyze():
        try:
            body = MoodAnalyzeRequest.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid audio features: {exc.error_count()} error(s)") from exc
        if body.audio_features is None:
            raise MissingInputError("Audio features required")
        result = analyze_mood(body.audio_features)
        return jsonify({**result.to_dict(), "timeRange": body.time_range, "timestamp": utc_timestamp()})

    @app.route("/api/mood/trends")
    @json_errors("Failed to fetch mood trends")
    def mood_trends():
        return jsonify(sample_trends())

    # ---------- Chat ----------

    @app.route("/api/chat/message", methods=["POST"])
    @json_errors("Failed to process chat message")
    def chat_message():
        payload = request.get_json(silent=True) or {}
        response = get_chat().reply(
            payload.get("message"),
            payload.get("moodContext"),
            payload.get("conversationHistory") or [],
        )
        return jsonify({"response": response, "timestamp": utc_timestamp()})

    @app.route("/api/chat/playlist-recommendation", methods=["POST"])
    @json_errors("Failed to generate playlist recommendation")
    def chat_playlist_recommendation():
        payload = request.get_json(silent=True) or {}
        recommendation = get_chat().recommend_playlist(
            payload.get("currentMood"),
            payload.get("desiredMood"),
            payload.get("context"),
        )
        return jsonify(recommendation)

    return app


def run() -> None:
    app = create_app()
    app.run(host="127.0.0.1", port=5000)


if __name__ == "__main__":
    run()
