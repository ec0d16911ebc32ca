from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
import spotipy

from listenify.auth import router as auth_router
from listenify.chat import UNAVAILABLE_MESSAGE, ChatService
from listenify.config import Settings, configure_logging
from listenify.errors import (
    ChatUnavailableError,
    InvalidInputError,
    ListenifyError,
    MissingInputError,
    NotAuthenticatedError,
)
from listenify.models import (
    ChatRequest,
    CreatePlaylistRequest,
    MoodAnalyzeRequest,
    PlaylistRecommendationRequest,
    utc_timestamp,
)
from listenify.mood import analyze_mood
from listenify.spotify_client import (
    create_playlist,
    create_spotify_client,
    get_audio_features,
    get_current_user_profile,
    get_recent_tracks,
    get_top_artists,
    get_top_tracks,
)
from listenify.trends import sample_trends


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_spotify_client_from_bearer(authorization: str | None = Header(default=None)) -> spotipy.Spotify:
    """Create a Spotipy client from a Bearer Authorization header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise NotAuthenticatedError("Missing or invalid Authorization header")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise NotAuthenticatedError("Empty token")
    return create_spotify_client(token)


def get_chat(request: Request) -> ChatService:
    chat = request.app.state.chat
    if chat is None:
        raise ChatUnavailableError(UNAVAILABLE_MESSAGE)
    return chat


@router.get("/me")
def read_me(sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer)):
    """Return the authenticated user's Spotify profile as a smoke test for auth."""
    return get_current_user_profile(sp_client)


@router.get("/spotify/profile")
def spotify_profile(sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer)):
    return get_current_user_profile(sp_client)


@router.get("/spotify/top-tracks")
def spotify_top_tracks(
    time_range: str = "medium_term",
    limit: int = 50,
    sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer),
):
    return get_top_tracks(sp_client, time_range, limit)


@router.get("/spotify/top-artists")
def spotify_top_artists(
    time_range: str = "medium_term",
    limit: int = 50,
    sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer),
):
    return get_top_artists(sp_client, time_range, limit)


@router.get("/spotify/recent")
def spotify_recent(limit: int = 50, sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer)):
    return get_recent_tracks(sp_client, limit)


@router.get("/spotify/audio-features")
def spotify_audio_features(
    ids: str | None = None,
    sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer),
):
    """Audio features for a comma-separated list of at most 100 track IDs."""
    if not ids:
        raise MissingInputError("Missing ids")
    return {"audio_features": get_audio_features(sp_client, ids)}


@router.post("/spotify/create-playlist")
def spotify_create_playlist(
    body: CreatePlaylistRequest,
    sp_client: spotipy.Spotify = Depends(get_spotify_client_from_bearer),
):
    return create_playlist(sp_client, body.name, body.description, body.track_uris)


@router.post("/mood/analyze")
def mood_analyze(payload: Optional[Dict[str, Any]] = Body(default=None)):
    """Classify the listener's mood from a batch of audio-feature objects.

    Body JSON: {"audioFeatures": [{...} | null, ...], "timeRange": str}
    """
    try:
        body = MoodAnalyzeRequest.model_validate(payload or {})
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid audio features: {exc.error_count()} error(s)") from exc
    if body.audio_features is None:
        raise MissingInputError("Audio features required")
    result = analyze_mood(body.audio_features)
    return {**result.to_dict(), "timeRange": body.time_range, "timestamp": utc_timestamp()}


@router.get("/mood/trends")
def mood_trends() -> List[Dict[str, Any]]:
    return sample_trends()


@router.post("/chat/message")
def chat_message(body: ChatRequest, chat: ChatService = Depends(get_chat)):
    response = chat.reply(body.message, body.mood_context, body.conversation_history)
    return {"response": response, "timestamp": utc_timestamp()}


@router.post("/chat/playlist-recommendation")
def chat_playlist_recommendation(body: PlaylistRecommendationRequest, chat: ChatService = Depends(get_chat)):
    return chat.recommend_playlist(body.current_mood, body.desired_mood, body.context)


def create_api(settings: Optional[Settings] = None, chat_service: Optional[ChatService] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.chat is None:
            app.state.chat = ChatService.from_settings(settings)
        logger.info("Starting Listenify API (chat %s)", "enabled" if app.state.chat.available else "disabled")
        yield
        logger.info("Shutting down Listenify API")

    app = FastAPI(title="Listenify API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.chat = chat_service

    # Allow a configured frontend origin (e.g. the Streamlit client) to call the API
    allowed_origins = [settings.frontend_url] if settings.frontend_url else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ListenifyError)
    async def listenify_error_handler(request: Request, exc: ListenifyError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(auth_router)
    app.include_router(router)
    return app


app = create_api()
