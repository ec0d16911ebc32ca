from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from listenify.chat import ChatService
from listenify.config import Settings
from listenify.flask_app import create_app
from listenify.main import create_api


def completion(text):
    """Shape of an OpenAI chat completion response, enough for ChatService."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def settings():
    return Settings(
        spotify_client_id="test-client-id",
        spotify_client_secret="test-client-secret",
        spotify_redirect_uri="http://127.0.0.1:5000/api/auth/callback",
        openai_api_key="sk-test",
        openai_model="gpt-test",
        app_secret_key="test-secret",
    )


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create.return_value = completion("I hear you. Let's take it one song at a time.")
    return client


@pytest.fixture
def chat_service(openai_client):
    return ChatService(openai_client, model="gpt-test")


@pytest.fixture
def spotify():
    """A stand-in spotipy.Spotify with canned responses."""
    sp = MagicMock()
    sp.me.return_value = {"id": "listener", "display_name": "Listener"}
    sp.current_user_top_tracks.return_value = {"items": [{"id": "t1"}, {"id": "t2"}]}
    sp.current_user_top_artists.return_value = {"items": [{"id": "a1", "name": "Artist"}]}
    sp.current_user_recently_played.return_value = {"items": []}
    sp.audio_features.return_value = [
        {"id": "t1", "valence": 0.8, "energy": 0.9, "tempo": 150.0},
        None,
    ]
    sp.user_playlist_create.return_value = {"id": "pl1", "name": "Calm Down"}
    return sp


@pytest.fixture
def flask_app(settings, chat_service):
    app = create_app(settings, chat_service=chat_service)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def flask_client(flask_app):
    return flask_app.test_client()


@pytest.fixture
def logged_in_client(flask_client, spotify, monkeypatch):
    monkeypatch.setattr("listenify.flask_app.create_spotify_client", lambda token: spotify)
    with flask_client.session_transaction() as sess:
        sess["token_info"] = {"access_token": "abc", "refresh_token": "def"}
    return flask_client


@pytest.fixture
def api_client(settings, chat_service, spotify, monkeypatch):
    monkeypatch.setattr("listenify.main.create_spotify_client", lambda token: spotify)
    return TestClient(create_api(settings, chat_service=chat_service))
