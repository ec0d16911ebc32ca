from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


FEATURE_KEYS = (
    "valence",
    "energy",
    "danceability",
    "acousticness",
    "instrumentalness",
    "liveness",
    "speechiness",
    "tempo",
)


class TokenInfo(BaseModel):
    access_token: str = Field(..., description="Spotify access token")
    refresh_token: str | None = Field(None, description="Spotify refresh token")
    expires_at: int | None = Field(None, description="Epoch seconds when the token expires")


class AudioFeatureRecord(BaseModel):
    """One Spotify audio-features object; unknown keys (id, uri, key, ...) are dropped."""

    model_config = ConfigDict(extra="ignore")

    valence: float | None = None
    energy: float | None = None
    danceability: float | None = None
    acousticness: float | None = None
    instrumentalness: float | None = None
    liveness: float | None = None
    speechiness: float | None = None
    tempo: float | None = Field(None, description="Beats per minute")


class AggregateFeatures(BaseModel):
    valence: float = 0.0
    energy: float = 0.0
    danceability: float = 0.0
    acousticness: float = 0.0
    instrumentalness: float = 0.0
    liveness: float = 0.0
    speechiness: float = 0.0
    tempo: float = 0.0
    count: int = 0


class Mood(str, Enum):
    NEUTRAL = "neutral"
    EUPHORIC = "euphoric"
    HAPPY = "happy"
    CONTENT = "content"
    MELANCHOLIC = "melancholic"
    SAD = "sad"
    AGGRESSIVE = "aggressive"


class MoodResult(BaseModel):
    mood: Mood
    confidence: float
    features: AggregateFeatures | None = None
    advice: str | None = None
    encouragement: str | None = None
    insights: List[str] | None = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON responses: absent messages are omitted, a missing aggregate is ``{}``."""
        data = self.model_dump(mode="json", exclude_none=True)
        data["features"] = self.features.model_dump() if self.features is not None else {}
        return data


class MoodAnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Entries are not validated; the mood engine reads whatever it can from each one.
    audio_features: List[Any] | None = Field(None, alias="audioFeatures")
    time_range: str | None = Field(None, alias="timeRange")


class MoodTrend(BaseModel):
    date: str
    mood: Mood
    confidence: float


class ChatTurn(BaseModel):
    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    mood_context: Any = Field(None, alias="moodContext")
    conversation_history: List[ChatTurn] = Field(default_factory=list, alias="conversationHistory")


class PlaylistRecommendationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_mood: str | None = Field(None, alias="currentMood")
    desired_mood: str | None = Field(None, alias="desiredMood")
    context: str | None = None


class CreatePlaylistRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    track_uris: List[str] = Field(default_factory=list, alias="trackUris")


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp used in API responses."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
