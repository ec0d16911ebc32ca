from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from openai import OpenAI, OpenAIError

from listenify.config import Settings
from listenify.errors import ChatUnavailableError, MissingInputError, UpstreamServiceError


logger = logging.getLogger(__name__)

HISTORY_WINDOW = 6

THERAPY_PROMPT = """You are a compassionate and professional AI therapy assistant integrated into Listenify, a music mood analysis app. Your role is to:

1. Provide supportive, empathetic responses based on the user's mood and music listening patterns
2. Offer practical advice for mental wellness
3. Suggest specific music or playlists that could help improve the user's mood
4. Use music therapy principles when appropriate
5. Maintain professional boundaries while being warm and approachable
6. Never provide medical diagnoses or replace professional therapy

Guidelines:
- Be empathetic and non-judgmental
- Ask thoughtful follow-up questions
- Validate the user's feelings
- Suggest practical coping strategies
- Incorporate music-based recommendations
- Encourage professional help when appropriate
- Keep responses concise but meaningful (2-3 paragraphs max)

Remember: You're here to support and guide, not to diagnose or replace professional mental health care."""

PLAYLIST_PROMPT = """Based on the user's current mood ({current}) and desired mood ({desired}), suggest a therapeutic playlist. Context: {context}.

Provide:
1. A playlist name
2. Brief description (2-3 sentences)
3. 8-12 specific song suggestions with artist names
4. Explanation of how this playlist supports their emotional journey

Format your response as a JSON object with the following structure:
{{
  "name": "playlist name",
  "description": "brief description",
  "songs": [
    {{"title": "song title", "artist": "artist name"}}
  ],
  "rationale": "explanation of how this playlist helps"
}}"""

UNAVAILABLE_MESSAGE = "AI chat service is currently unavailable. Please configure the OpenAI API key."


def describe_mood_context(mood_context: Mapping[str, Any]) -> str:
    confidence = mood_context.get("confidence") or 0
    try:
        percent = round(float(confidence) * 100)
    except (TypeError, ValueError):
        percent = 0
    insights = mood_context.get("insights") or []
    insight_text = ". ".join(str(i) for i in insights) if insights else "No specific insights available."
    note = mood_context.get("advice") or mood_context.get("encouragement") or ""
    return (
        f"Current user mood analysis: {mood_context.get('mood')} (confidence: {percent}%). "
        f"Recent insights: {insight_text} {note}"
    ).strip()


def build_messages(
    message: str,
    mood_context: Any = None,
    history: Iterable[Any] = (),
) -> List[Dict[str, str]]:
    """Assemble the chat completion messages: system prompt, mood context, last turns, then the new message.

    A mood context that is not an object carries nothing usable and is left out.
    """
    messages: List[Dict[str, str]] = [{"role": "system", "content": THERAPY_PROMPT}]
    if isinstance(mood_context, Mapping) and mood_context:
        messages.append({"role": "system", "content": describe_mood_context(mood_context)})

    for turn in list(history)[-HISTORY_WINDOW:]:
        if isinstance(turn, Mapping):
            role, content = turn.get("role"), turn.get("content")
        else:
            role, content = getattr(turn, "role", None), getattr(turn, "content", None)
        messages.append({"role": "user" if role == "user" else "assistant", "content": content or ""})

    messages.append({"role": "user", "content": message})
    return messages


def parse_playlist_recommendation(text: str) -> Dict[str, Any]:
    match = re.search(r"\{[\s\S]*\}", text or "")
    if match:
        try:
            data = json.loads(match.group(0))
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            logger.info("Playlist recommendation was not valid JSON; using text fallback")
    return {
        "name": "Personalized Mood Playlist",
        "description": (text or "")[:200] + "...",
        "songs": [],
        "rationale": "AI-generated recommendation based on your current emotional state.",
    }


class ChatService:
    """Supportive chat and playlist suggestions backed by an OpenAI-compatible client."""

    def __init__(self, client: Optional[OpenAI], model: str = "gpt-4o-mini"):
        self._client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatService":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY is not set; chat endpoints will answer 503")
            return cls(None, settings.openai_model)
        return cls(OpenAI(api_key=settings.openai_api_key), settings.openai_model)

    @property
    def available(self) -> bool:
        return self._client is not None

    def _complete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        if self._client is None:
            raise ChatUnavailableError(UNAVAILABLE_MESSAGE)
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as exc:
            status = getattr(exc, "status_code", None) or 502
            raise UpstreamServiceError(f"LLM request failed: {exc}", status) from exc
        return (resp.choices[0].message.content or "").strip()

    def reply(
        self,
        message: Optional[str],
        mood_context: Any = None,
        history: Iterable[Any] = (),
    ) -> str:
        if not self.available:
            raise ChatUnavailableError(UNAVAILABLE_MESSAGE)
        if not message:
            raise MissingInputError("Message is required")
        return self._complete(build_messages(message, mood_context, history), temperature=0.7, max_tokens=500)

    def recommend_playlist(
        self,
        current_mood: Optional[str],
        desired_mood: Optional[str],
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        prompt = PLAYLIST_PROMPT.format(
            current=current_mood,
            desired=desired_mood,
            context=context or "No additional context",
        )
        text = self._complete(
            [
                {"role": "system", "content": "You are a music therapist who curates playlists. Always answer with a JSON object."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.6,
            max_tokens=800,
        )
        return parse_playlist_recommendation(text)
