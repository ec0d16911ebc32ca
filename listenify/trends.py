from __future__ import annotations

from typing import Any, Dict, List

from listenify.models import Mood, MoodTrend


# No listening history is stored, so trends are a fixed sample for the dashboard chart.
SAMPLE_TRENDS = [
    MoodTrend(date="2024-11-15", mood=Mood.HAPPY, confidence=0.8),
    MoodTrend(date="2024-11-16", mood=Mood.CONTENT, confidence=0.7),
    MoodTrend(date="2024-11-17", mood=Mood.EUPHORIC, confidence=0.9),
    MoodTrend(date="2024-11-18", mood=Mood.MELANCHOLIC, confidence=0.6),
    MoodTrend(date="2024-11-19", mood=Mood.HAPPY, confidence=0.85),
    MoodTrend(date="2024-11-20", mood=Mood.CONTENT, confidence=0.75),
]


def sample_trends() -> List[Dict[str, Any]]:
    return [trend.model_dump(mode="json") for trend in SAMPLE_TRENDS]
