import os
from typing import Any, Dict, List, Optional

import requests
import streamlit as st


API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

TIME_RANGES = {
    "short_term": "Last 4 weeks",
    "medium_term": "Last 6 months",
    "long_term": "All time",
}

MOOD_EMOJI = {
    "euphoric": "🤩",
    "happy": "😊",
    "content": "😌",
    "neutral": "😐",
    "melancholic": "🌧️",
    "sad": "😢",
    "aggressive": "😤",
}


def _get_query_params() -> Dict[str, Any]:
    return dict(st.query_params)


def bootstrap_session_from_query():
    params = _get_query_params()
    for key in ("access_token", "refresh_token", "expires_at"):
        value = params.get(key)
        if value:
            st.session_state[key] = value
    if params:
        st.query_params.clear()


def _auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def api_get(path: str, token: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> Any:
    resp = requests.get(
        f"{API_BASE}{path}",
        headers=_auth_headers(token) if token else {},
        params=params,
        timeout=15,
    )
    resp.raise_for_status()
    return resp.json()


def api_post(path: str, payload: Dict[str, Any], token: Optional[str] = None) -> Any:
    resp = requests.post(
        f"{API_BASE}{path}",
        json=payload,
        headers=_auth_headers(token) if token else {},
        timeout=60,
    )
    resp.raise_for_status()
    return resp.json()


def call_api_me(token: str) -> Dict[str, Any] | None:
    try:
        return api_get("/api/me", token)
    except requests.RequestException:
        return None


def fetch_mood_analysis(token: str, time_range: str) -> Dict[str, Any]:
    """Top tracks -> audio features -> mood, the same sequence the dashboard runs on load."""
    top_tracks = api_get("/api/spotify/top-tracks", token, {"time_range": time_range, "limit": 50})
    ids = [t["id"] for t in top_tracks.get("items", []) if t.get("id")]
    audio_features: List[Optional[Dict[str, Any]]] = []
    if ids:
        audio_features = api_get("/api/spotify/audio-features", token, {"ids": ",".join(ids)}).get("audio_features", [])
    return api_post("/api/mood/analyze", {"audioFeatures": audio_features, "timeRange": time_range})


def send_chat_message(message: str, mood_context: Optional[Dict[str, Any]], history: List[Dict[str, str]]) -> str:
    data = api_post(
        "/api/chat/message",
        {"message": message, "moodContext": mood_context, "conversationHistory": history},
    )
    return data.get("response", "")


def render_analysis(analysis: Dict[str, Any]):
    mood = analysis.get("mood", "neutral")
    st.header(f"{MOOD_EMOJI.get(mood, '')} {mood.capitalize()}")
    st.progress(float(analysis.get("confidence") or 0), text=f"Confidence {round((analysis.get('confidence') or 0) * 100)}%")
    if analysis.get("encouragement"):
        st.success(analysis["encouragement"])
    if analysis.get("advice"):
        st.warning(analysis["advice"])
    for insight in analysis.get("insights") or []:
        st.write(f"- {insight}")
    features = analysis.get("features") or {}
    if features:
        cols = st.columns(4)
        for i, key in enumerate(["valence", "energy", "danceability", "acousticness"]):
            cols[i].metric(key.capitalize(), f"{features.get(key, 0):.2f}")
        st.caption(f"Average tempo {features.get('tempo', 0):.0f} BPM across {features.get('count', 0)} tracks")


def render_chat(mood_context: Optional[Dict[str, Any]]):
    history: List[Dict[str, str]] = st.session_state.setdefault("chat_history", [])
    for msg in history:
        with st.chat_message(msg["role"]):
            st.write(msg["content"])
    prompt = st.chat_input("How are you feeling today?")
    if not prompt:
        return
    with st.chat_message("user"):
        st.write(prompt)
    try:
        reply = send_chat_message(prompt, mood_context, history)
    except requests.RequestException:
        st.error("The chat assistant is unavailable right now.")
        return
    history.append({"role": "user", "content": prompt})
    history.append({"role": "assistant", "content": reply})
    with st.chat_message("assistant"):
        st.write(reply)


def main():
    st.set_page_config(page_title="Listenify", page_icon="🎧")

    bootstrap_session_from_query()

    st.title("Listenify 🎧")
    st.caption("Discover your mood through your music, then talk it through.")

    access_token = st.session_state.get("access_token")

    if not access_token:
        st.link_button("Login with Spotify", f"{API_BASE}/login")
        st.stop()

    profile = call_api_me(access_token)
    if not profile:
        st.error("Could not fetch your Spotify profile. Please try logging in again.")
        st.link_button("Re-login with Spotify", f"{API_BASE}/login")
        st.stop()

    display_name = profile.get("display_name") or profile.get("id")
    st.success(f"Welcome, {display_name}!")

    time_range = st.radio(
        "Time period",
        options=list(TIME_RANGES),
        format_func=TIME_RANGES.get,
        index=1,
        horizontal=True,
    )

    tabs = st.tabs(["Mood Analysis", "Mood Trends", "Chat"])

    analysis: Optional[Dict[str, Any]] = None
    with tabs[0]:
        with st.spinner("Analyzing your music..."):
            try:
                analysis = fetch_mood_analysis(access_token, time_range)
            except requests.RequestException:
                st.error("Could not analyze your listening history. Please try again.")
        if analysis:
            render_analysis(analysis)

    with tabs[1]:
        try:
            trends = api_get("/api/mood/trends")
            st.line_chart({t["date"]: t["confidence"] for t in trends})
            st.table(trends)
        except requests.RequestException:
            st.info("Mood trends are not available.")

    with tabs[2]:
        render_chat(analysis)


if __name__ == "__main__":
    main()
