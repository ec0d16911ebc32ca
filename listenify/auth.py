from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from listenify.config import Settings
from listenify.models import TokenInfo
from listenify.spotify_client import get_spotify_oauth


logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/login")
async def login(request: Request) -> RedirectResponse:
    """Redirect the user to Spotify's authorization URL."""
    oauth = get_spotify_oauth(get_settings(request))
    return RedirectResponse(oauth.get_authorize_url())


@router.get("/callback")
async def callback(request: Request):
    """Handle Spotify redirect, exchange code for token, and forward token to frontend.

    The tokens travel to the Streamlit client in the query string; the client then
    calls the API with an ``Authorization: Bearer`` header.
    """
    params = dict(request.query_params)
    error = params.get("error")
    if error:
        raise HTTPException(status_code=400, detail=error)

    code = params.get("code")
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    settings = get_settings(request)
    oauth = get_spotify_oauth(settings)
    try:
        token_info = oauth.get_access_token(code)
    except Exception as exc:  # spotipy may raise generic Exception here
        logger.warning("Token exchange failed: %s", exc)
        raise HTTPException(status_code=400, detail=f"Token exchange failed: {exc}")

    access_token = (token_info or {}).get("access_token")
    if not access_token:
        raise HTTPException(status_code=400, detail="No access token returned from Spotify")

    token = TokenInfo(
        access_token=access_token,
        refresh_token=token_info.get("refresh_token"),
        expires_at=token_info.get("expires_at"),
    )

    if settings.frontend_url:
        query = urlencode(
            {
                "access_token": token.access_token,
                "refresh_token": token.refresh_token or "",
                "expires_at": str(token.expires_at or ""),
            }
        )
        return RedirectResponse(f"{settings.frontend_url}?{query}")

    # If no FRONTEND_URL is configured, return the token info as JSON
    return JSONResponse(token.model_dump())
