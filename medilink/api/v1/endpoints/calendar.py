"""External calendar connection endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Query, status

from medilink.config import settings
from medilink.core.calendar_tokens import build_authorization_url, parse_redirect_fragment
from medilink.core.exceptions import BadRequestException
from medilink.dependencies import CurrentClinician, TokenProviderDep
from medilink.schemas.calendar import (
    CalendarConnectResponse,
    CalendarStatusResponse,
    CalendarTokenRequest,
)

router = APIRouter()


@router.get(
    "/connect",
    response_model=CalendarConnectResponse,
    status_code=status.HTTP_200_OK,
    tags=["Calendar"],
    summary="Start Google Calendar connection",
)
async def connect_calendar(
    current_clinician: CurrentClinician,
    redirect_uri: str = Query(..., min_length=1),
) -> CalendarConnectResponse:
    """
    Return the Google consent URL.

    Google redirects back to ``redirect_uri`` with the token in the URL
    fragment, which the browser then posts to ``/calendar/token``.
    """
    if not settings.google_client_id:
        raise BadRequestException("Google Client ID not configured")

    return CalendarConnectResponse(
        authorization_url=build_authorization_url(
            client_id=settings.google_client_id,
            redirect_uri=redirect_uri,
            scope=settings.google_calendar_scope,
            state=current_clinician.uid,
        )
    )


def _status(token_provider: TokenProviderDep, uid: str) -> CalendarStatusResponse:
    if not token_provider.is_connected(uid):
        return CalendarStatusResponse(connected=False)
    expires_at = token_provider.expires_at(uid)
    return CalendarStatusResponse(
        connected=True,
        expires_at=datetime.fromtimestamp(expires_at, UTC) if expires_at else None,
    )


@router.post(
    "/token",
    response_model=CalendarStatusResponse,
    status_code=status.HTTP_200_OK,
    tags=["Calendar"],
    summary="Store calendar access token",
)
async def store_calendar_token(
    data: CalendarTokenRequest,
    current_clinician: CurrentClinician,
    token_provider: TokenProviderDep,
) -> CalendarStatusResponse:
    """Cache the access token obtained from the OAuth redirect."""
    if data.fragment:
        parsed = parse_redirect_fragment(data.fragment)
        if parsed is None:
            raise BadRequestException("No access token in redirect fragment")
        access_token, expires_in = parsed
    else:
        access_token, expires_in = data.access_token or "", data.expires_in

    token_provider.store_token(current_clinician.uid, access_token, expires_in)
    return _status(token_provider, current_clinician.uid)


@router.get(
    "/status",
    response_model=CalendarStatusResponse,
    status_code=status.HTTP_200_OK,
    tags=["Calendar"],
    summary="Calendar connection status",
)
async def calendar_status(
    current_clinician: CurrentClinician,
    token_provider: TokenProviderDep,
) -> CalendarStatusResponse:
    return _status(token_provider, current_clinician.uid)


@router.delete(
    "/token",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Calendar"],
    summary="Disconnect Google Calendar",
)
async def disconnect_calendar(
    current_clinician: CurrentClinician,
    token_provider: TokenProviderDep,
) -> None:
    """Forget the clinician's calendar token; sync stops until reconnected."""
    token_provider.clear(current_clinician.uid)
