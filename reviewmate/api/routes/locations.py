"""Business Profile locations of the signed-in account."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from reviewmate.api.dependencies import get_business_profile_service, get_database_with_user
from reviewmate.api.schemas import LocationResponse, LocationsResponse
from reviewmate.automation.errors import ExternalFetchFailure, QuotaExceeded
from reviewmate.services.google.business_profile import (
    BusinessProfileAuthError,
    BusinessProfileCredentialsError,
    BusinessProfileService,
)

router = APIRouter()


@router.get("/locations", response_model=LocationsResponse)
def list_locations(
    context=Depends(get_database_with_user),
    service: BusinessProfileService = Depends(get_business_profile_service),
) -> LocationsResponse:
    """Return every location the account can manage, across all of its accounts."""

    user_id, db = context
    user = db.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    try:
        credentials = service.build_credentials(user)
        locations = service.list_locations(credentials)
    except BusinessProfileAuthError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BusinessProfileCredentialsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except QuotaExceeded as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc)) from exc
    except ExternalFetchFailure as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return LocationsResponse(
        locations=[LocationResponse(**location.model_dump()) for location in locations]
    )
