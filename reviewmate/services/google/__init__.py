"""Google integrations."""

from .business_profile import (
    BusinessProfileAuthError,
    BusinessProfileConfig,
    BusinessProfileCredentialsError,
    BusinessProfileService,
    GoogleProfile,
    Location,
    OAuthState,
)

__all__ = [
    "BusinessProfileAuthError",
    "BusinessProfileConfig",
    "BusinessProfileCredentialsError",
    "BusinessProfileService",
    "GoogleProfile",
    "Location",
    "OAuthState",
]
