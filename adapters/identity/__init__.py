"""Third-party identity adapters."""

from .google_adapter import (
    GoogleAuthError,
    GoogleIdentity,
    GoogleIdentityAdapter,
    google_identity,
)

__all__ = ["GoogleAuthError", "GoogleIdentity", "GoogleIdentityAdapter", "google_identity"]
