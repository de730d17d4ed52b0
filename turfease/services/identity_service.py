"""Federated sign-in through Firebase Authentication."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import DefaultCredentialsError

from turfease.config import get_settings
from turfease.services.errors import DependencyFailureError, UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FederatedIdentity:
    subject_id: str
    email: str
    display_name: str = ""
    picture_url: str = ""

    @property
    def name_parts(self) -> tuple[str, str]:
        first, _, last = (self.display_name or "").strip().partition(" ")
        return first, last.strip()


class IdentityProvider(Protocol):
    async def verify(self, token: str) -> FederatedIdentity: ...


class FirebaseIdentityProvider:
    """Verifies Firebase ID tokens with the Admin SDK."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self._app: Optional[firebase_admin.App] = None

    def _get_app(self) -> firebase_admin.App:
        if self._app is not None:
            return self._app
        try:
            self._app = firebase_admin.get_app()
        except ValueError:
            options = {"projectId": self.settings.firebase_project_id} if self.settings.firebase_project_id else None
            if self.settings.firebase_credentials_path:
                cred = credentials.Certificate(self.settings.firebase_credentials_path)
                logger.info("Firebase Admin initialized with service account credentials")
            else:
                cred = credentials.ApplicationDefault()
                logger.info("Firebase Admin initialized with application default credentials")
            self._app = firebase_admin.initialize_app(cred, options)
        return self._app

    async def verify(self, token: str) -> FederatedIdentity:
        if not token:
            raise UnauthorizedError("invalid_token", "Firebase token is required")

        try:
            app = self._get_app()
        except (DefaultCredentialsError, FirebaseError, OSError, ValueError) as exc:
            logger.error(f"Firebase Admin could not be initialized: {exc}")
            raise DependencyFailureError("identity_unavailable", "Identity provider unavailable") from exc

        try:
            claims = await asyncio.wait_for(
                asyncio.to_thread(firebase_auth.verify_id_token, token, app),
                timeout=self.settings.firebase_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Firebase token verification timed out")
            raise DependencyFailureError("identity_timeout", "Identity provider did not respond") from exc
        except (firebase_auth.CertificateFetchError, DefaultCredentialsError) as exc:
            logger.error(f"Firebase certificate fetch failed: {exc}")
            raise DependencyFailureError("identity_unavailable", "Identity provider unavailable") from exc
        except (firebase_auth.InvalidIdTokenError, ValueError) as exc:
            logger.warning(f"Firebase token rejected: {exc}")
            raise UnauthorizedError("invalid_token", "Invalid Firebase token") from exc

        email = (claims.get("email") or "").strip().lower()
        if not email:
            raise UnauthorizedError("invalid_token", "Firebase token has no email")

        return FederatedIdentity(
            subject_id=claims["uid"],
            email=email,
            display_name=claims.get("name") or "",
            picture_url=claims.get("picture") or "",
        )
