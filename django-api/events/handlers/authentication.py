"""Identity supplied by the upstream gateway.

Credentials are verified before requests reach this service; the gateway
forwards the subject as ``X-Subject-Id`` and ``X-Subject-Role`` headers,
which are trusted as-is.
"""

from dataclasses import dataclass

from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from events.domain import Actor, Role, UserId

SUBJECT_ID_HEADER = "HTTP_X_SUBJECT_ID"
SUBJECT_ROLE_HEADER = "HTTP_X_SUBJECT_ROLE"


@dataclass(frozen=True)
class GatewayUser:
    """Minimal user object DRF can attach to ``request.user``."""

    actor: Actor
    is_authenticated: bool = True
    is_anonymous: bool = False

    @property
    def pk(self) -> str:
        return self.actor.subject_id.value


class GatewayIdentityAuthentication(BaseAuthentication):
    """
    Authenticate from gateway headers.

    Returns:
        None: No subject header present, the request is anonymous.
        tuple: (GatewayUser, None) when both headers are valid.

    Raises:
        AuthenticationFailed: If the headers are present but malformed.
    """

    def authenticate(self, request):
        subject_id = request.META.get(SUBJECT_ID_HEADER, "").strip()
        if not subject_id:
            return None

        raw_role = request.META.get(SUBJECT_ROLE_HEADER, "").strip().lower()
        try:
            role = Role(raw_role)
        except ValueError:
            raise AuthenticationFailed("Unknown subject role")

        return GatewayUser(actor=Actor(subject_id=UserId(subject_id), role=role)), None

    def authenticate_header(self, request):
        return "Gateway"
