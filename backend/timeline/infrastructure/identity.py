"""Header Identity — IdentityProvider fed by the request headers an auth proxy sets.

Invariants:
    - Absent or blank X-Actor-Id means signed out (current_actor_id is None)
    - Display name is optional; blank counts as absent
"""

from dataclasses import dataclass

from starlette.datastructures import Headers

ACTOR_HEADER = "X-Actor-Id"
DISPLAY_NAME_HEADER = "X-Display-Name"


@dataclass(frozen=True)
class HeaderIdentityProvider:
    current_actor_id: str | None = None
    current_display_name: str | None = None

    @classmethod
    def from_headers(cls, headers: Headers) -> "HeaderIdentityProvider":
        actor_id = (headers.get(ACTOR_HEADER) or "").strip()
        display_name = (headers.get(DISPLAY_NAME_HEADER) or "").strip()
        return cls(actor_id or None, display_name or None)
