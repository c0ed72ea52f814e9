"""Actor Context — explicit identity value threaded into every mutating call.

Invariants:
    - Built once per request by the shell; the core never reads ambient identity
    - Immutable: a mutation cannot change who it runs as halfway through
"""

from dataclasses import dataclass

from timeline.core.domain_types import ANONYMOUS_DISPLAY_NAME
from timeline.core.repository_protocols import IdentityProvider


@dataclass(frozen=True)
class ActorContext:
    actor_id: str | None = None
    display_name: str | None = None

    @classmethod
    def from_identity(cls, identity: IdentityProvider) -> "ActorContext":
        return cls(identity.current_actor_id, identity.current_display_name)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.actor_id)

    def username(self, fallback: str = ANONYMOUS_DISPLAY_NAME) -> str:
        """Display name captured on new posts."""
        return self.display_name or fallback
