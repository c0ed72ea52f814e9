"""Post Enforcement — pure validation of post bodies before any store call.

Invariants:
    - Body length counted in characters (str length), bounds inclusive 1..180
    - No trimming: whitespace counts as content, same as the stored value
"""

from timeline.core.domain_types import MIN_BODY_LENGTH, MAX_BODY_LENGTH
from timeline.core.errors import ValidationError


def validate_body(body: object) -> str:
    """Return the body unchanged, or raise ValidationError."""
    if not isinstance(body, str):
        raise ValidationError("Post body must be text", field="body")
    if len(body) < MIN_BODY_LENGTH:
        raise ValidationError("Post body cannot be empty", field="body")
    if len(body) > MAX_BODY_LENGTH:
        raise ValidationError(
            f"Post body is {len(body)} characters; maximum is {MAX_BODY_LENGTH}",
            field="body",
        )
    return body
