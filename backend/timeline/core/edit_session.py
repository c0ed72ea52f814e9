"""Edit Session — client-local working copy for editing one post.

Invariants:
    - VIEWING → EDITING (select) → COMMITTING → VIEWING (finish)
    - cancel() from EDITING discards the working copy and returns to VIEWING
    - A failed or declined commit returns to EDITING with the working copy intact
    - Selecting another post while EDITING discards the previous working copy;
      selecting the same post again toggles back to VIEWING
    - Nothing here is persisted; the coordinator turns a draft into store calls

Design Decisions:
    - Pure dataclass, no IO: the shell or a UI owns one per open view
    - Asset working copy uses the tagged AssetState values; a pending
      replacement is kept alongside as raw bytes
"""

from dataclasses import dataclass, field

from timeline.core.assets import (
    AssetChange, AssetState, Attached, NoAsset, PendingRemoval,
    Removed, Replaced, Unchanged, validate_asset_size,
)
from timeline.core.domain_types import EditPhase
from timeline.core.errors import InvalidTransitionError
from timeline.core.feed_projection import FeedEntry


@dataclass(frozen=True)
class EditDraft:
    """What a commit asks the coordinator to do."""
    post_id: str
    body: str
    asset_change: AssetChange


@dataclass
class EditSession:
    phase: EditPhase = EditPhase.VIEWING
    post_id: str | None = None
    body: str | None = None
    asset: AssetState = field(default_factory=NoAsset)
    replacement: bytes | None = None
    _original_asset: AssetState = field(default_factory=NoAsset, repr=False)

    @property
    def is_editing(self) -> bool:
        return self.phase == EditPhase.EDITING

    def select(self, entry: FeedEntry) -> None:
        if self.phase == EditPhase.COMMITTING:
            raise InvalidTransitionError(self.phase.value, "select a post")
        if self.phase == EditPhase.EDITING and self.post_id == entry.id:
            self._reset()
            return
        self.phase = EditPhase.EDITING
        self.post_id = entry.id
        self.body = entry.body
        self.asset = entry.asset
        self._original_asset = entry.asset
        self.replacement = None

    def set_body(self, body: str) -> None:
        self._require_editing("change the body")
        self.body = body

    def remove_asset(self) -> None:
        self._require_editing("remove the asset")
        self.replacement = None
        if isinstance(self._original_asset, Attached):
            self.asset = PendingRemoval(self._original_asset.locator)
        else:
            self.asset = NoAsset()

    def replace_asset(self, data: bytes) -> None:
        self._require_editing("replace the asset")
        validate_asset_size(len(data))
        self.replacement = data

    def keep_asset(self) -> None:
        """Undo a pending removal or replacement."""
        self._require_editing("restore the asset")
        self.asset = self._original_asset
        self.replacement = None

    @property
    def asset_change(self) -> AssetChange:
        if self.replacement is not None:
            return Replaced(self.replacement)
        if isinstance(self.asset, PendingRemoval):
            return Removed()
        return Unchanged()

    def begin_commit(self) -> EditDraft:
        self._require_editing("commit")
        self.phase = EditPhase.COMMITTING
        return EditDraft(self.post_id, self.body, self.asset_change)

    def abort_commit(self) -> None:
        if self.phase != EditPhase.COMMITTING:
            raise InvalidTransitionError(self.phase.value, "abort a commit")
        self.phase = EditPhase.EDITING

    def finish(self) -> None:
        if self.phase != EditPhase.COMMITTING:
            raise InvalidTransitionError(self.phase.value, "finish a commit")
        self._reset()

    def cancel(self) -> None:
        if self.phase == EditPhase.COMMITTING:
            raise InvalidTransitionError(self.phase.value, "cancel")
        self._reset()

    def _require_editing(self, action: str) -> None:
        if self.phase != EditPhase.EDITING:
            raise InvalidTransitionError(self.phase.value, action)

    def _reset(self) -> None:
        self.phase = EditPhase.VIEWING
        self.post_id = None
        self.body = None
        self.asset = NoAsset()
        self._original_asset = NoAsset()
        self.replacement = None
