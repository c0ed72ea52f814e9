"""Post Routes — create, read, edit and delete through the MutationCoordinator.

Invariants:
    - Identity comes from get_actor (request headers), passed explicitly as ActorContext
    - The client answers the confirmation prompt up front with confirmed=true;
      confirmed=false yields outcome "declined" and touches no store
    - Confirmed edits go through an EditSession built from the current post, so the
      asset change reaching the coordinator is the same tagged value a UI would produce
    - Declined edits never read the post: a missing id still answers "declined"

Design Decisions:
    - Multipart forms (not JSON): the asset travels as an UploadFile, read through
      read_upload so oversized parts are rejected without buffering them whole
    - Body/asset validation is left to core/: a 181-char body reaches validate_body
      and comes back as the same ValidationError the coordinator raises elsewhere
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from timeline.api.dependencies import Services, get_actor, get_services, read_upload
from timeline.core.actor_context import ActorContext
from timeline.core.assets import AssetChange, Attached, Removed, Replaced, Unchanged
from timeline.core.edit_session import EditSession
from timeline.core.errors import ValidationError
from timeline.schemas.post import MutationResponse, PostResponse
from timeline.services.mutation_coordinator import MutationResult

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/posts", tags=["posts"])

AssetChangeField = Literal["keep", "remove", "replace"]


def _answer(confirmed: bool):
    """Confirmation callback replaying the client's answer."""
    return lambda prompt: confirmed


async def _asset_change(kind: str, file: UploadFile | None) -> AssetChange:
    if kind == "remove":
        return Removed()
    if kind == "replace":
        data = await read_upload(file)
        if data is None:
            raise ValidationError(
                "A replacement file is required", field="file",
            )
        return Replaced(data)
    return Unchanged()


def _to_response(result: MutationResult, services: Services) -> MutationResponse:
    asset_url = None
    if isinstance(result.asset, Attached):
        asset_url = services.assets.resolve_url(result.asset.locator)
    return MutationResponse(
        outcome=result.outcome, post_id=result.post_id, asset_url=asset_url,
    )


@router.post("", response_model=MutationResponse)
async def create_post(
    response: Response,
    body: str = Form(...),
    file: UploadFile | None = File(None),
    confirmed: bool = Form(False),
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Publish a post, optionally with one attached asset."""
    data = await read_upload(file)
    result = await services.coordinator.create_post(
        actor, body, data, confirm=_answer(confirmed),
    )
    if result.applied:
        response.status_code = status.HTTP_201_CREATED
    return _to_response(result, services)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, services: Services = Depends(get_services)):
    entry = await services.coordinator.get_post(post_id)
    return PostResponse.from_entry(entry, services.assets.resolve_url)


@router.patch("/{post_id}", response_model=MutationResponse)
async def edit_post(
    post_id: str,
    body: str = Form(...),
    asset_change: AssetChangeField = Form("keep"),
    file: UploadFile | None = File(None),
    confirmed: bool = Form(False),
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Edit body and asset of an owned post."""
    change = await _asset_change(asset_change, file)
    if not confirmed:
        # Declined edits validate and return without loading the post
        result = await services.coordinator.edit_post(
            actor, post_id, body, change, confirm=_answer(False),
        )
        return _to_response(result, services)

    session = EditSession()
    session.select(await services.coordinator.get_post(post_id))
    session.set_body(body)
    match change:
        case Removed():
            session.remove_asset()
        case Replaced(data=data):
            session.replace_asset(data)

    result = await services.coordinator.commit_edit(
        actor, session, confirm=_answer(confirmed),
    )
    return _to_response(result, services)


@router.delete("/{post_id}", response_model=MutationResponse)
async def delete_post(
    post_id: str,
    confirmed: bool = Query(False),
    has_asset: bool | None = Query(None),
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    result = await services.coordinator.delete_post(
        actor, post_id, has_asset, confirm=_answer(confirmed),
    )
    return _to_response(result, services)
