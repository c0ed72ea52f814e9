"""Profile Routes — avatar upload for the signed-in actor."""

from fastapi import APIRouter, Depends, File, UploadFile

from timeline.api.dependencies import Services, get_actor, get_services, read_upload
from timeline.core.actor_context import ActorContext
from timeline.core.errors import ValidationError
from timeline.schemas.post import AvatarResponse

router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])


@router.put("/me/avatar", response_model=AvatarResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    actor: ActorContext = Depends(get_actor),
    services: Services = Depends(get_services),
):
    """Replace the caller's avatar at the fixed per-actor path."""
    data = await read_upload(file)
    if data is None:
        raise ValidationError("An avatar image is required", field="file")
    url = await services.assets.upload_avatar(actor, data)
    return AvatarResponse(avatar_url=url)
