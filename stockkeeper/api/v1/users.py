import logging
from fastapi import APIRouter, HTTPException, status
from stockkeeper.core.exceptions import InventoryError
from stockkeeper.schemas.response import SuccessResponse
from stockkeeper.schemas.user import NotificationSettingsRequest, UserCreateRequest, UserResponse
from stockkeeper.services import user_service
from uuid import UUID

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.get("/", response_model=SuccessResponse)
async def list_users_endpoint():
    try:
        users = await user_service.list_users()
        return SuccessResponse(data=[UserResponse.model_validate(user).model_dump(mode="json") for user in users])
    except Exception as e:
        log.error(f"Error listing users: {e}")
        raise HTTPException(status_code=500, detail="Server failed to list users.")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_user_endpoint(request_data: UserCreateRequest):
    try:
        user = await user_service.create_user(**request_data.model_dump())
        return SuccessResponse(data=UserResponse.model_validate(user).model_dump(mode="json"))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error creating user {request_data.username}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create user.")


@router.patch("/{user_id}/notifications", response_model=SuccessResponse)
async def update_notifications_endpoint(user_id: UUID, request_data: NotificationSettingsRequest):
    """Changes who receives alert mails and digests. Fields left out of the body stay as they are."""
    try:
        changes = request_data.model_dump(exclude_unset=True)
        user = await user_service.update_notification_settings(user_id, **changes)
        return SuccessResponse(data=UserResponse.model_validate(user).model_dump(mode="json"))
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error updating notification settings for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Server failed to update notification settings.")
