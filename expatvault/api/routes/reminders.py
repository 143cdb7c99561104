"""Document reminder endpoints."""

from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, StrictInt

from expatvault.api.dependencies import get_current_user, get_reminder_service
from expatvault.core.exceptions import ValidationError
from expatvault.models import Reminder, ReminderStatus, ReminderView, User
from expatvault.vault.reminders import ReminderService

router = APIRouter(prefix="/vault/reminders", tags=["reminders"])


class ReminderActionRequest(BaseModel):
    action: str = Field(..., description='"snooze" or "complete"')
    days: Optional[StrictInt] = Field(None, description="Snooze length in days, 1 to 30")


class ReminderListResponse(BaseModel):
    success: bool = True
    reminders: List[ReminderView]
    count: int


class ReminderActionResponse(BaseModel):
    success: bool = True
    reminder: Reminder


class ReminderDeleteResponse(BaseModel):
    success: bool = True
    message: Literal["Reminder deleted successfully"] = "Reminder deleted successfully"


@router.get("", response_model=ReminderListResponse)
async def list_reminders(
    status: Optional[ReminderStatus] = None,
    current_user: User = Depends(get_current_user),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderListResponse:
    """List the caller's reminders, nearest deadline first."""

    reminders = await service.list(current_user, status)
    return ReminderListResponse(reminders=reminders, count=len(reminders))


@router.post("/{reminder_id}", response_model=ReminderActionResponse)
async def apply_reminder_action(
    reminder_id: str,
    payload: ReminderActionRequest,
    current_user: User = Depends(get_current_user),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderActionResponse:
    """Snooze a reminder for 1-30 days or mark it completed."""

    if payload.action == "snooze":
        reminder = await service.snooze(reminder_id=reminder_id, days=payload.days, current_user=current_user)
    elif payload.action == "complete":
        reminder = await service.complete(reminder_id=reminder_id, current_user=current_user)
    else:
        raise ValidationError('Invalid action. Use "snooze" or "complete"')
    return ReminderActionResponse(reminder=reminder)


@router.delete("/{reminder_id}", response_model=ReminderDeleteResponse)
async def delete_reminder(
    reminder_id: str,
    current_user: User = Depends(get_current_user),
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderDeleteResponse:
    await service.delete(reminder_id=reminder_id, current_user=current_user)
    return ReminderDeleteResponse()
