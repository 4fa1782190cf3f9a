from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from models import EntryState


# ============ Space ============

class SpaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    subject: Optional[str] = None


class SpaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    subject: Optional[str] = None
    slug: str
    user_id: str
    is_active: bool
    activated_at: Optional[datetime] = None
    created_at: datetime


class SpaceDetailResponse(SpaceResponse):
    is_owner: bool
    active_since: Optional[datetime] = None


class SpaceStatusUpdate(BaseModel):
    active: bool


class SpaceStatusResponse(BaseModel):
    success: bool = True
    space_id: UUID
    is_active: bool
    session_id: Optional[UUID] = None


# ============ Queue ============

class QueueJoin(BaseModel):
    message: Optional[str] = Field(None, max_length=500)


class QueueJoinResponse(BaseModel):
    success: bool = True
    already_in_queue: bool
    entry_id: UUID


class QueueEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    space_id: UUID
    user_id: str
    message: Optional[str] = None
    position: int
    is_paused: bool
    is_current_speaker: bool
    state: EntryState
    joined_at: datetime
    started_speaking_at: Optional[datetime] = None
    total_speaking_time: int


class PauseUpdate(BaseModel):
    paused: bool


class PromotionResponse(BaseModel):
    success: bool = True
    next_speaker_id: Optional[UUID] = None
    promoted: bool = False
    spoken_seconds: Optional[int] = None


class MoveResponse(BaseModel):
    success: bool = True
    moved: bool


class ActionResponse(BaseModel):
    success: bool = True


# ============ History ============

class ActiveQueueResponse(BaseModel):
    id: UUID
    space_id: UUID
    space_name: str
    slug: str
    active_since: Optional[datetime] = None
    position: int
    is_current_speaker: bool
    is_paused: bool
    message: Optional[str] = None


class SessionHistoryItem(BaseModel):
    id: UUID
    space_id: UUID
    space_name: str
    space_slug: str
    activated_at: datetime
    deactivated_at: Optional[datetime] = None
    duration_minutes: int
    queue_count: int
    total_speaking_time: int


class SessionHistoryResponse(BaseModel):
    items: List[SessionHistoryItem]
    total: int
    page: int
    page_size: int
