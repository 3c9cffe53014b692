# app/schemas/task.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List

from app.models.task import TaskStatus, TaskPriority
from app.schemas.user import UserSummary
from app.utils.timeutils import to_naive_utc

class TaskCreate(BaseModel):
    title: str
    description: str
    assigned_to: int
    due_date: datetime
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    tags: List[str] = []

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v):
        return to_naive_utc(v)

    @field_validator('tags')
    @classmethod
    def strip_tags(cls, v):
        return [tag.strip() for tag in v if tag and tag.strip()]

class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assigned_to: Optional[int] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_hours: Optional[float] = Field(default=None, ge=0)
    tags: Optional[List[str]] = None

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v):
        return to_naive_utc(v)

    @field_validator('tags')
    @classmethod
    def strip_tags(cls, v):
        if v is None:
            return v
        return [tag.strip() for tag in v if tag and tag.strip()]

class StatusUpdate(BaseModel):
    status: TaskStatus

class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1)

class CommentOut(BaseModel):
    id: int
    author_id: int
    author: Optional[UserSummary] = None
    text: str
    created_at: datetime

class TaskOut(BaseModel):
    id: int
    title: str
    description: str
    assigned_to: int
    assigned_by: int
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    completed_at: Optional[datetime] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    tags: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    # Resolved by lookup, None when the user no longer exists
    assignee: Optional[UserSummary] = None
    assigner: Optional[UserSummary] = None
    comments: List[CommentOut] = []
