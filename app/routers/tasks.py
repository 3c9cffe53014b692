# app/routers/tasks.py
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.database import get_db
from app.models.task import Task, TaskPriority, TaskStatus
from app.schemas.task import CommentCreate, CommentOut, StatusUpdate, TaskCreate, TaskOut, TaskUpdate
from app.schemas.user import UserSummary
from app.services.task_lifecycle import TaskLifecycleManager
from app.services.users import UserDirectory
from app.utils.auth import get_current_principal
from app.utils.permissions import Principal

router = APIRouter(prefix="/tasks", tags=["Tasks"])

def get_lifecycle(db: Session = Depends(get_db)) -> TaskLifecycleManager:
    return TaskLifecycleManager(db)

def serialize_tasks(db: Session, tasks: List[Task]) -> List[TaskOut]:
    """Build responses, resolving assignee, assigner and comment authors by id"""
    user_ids = set()
    for task in tasks:
        user_ids.update([task.assigned_to, task.assigned_by])
        user_ids.update(comment.author_id for comment in task.comments)
    users = UserDirectory(db).lookup(user_ids)

    def summary(user_id: int) -> Optional[UserSummary]:
        user = users.get(user_id)
        return UserSummary.model_validate(user) if user else None

    return [
        TaskOut(
            id=task.id,
            title=task.title,
            description=task.description,
            assigned_to=task.assigned_to,
            assigned_by=task.assigned_by,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            completed_at=task.completed_at,
            estimated_hours=task.estimated_hours,
            actual_hours=task.actual_hours,
            tags=task.tags or [],
            created_at=task.created_at,
            updated_at=task.updated_at,
            assignee=summary(task.assigned_to),
            assigner=summary(task.assigned_by),
            comments=[
                CommentOut(
                    id=comment.id,
                    author_id=comment.author_id,
                    author=summary(comment.author_id),
                    text=comment.text,
                    created_at=comment.created_at,
                )
                for comment in task.comments
            ],
        )
        for task in tasks
    ]

@router.get("/", response_model=List[TaskOut])
def get_all_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    assigned_to: Optional[int] = None,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    """List tasks. Admins see everything; employees see only their own assignments."""
    tasks = lifecycle.list_tasks(
        principal, status=status, priority=priority, assigned_to=assigned_to
    )
    return serialize_tasks(lifecycle.db, tasks)

@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    """Create a task - admin only"""
    db_task = lifecycle.create_task(principal, task)
    return serialize_tasks(lifecycle.db, [db_task])[0]

@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    db_task = lifecycle.get_task(principal, task_id)
    return serialize_tasks(lifecycle.db, [db_task])[0]

@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    task_update: TaskUpdate,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    """Partial update. Employees may only change the status of their own tasks."""
    db_task = lifecycle.update_task(principal, task_id, task_update)
    return serialize_tasks(lifecycle.db, [db_task])[0]

@router.put("/{task_id}/status", response_model=TaskOut)
def update_task_status(
    task_id: int,
    status_update: StatusUpdate,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    """Update only the status of a task"""
    db_task = lifecycle.change_status(principal, task_id, status_update.status)
    return serialize_tasks(lifecycle.db, [db_task])[0]

@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    """Delete a task - admin only"""
    lifecycle.delete_task(principal, task_id)
    return {"message": "Task deleted successfully"}

@router.post("/{task_id}/comments", response_model=TaskOut)
def add_comment(
    task_id: int,
    comment: CommentCreate,
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
    principal: Principal = Depends(get_current_principal)
):
    db_task = lifecycle.add_comment(principal, task_id, comment.text)
    return serialize_tasks(lifecycle.db, [db_task])[0]
