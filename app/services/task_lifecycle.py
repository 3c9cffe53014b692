# app/services/task_lifecycle.py
"""
Task lifecycle: creation, status transitions, comments and deletion.

Status changes go through a conditional UPDATE keyed on the status the
transition was validated against, so two concurrent changes to the same task
cannot both apply. Only the request whose UPDATE actually moves a task into
``completed`` increments the assignee's ``tasks_completed`` counter, which
makes re-sending a completion harmless.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.task import Task, TaskComment, TaskPriority, TaskStatus
from app.models.user import User
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.metrics import status_transitions, tasks_created
from app.services.storage import unit_of_work
from app.utils.errors import InvalidTransition, NotFound, StorageError, ValidationError
from app.utils.permissions import Action, Principal, authorize
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}

TERMINAL_STATES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})

# Attempts at the conditional status write before giving up on a hot task
MAX_TRANSITION_ATTEMPTS = 3


def check_transition(current: TaskStatus, new: TaskStatus) -> bool:
    """Return True when ``current -> new`` is a real transition, False for a no-op.

    Raises InvalidTransition when the state machine forbids it.
    """
    if current == new:
        return False
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current.value, new.value)
    return True


class TaskLifecycleManager:
    def __init__(self, db: Session, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    def _get_or_404(self, task_id: int) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFound("Task")
        return task

    def _require_active_assignee(self, user_id: int) -> User:
        assignee = self.db.query(User).filter(User.id == user_id, User.is_active == True).first()
        if not assignee:
            raise ValidationError("assigned_to", "Assigned user not found or inactive")
        return assignee

    @staticmethod
    def _require_text(field: str, value: Optional[str]) -> str:
        if value is None or not value.strip():
            raise ValidationError(field, f"{field.capitalize()} is required")
        return value.strip()

    def create_task(self, principal: Principal, data: TaskCreate) -> Task:
        authorize(principal, Action.CREATE_TASK)

        title = self._require_text("title", data.title)
        description = self._require_text("description", data.description)
        if data.due_date is None:
            raise ValidationError("due_date", "Due date is required")
        self._require_active_assignee(data.assigned_to)

        now = self.clock()
        task = Task(
            title=title,
            description=description,
            assigned_to=data.assigned_to,
            assigned_by=principal.id,
            status=TaskStatus.PENDING,
            priority=data.priority or TaskPriority.MEDIUM,
            due_date=data.due_date,
            estimated_hours=data.estimated_hours,
            tags=list(data.tags or []),
            created_at=now,
            updated_at=now,
        )
        with unit_of_work(self.db, "creating task"):
            self.db.add(task)
        self.db.refresh(task)

        tasks_created.labels(status=task.status.value, priority=task.priority.value).inc()
        logger.info(f"Task created: {task.title} (id={task.id}) by user {principal.id}")
        return task

    def list_tasks(
        self,
        principal: Principal,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        assigned_to: Optional[int] = None,
    ) -> List[Task]:
        """Newest first. Employees only ever see their own assignments."""
        authorize(principal, Action.LIST_TASKS)

        query = self.db.query(Task)
        if not principal.is_admin:
            query = query.filter(Task.assigned_to == principal.id)
        elif assigned_to is not None:
            query = query.filter(Task.assigned_to == assigned_to)

        if status:
            query = query.filter(Task.status == status)
        if priority:
            query = query.filter(Task.priority == priority)

        return query.order_by(Task.created_at.desc(), Task.id.desc()).all()

    def get_task(self, principal: Principal, task_id: int) -> Task:
        task = self._get_or_404(task_id)
        authorize(principal, Action.READ_TASK, owner_id=task.assigned_to)
        return task

    def update_task(self, principal: Principal, task_id: int, data: TaskUpdate) -> Task:
        task = self._get_or_404(task_id)

        changes = data.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)

        if changes:
            authorize(principal, Action.UPDATE_TASK_FIELDS, owner_id=task.assigned_to)
        if new_status is not None or not changes:
            authorize(principal, Action.UPDATE_TASK_STATUS, owner_id=task.assigned_to)

        changes = self._validate_changes(changes)

        with unit_of_work(self.db, f"updating task {task_id}"):
            if changes:
                for field, value in changes.items():
                    setattr(task, field, value)
                task.updated_at = self.clock()
                self.db.flush()
            if new_status is not None:
                self._transition(task, TaskStatus(new_status))

        self.db.refresh(task)
        if changes:
            logger.info(f"Task updated: {task.title} (id={task.id}) fields={sorted(changes)}")
        return task

    def change_status(self, principal: Principal, task_id: int, new_status: TaskStatus) -> Task:
        return self.update_task(principal, task_id, TaskUpdate(status=new_status))

    def _validate_changes(self, changes: dict) -> dict:
        if "title" in changes:
            changes["title"] = self._require_text("title", changes["title"])
        if "description" in changes:
            changes["description"] = self._require_text("description", changes["description"])
        if "due_date" in changes and changes["due_date"] is None:
            raise ValidationError("due_date", "Due date is required")
        if "priority" in changes and changes["priority"] is None:
            raise ValidationError("priority", "Priority cannot be null")
        if "assigned_to" in changes:
            if changes["assigned_to"] is None:
                raise ValidationError("assigned_to", "Task must be assigned to a user")
            self._require_active_assignee(changes["assigned_to"])
        if "tags" in changes and changes["tags"] is None:
            changes["tags"] = []
        return changes

    def _transition(self, task: Task, new_status: TaskStatus) -> bool:
        """Apply a status change with a compare-and-set on the current status.

        Returns False when the task already has ``new_status``.
        """
        for _ in range(MAX_TRANSITION_ATTEMPTS):
            current = self.db.execute(
                select(Task.status).where(Task.id == task.id)
            ).scalar_one_or_none()
            if current is None:
                raise NotFound("Task")
            if not check_transition(current, new_status):
                return False

            now = self.clock()
            values = {"status": new_status, "updated_at": now}
            if new_status == TaskStatus.COMPLETED:
                values["completed_at"] = now

            result = self.db.execute(
                update(Task)
                .where(Task.id == task.id, Task.status == current)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Lost the race; re-read and validate against the new status
                continue

            if new_status == TaskStatus.COMPLETED:
                self._record_completion(task.assigned_to)
            status_transitions.labels(from_status=current.value, to_status=new_status.value).inc()
            logger.info(f"Task {task.id} status {current.value} -> {new_status.value}")
            return True

        raise StorageError(f"Task {task.id} status kept changing concurrently")

    def _record_completion(self, user_id: int) -> None:
        result = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(tasks_completed=User.tasks_completed + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Completed task assignee {user_id} no longer exists; counter not incremented")

    def delete_task(self, principal: Principal, task_id: int) -> None:
        """Remove a task. The assignee's tasks_completed is left as it is."""
        authorize(principal, Action.DELETE_TASK)
        task = self._get_or_404(task_id)
        title = task.title
        with unit_of_work(self.db, f"deleting task {task_id}"):
            self.db.delete(task)
        logger.info(f"Task deleted: {title} (id={task_id})")

    def add_comment(self, principal: Principal, task_id: int, text: str) -> Task:
        task = self._get_or_404(task_id)
        authorize(principal, Action.ADD_COMMENT, owner_id=task.assigned_to)
        text = self._require_text("text", text)

        now = self.clock()
        with unit_of_work(self.db, f"commenting on task {task_id}"):
            self.db.add(TaskComment(task_id=task.id, author_id=principal.id, text=text, created_at=now))
            task.updated_at = now
        self.db.refresh(task)
        logger.info(f"Comment added to task {task.id} by user {principal.id}")
        return task
