# app/services/analytics.py
"""
Dashboard, per-employee and team productivity metrics.

Rates are carried unrounded through every calculation and rounded to two
decimals only when placed in a response. Reading an employee's performance
also stores the freshly computed score on the user row (write-through cache);
team analytics reports those cached scores.
"""

import logging
from typing import Callable, Dict

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.models.task import Task, TaskPriority, TaskStatus
from app.models.user import User, UserRole
from app.schemas.analytics import DashboardMetrics, PerformanceMetrics, TeamMember, TeamMetrics
from app.schemas.user import UserSummary
from app.services.metrics import productivity_gauge
from app.services.storage import unit_of_work
from app.utils.errors import NotFound
from app.utils.permissions import Action, Principal, authorize
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

COMPLETION_WEIGHT = 0.6
ON_TIME_WEIGHT = 0.4


def percentage(part: int, whole: int) -> float:
    """part / whole as a percentage, 0 when whole is 0"""
    if not whole:
        return 0.0
    return part / whole * 100


def productivity_score(completion_rate: float, on_time_rate: float) -> float:
    return completion_rate * COMPLETION_WEIGHT + on_time_rate * ON_TIME_WEIGHT


class AnalyticsAggregator:
    def __init__(self, db: Session, clock: Callable = utcnow):
        self.db = db
        self.clock = clock

    def _count_by(self, column, *criteria) -> Dict:
        rows = (
            self.db.query(column, func.count(Task.id))
            .filter(*criteria)
            .group_by(column)
            .all()
        )
        return {key: count for key, count in rows}

    def get_dashboard(self, principal: Principal) -> DashboardMetrics:
        authorize(principal, Action.VIEW_DASHBOARD)

        by_status = self._count_by(Task.status)
        by_priority = self._count_by(Task.priority)
        total_tasks = sum(by_status.values())
        completed_tasks = by_status.get(TaskStatus.COMPLETED, 0)

        overdue_tasks = self.db.query(func.count(Task.id)).filter(
            Task.status != TaskStatus.COMPLETED,
            Task.due_date < self.clock(),
        ).scalar()
        total_users = self.db.query(func.count(User.id)).filter(
            User.role == UserRole.EMPLOYEE.value
        ).scalar()

        return DashboardMetrics(
            total_users=total_users or 0,
            total_tasks=total_tasks,
            completed_tasks=completed_tasks,
            pending_tasks=by_status.get(TaskStatus.PENDING, 0),
            in_progress_tasks=by_status.get(TaskStatus.IN_PROGRESS, 0),
            overdue_tasks=overdue_tasks or 0,
            completion_rate=round(percentage(completed_tasks, total_tasks), 2),
            tasks_by_priority={
                priority.value: by_priority.get(priority, 0) for priority in TaskPriority
            },
        )

    def get_employee_performance(self, principal: Principal, user_id: int) -> PerformanceMetrics:
        """Compute a user's metrics and refresh their cached productivity_score"""
        authorize(principal, Action.VIEW_PERFORMANCE, owner_id=user_id)

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User")

        by_status = self._count_by(Task.status, Task.assigned_to == user_id)
        total_tasks = sum(by_status.values())
        completed_tasks = by_status.get(TaskStatus.COMPLETED, 0)
        on_time_tasks = self.db.query(func.count(Task.id)).filter(
            Task.assigned_to == user_id,
            Task.status == TaskStatus.COMPLETED,
            Task.completed_at <= Task.due_date,
        ).scalar() or 0

        completion_rate = percentage(completed_tasks, total_tasks)
        on_time_rate = percentage(on_time_tasks, completed_tasks)
        score = round(productivity_score(completion_rate, on_time_rate), 2)

        with unit_of_work(self.db, f"caching productivity score for user {user_id}"):
            self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(productivity_score=score)
                .execution_options(synchronize_session=False)
            )
        productivity_gauge.labels(user_id=str(user_id), user_name=user.name).set(score)
        logger.debug(f"Productivity score for user {user_id} refreshed to {score}")

        return PerformanceMetrics(
            user=UserSummary(id=user.id, name=user.name, email=user.email),
            total_tasks=total_tasks,
            completed_tasks=completed_tasks,
            pending_tasks=by_status.get(TaskStatus.PENDING, 0),
            on_time_tasks=on_time_tasks,
            completion_rate=round(completion_rate, 2),
            on_time_rate=round(on_time_rate, 2),
            productivity_score=score,
        )

    def get_team_analytics(self, principal: Principal) -> TeamMetrics:
        authorize(principal, Action.VIEW_TEAM_ANALYTICS)

        employees = (
            self.db.query(User)
            .filter(User.role == UserRole.EMPLOYEE.value)
            .order_by(User.id)
            .all()
        )
        members = [TeamMember.model_validate(employee) for employee in employees]
        if members:
            average = sum(member.productivity_score for member in members) / len(members)
        else:
            average = 0.0

        return TeamMetrics(
            employees=members,
            average_productivity=round(average, 2),
            total_employees=len(members),
        )
