from pydantic import BaseModel
from typing import Dict, List

from app.schemas.user import UserSummary

class DashboardMetrics(BaseModel):
    total_users: int
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    completion_rate: float
    tasks_by_priority: Dict[str, int]

class PerformanceMetrics(BaseModel):
    user: UserSummary
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    on_time_tasks: int
    completion_rate: float
    on_time_rate: float
    productivity_score: float

class TeamMember(BaseModel):
    id: int
    name: str
    email: str
    productivity_score: float
    tasks_completed: int

    model_config = {
        "from_attributes": True
    }

class TeamMetrics(BaseModel):
    employees: List[TeamMember]
    average_productivity: float
    total_employees: int
