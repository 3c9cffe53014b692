# app/utils/permissions.py
"""
Role based authorization table.

Every task and user operation asks ``authorize`` before it touches the
database. The decision depends only on the caller's role, the caller's id and
the id of the user who owns the resource (a task's assignee, or the user
record itself), so the table can be exercised without a database or HTTP.
"""

import enum
import logging
from typing import NamedTuple, Optional

from app.models.user import UserRole
from app.utils.errors import Unauthorized

logger = logging.getLogger(__name__)


class Principal(NamedTuple):
    """The authenticated caller"""

    id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(id=user.id, role=user.role)


class Action(str, enum.Enum):
    CREATE_TASK = "create_task"
    LIST_TASKS = "list_tasks"
    READ_TASK = "read_task"
    UPDATE_TASK_FIELDS = "update_task_fields"
    UPDATE_TASK_STATUS = "update_task_status"
    DELETE_TASK = "delete_task"
    ADD_COMMENT = "add_comment"
    LIST_USERS = "list_users"
    READ_USER = "read_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    VIEW_PERFORMANCE = "view_performance"
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_TEAM_ANALYTICS = "view_team_analytics"


# Caller relation to the resource
ADMIN = "admin"
OWNER = "owner"
NON_OWNER = "non_owner"

# Listing has no single resource; an employee lists their own scope, so the
# employee column for LIST_TASKS is OWNER.
RULES = {
    Action.CREATE_TASK:         {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.LIST_TASKS:          {ADMIN: True, OWNER: True,  NON_OWNER: False},
    Action.READ_TASK:           {ADMIN: True, OWNER: True,  NON_OWNER: False},
    Action.UPDATE_TASK_FIELDS:  {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.UPDATE_TASK_STATUS:  {ADMIN: True, OWNER: True,  NON_OWNER: False},
    Action.DELETE_TASK:         {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.ADD_COMMENT:         {ADMIN: True, OWNER: True,  NON_OWNER: False},
    Action.LIST_USERS:          {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.READ_USER:           {ADMIN: True, OWNER: True,  NON_OWNER: False},
    Action.UPDATE_USER:         {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.DELETE_USER:         {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.VIEW_PERFORMANCE:    {ADMIN: True, OWNER: True,  NON_OWNER: False},
    Action.VIEW_DASHBOARD:      {ADMIN: True, OWNER: False, NON_OWNER: False},
    Action.VIEW_TEAM_ANALYTICS: {ADMIN: True, OWNER: False, NON_OWNER: False},
}


class Decision(NamedTuple):
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


def relation_to(principal: Principal, owner_id: Optional[int]) -> Optional[str]:
    """Classify the caller as admin, owner or non-owner of a resource.

    Returns None for a role the table does not know.
    """
    if principal.role == UserRole.ADMIN.value:
        return ADMIN
    if principal.role != UserRole.EMPLOYEE.value:
        return None
    if owner_id is None or owner_id == principal.id:
        return OWNER
    return NON_OWNER


def can_perform(principal: Principal, action: Action, owner_id: Optional[int] = None) -> Decision:
    """Decide whether ``principal`` may run ``action`` on a resource owned by ``owner_id``.

    ``owner_id`` is omitted for actions without a target resource (create,
    list, dashboard). Pure: never touches state.
    """
    relation = relation_to(principal, owner_id)
    if relation is None:
        return Decision(False, f"unknown role '{principal.role}'")

    rule = RULES.get(action)
    if rule is None:
        return Decision(False, f"no rule for action '{action}'")

    if rule[relation]:
        return Decision(True)
    return Decision(False, f"{relation} may not {action.value}")


def authorize(principal: Principal, action: Action, owner_id: Optional[int] = None) -> None:
    """Raise ``Unauthorized`` unless the table allows the action"""
    decision = can_perform(principal, action, owner_id)
    if not decision:
        logger.warning(f"Denied {action.value} for user {principal.id}: {decision.reason}")
        raise Unauthorized()
