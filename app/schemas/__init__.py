from .user import UserRegister, UserLogin, UserSummary, UserOut, UserUpdate
from .tokens import Token
from .task import TaskCreate, TaskUpdate, StatusUpdate, CommentCreate, CommentOut, TaskOut
from .analytics import DashboardMetrics, PerformanceMetrics, TeamMember, TeamMetrics
