# app/services/metrics.py
"""Prometheus instruments exported at /metrics"""

from prometheus_client import Counter, Gauge

tasks_created = Counter(
    "tasks_total",
    "Total number of tasks created",
    ["status", "priority"],
)

productivity_gauge = Gauge(
    "employee_productivity_score",
    "Productivity score of employees",
    ["user_id", "user_name"],
)

status_transitions = Counter(
    "task_status_transitions_total",
    "Task status transitions applied",
    ["from_status", "to_status"],
)
