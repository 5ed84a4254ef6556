"""
Todoist Field Mapper

Maps internal task fields to the Todoist task schema and back.

The two priority scales run in opposite directions with the same
cardinality: internal priority_level 1 is the most urgent, Todoist
priority 4 is the most urgent.
"""

from typing import Any, Dict

from .models import InternalTask, TodoistTask


# ---------------------------------------------------------------
# Priority mapping
# ---------------------------------------------------------------

PRIORITY_LABELS = {
    1: 'urgent',
    2: 'high',
    3: 'medium',
    4: 'low',
}


def _check_priority(value: Any, scale: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 4:
        raise ValueError(f"{scale} priority must be an integer 1-4, got {value!r}")
    return value


def to_todoist_priority(level: int) -> int:
    """Map internal priority_level (1=highest) to Todoist priority (4=highest)."""
    return 5 - _check_priority(level, 'Internal')


def to_internal_priority(priority: int) -> int:
    """Map Todoist priority (4=highest) to internal priority_level (1=highest)."""
    return 5 - _check_priority(priority, 'Todoist')


def priority_label(level: int) -> str:
    """Human-readable label for an internal priority_level."""
    return PRIORITY_LABELS[_check_priority(level, 'Internal')]


# ---------------------------------------------------------------
# Whole-record mapping
# ---------------------------------------------------------------

def task_to_todoist_fields(task: InternalTask) -> Dict[str, Any]:
    """Build the Todoist create/update payload for an internal task."""
    fields = {
        'content': task.title,
        'priority': to_todoist_priority(task.priority_level),
    }
    if task.description:
        fields['description'] = task.description
    if task.due_date:
        fields['due_date'] = task.due_date
    return fields


def todoist_to_task_fields(todoist_task: TodoistTask) -> Dict[str, Any]:
    """Build the internal task fields for a Todoist task."""
    level = to_internal_priority(todoist_task.priority)
    return {
        'title': todoist_task.content,
        'description': todoist_task.description or None,
        'priority_level': level,
        'priority': priority_label(level),
        'due_date': todoist_task.due_date or None,
    }
