"""Tests for Todoist field mapping."""

import pytest

from modules.todoist_sync.field_mapper import (
    priority_label,
    task_to_todoist_fields,
    to_internal_priority,
    to_todoist_priority,
    todoist_to_task_fields,
)
from modules.todoist_sync.models import InternalTask, TodoistTask


@pytest.mark.parametrize("level", [1, 2, 3, 4])
def test_internal_priority_round_trip(level):
    assert to_internal_priority(to_todoist_priority(level)) == level


@pytest.mark.parametrize("priority", [1, 2, 3, 4])
def test_todoist_priority_round_trip(priority):
    assert to_todoist_priority(to_internal_priority(priority)) == priority


def test_scales_are_inverted():
    assert to_todoist_priority(1) == 4
    assert to_todoist_priority(4) == 1
    assert to_internal_priority(4) == 1
    assert to_internal_priority(1) == 4


def test_priority_labels():
    assert [priority_label(n) for n in (1, 2, 3, 4)] == ['urgent', 'high', 'medium', 'low']


@pytest.mark.parametrize("value", [0, 5, -1, '2', 2.0, None, True])
def test_out_of_range_priority_fails_loudly(value):
    with pytest.raises(ValueError):
        to_todoist_priority(value)
    with pytest.raises(ValueError):
        to_internal_priority(value)
    with pytest.raises(ValueError):
        priority_label(value)


def test_task_to_todoist_fields_omits_empty_values():
    task = InternalTask(id='t1', account_id='a', title='Draft proposal', priority_level=1)

    assert task_to_todoist_fields(task) == {'content': 'Draft proposal', 'priority': 4}


def test_task_to_todoist_fields_includes_description_and_due_date():
    task = InternalTask(
        id='t1', account_id='a', title='Send invoice',
        description='March sessions', priority_level=3, due_date='2026-03-31',
    )

    assert task_to_todoist_fields(task) == {
        'content': 'Send invoice',
        'description': 'March sessions',
        'priority': 2,
        'due_date': '2026-03-31',
    }


def test_todoist_to_task_fields():
    todoist_task = TodoistTask(id='ext-7', content='Call client', priority=1, due_date='2026-02-01')

    assert todoist_to_task_fields(todoist_task) == {
        'title': 'Call client',
        'description': None,
        'priority_level': 4,
        'priority': 'low',
        'due_date': '2026-02-01',
    }
