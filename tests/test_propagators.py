"""Tests for single-task propagation."""

from modules.todoist_sync.models import AccountSettings

from conftest import TOKEN

ACCOUNT = 'coach-1'


def test_upsert_creates_unlinked_task(propagator, store, fake_todoist, account):
    task = store.insert_task({'account_id': ACCOUNT, 'title': 'Draft proposal', 'priority_level': 2})

    external_id = propagator.propagate_upsert(ACCOUNT, task.id)

    after = store.get_task(task.id)
    assert external_id is not None
    assert after.external_id == external_id
    assert after.last_external_sync_at is not None
    assert fake_todoist.get(external_id)['priority'] == 3


def test_upsert_updates_linked_task(propagator, store, fake_todoist, account, clock):
    fake_todoist.seed(id='ext-5', content='Old title')
    task = store.insert_task({
        'account_id': ACCOUNT, 'title': 'New title', 'external_id': 'ext-5',
        'last_external_sync_at': clock(),
    })

    assert propagator.propagate_upsert(ACCOUNT, task.id) == 'ext-5'

    assert fake_todoist.get('ext-5')['content'] == 'New title'
    assert store.get_task(task.id).last_external_sync_at > task.last_external_sync_at
    assert len(fake_todoist.tasks[TOKEN]) == 1


def test_upsert_failure_is_swallowed(propagator, store, fake_todoist, account):
    task = store.insert_task({'account_id': ACCOUNT, 'title': 'Bad task'})
    fake_todoist.fail_content.add('Bad task')

    assert propagator.propagate_upsert(ACCOUNT, task.id) is None

    assert store.get_task(task.id).external_id is None
    assert store.get_recent_logs(account_id=ACCOUNT)[0]['status'] == 'error'


def test_upsert_is_noop_when_sync_disabled(propagator, store, fake_todoist):
    store.save_account(AccountSettings(ACCOUNT, TOKEN, False))
    task = store.insert_task({'account_id': ACCOUNT, 'title': 'Draft proposal'})

    assert propagator.propagate_upsert(ACCOUNT, task.id) is None
    assert fake_todoist.calls == []


def test_upsert_is_noop_without_token(propagator, store, fake_todoist):
    store.save_account(AccountSettings(ACCOUNT, None, True))
    task = store.insert_task({'account_id': ACCOUNT, 'title': 'Draft proposal'})

    assert propagator.propagate_upsert(ACCOUNT, task.id) is None
    assert fake_todoist.calls == []


def test_upsert_missing_task(propagator, fake_todoist, account):
    assert propagator.propagate_upsert(ACCOUNT, 'no-such-task') is None
    assert fake_todoist.calls == []


def test_status_completed_closes(propagator, store, fake_todoist, account, clock):
    fake_todoist.seed(id='ext-5', content='Call client')
    task = store.insert_task({
        'account_id': ACCOUNT, 'title': 'Call client', 'status': 'completed',
        'external_id': 'ext-5', 'last_external_sync_at': clock(),
    })

    propagator.propagate_status(ACCOUNT, task.id, 'completed')

    assert fake_todoist.get('ext-5')['is_completed'] is True
    assert store.get_task(task.id).last_external_sync_at > task.last_external_sync_at


def test_status_other_reopens(propagator, store, fake_todoist, account):
    fake_todoist.seed(id='ext-5', content='Call client', is_completed=True)
    task = store.insert_task({'account_id': ACCOUNT, 'title': 'Call client', 'external_id': 'ext-5'})

    propagator.propagate_status(ACCOUNT, task.id, 'in_progress')

    assert fake_todoist.calls[-1][:2] == ('POST', '/tasks/ext-5/reopen')
    assert fake_todoist.get('ext-5')['is_completed'] is False


def test_status_unlinked_task_is_noop(propagator, store, fake_todoist, account):
    task = store.insert_task({'account_id': ACCOUNT, 'title': 'Call client'})

    propagator.propagate_status(ACCOUNT, task.id, 'completed')

    assert fake_todoist.calls == []


def test_status_failure_leaves_watermark(propagator, store, fake_todoist, account, clock):
    task = store.insert_task({
        'account_id': ACCOUNT, 'title': 'Call client',
        'external_id': 'ext-missing', 'last_external_sync_at': clock(),
    })

    propagator.propagate_status(ACCOUNT, task.id, 'completed')

    assert store.get_task(task.id).last_external_sync_at == task.last_external_sync_at


def test_delete_removes_todoist_task(propagator, fake_todoist, account):
    fake_todoist.seed(id='ext-5', content='Call client')

    propagator.propagate_delete(ACCOUNT, 'ext-5')

    assert 'ext-5' not in fake_todoist.tasks[TOKEN]


def test_delete_without_external_id_makes_no_call(propagator, client, store, account, mocker):
    request = mocker.spy(client, '_request')
    get_account = mocker.spy(store, 'get_account')

    assert propagator.propagate_delete(ACCOUNT, None) is None

    request.assert_not_called()
    get_account.assert_not_called()


def test_delete_failure_is_swallowed(propagator, store, fake_todoist, account):
    fake_todoist.fail('DELETE', '/tasks/ext-5', status=500)

    propagator.propagate_delete(ACCOUNT, 'ext-5')

    log = store.get_recent_logs(account_id=ACCOUNT)[0]
    assert log['status'] == 'error'
    assert log['external_id'] == 'ext-5'
