"""Tests for the task store."""
from datetime import date
from uuid import uuid4

import pytest

from amp_core import crud, schemas
from amp_core.errors import NotFoundError, ValidationError
from amp_core.models import TaskPriority, TaskStatus, UserRole


@pytest.fixture
def people(make_db_user):
    """(owner, manager) pair."""
    return make_db_user(role=UserRole.OWNER), make_db_user(role=UserRole.MANAGER)


@pytest.fixture
def account(db, people):
    owner, manager = people
    account = crud.create_account(db, owner.id, "shopify")
    return crud.assign_account_manager(db, account.id, manager.id)


def new_task(db, account, creator, **fields):
    return crud.create_task(db, schemas.TaskCreate(account_id=account.id, title=fields.pop("title", "Task"), **fields), creator.id)


class TestCreateTask:
    def test_defaults(self, db, account, people):
        owner, manager = people
        task = new_task(db, account, owner, title="Refresh listings")

        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.MEDIUM
        assert task.completion_status == 0
        assert task.created_by == owner.id

    def test_assignee_defaults_to_account_manager(self, db, account, people):
        owner, manager = people
        assert new_task(db, account, owner).assigned_to == manager.id

    def test_unmanaged_account_leaves_task_unassigned(self, db, people):
        owner, _ = people
        bare = crud.create_account(db, owner.id, "etsy")
        assert new_task(db, bare, owner).assigned_to is None

    def test_explicit_assignee(self, db, account, people, make_db_user):
        owner, _ = people
        other = make_db_user(role=UserRole.MANAGER)
        assert new_task(db, account, owner, assigned_to=other.id).assigned_to == other.id

    def test_assignee_must_be_manager_or_admin(self, db, account, people):
        owner, _ = people
        with pytest.raises(ValidationError) as exc_info:
            new_task(db, account, owner, assigned_to=owner.id)
        assert exc_info.value.message == "Tasks can only be assigned to managers or admins"

        with pytest.raises(NotFoundError) as exc_info:
            new_task(db, account, owner, assigned_to=uuid4())
        assert exc_info.value.message == "Assigned manager not found"

    def test_initial_progress_is_reconciled(self, db, account, people):
        owner, _ = people
        done = new_task(db, account, owner, completion_status=100)
        assert done.status == TaskStatus.COMPLETED

        forced = new_task(db, account, owner, status="completed", completion_status=20)
        assert forced.completion_status == 100

        cancelled = new_task(db, account, owner, status="cancelled", completion_status=60)
        assert cancelled.completion_status == 0

    def test_missing_account(self, db, people):
        owner, _ = people
        with pytest.raises(NotFoundError):
            crud.create_task(db, schemas.TaskCreate(account_id=uuid4(), title="Orphan"), owner.id)

    def test_creator_required(self, db, account):
        with pytest.raises(ValidationError):
            crud.create_task(db, schemas.TaskCreate(account_id=account.id, title="Anonymous"), None)


class TestUpdateTask:
    def test_partial_update(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        updated = crud.update_task(
            db, task.id, schemas.TaskUpdate(title="Renamed", priority="high", due_date=date(2030, 1, 31))
        )
        assert updated.title == "Renamed"
        assert updated.priority == TaskPriority.HIGH
        assert updated.due_date == date(2030, 1, 31)
        assert updated.status == TaskStatus.PENDING

    def test_status_wins_over_completion(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        updated = crud.update_task(db, task.id, schemas.TaskUpdate(status="in-progress", completion_status=100))
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.completion_status == 100

    def test_completion_alone_drives_status(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        assert crud.update_task(db, task.id, schemas.TaskUpdate(completion_status=100)).status == TaskStatus.COMPLETED

    def test_unassign(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        assert crud.update_task(db, task.id, schemas.TaskUpdate(assigned_to=None)).assigned_to is None

    def test_nothing_to_update(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        with pytest.raises(ValidationError):
            crud.update_task(db, task.id, schemas.TaskUpdate())

    def test_missing(self, db):
        with pytest.raises(NotFoundError):
            crud.update_task(db, uuid4(), schemas.TaskUpdate(title="x"))


class TestStatusAndProgress:
    def test_complete_forces_100(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner, completion_status=30)
        updated = crud.update_task_status(db, task.id, TaskStatus.COMPLETED)
        assert (updated.status, updated.completion_status) == (TaskStatus.COMPLETED, 100)

    def test_cancel_forces_0(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner, completion_status=30)
        updated = crud.update_task_status(db, task.id, "cancelled")
        assert (updated.status, updated.completion_status) == (TaskStatus.CANCELLED, 0)

    def test_progress_100_completes(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        updated = crud.update_task_progress(db, task.id, 100)
        assert (updated.status, updated.completion_status) == (TaskStatus.COMPLETED, 100)

    def test_progress_below_100_reopens(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner, status="completed")
        updated = crud.update_task_progress(db, task.id, 75)
        assert (updated.status, updated.completion_status) == (TaskStatus.IN_PROGRESS, 75)

    def test_progress_persists(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        crud.update_task_progress(db, task.id, 42.5)
        db.expire_all()
        assert crud.get_task(db, task.id).completion_status == 42.5

    def test_invalid_values(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        with pytest.raises(ValidationError):
            crud.update_task_status(db, task.id, "done")
        with pytest.raises(ValidationError):
            crud.update_task_progress(db, task.id, 101)

    def test_assign(self, db, account, people, make_db_user):
        owner, _ = people
        task = new_task(db, account, owner)
        other = make_db_user(role=UserRole.ADMIN)
        assert crud.assign_task(db, task.id, other.id).assigned_to == other.id
        with pytest.raises(ValidationError):
            crud.assign_task(db, task.id, owner.id)


class TestListingAndCounts:
    def test_filters(self, db, account, people):
        owner, _ = people
        new_task(db, account, owner, priority="high")
        new_task(db, account, owner, priority="low", status="in-progress")
        new_task(db, account, owner, priority="high", status="completed")

        assert len(crud.get_tasks_by_account(db, account.id)) == 3
        assert len(crud.get_tasks_by_account(db, account.id, priority="high")) == 2
        assert len(crud.get_tasks_by_account(db, account.id, status=TaskStatus.IN_PROGRESS)) == 1

    def test_sort_by_due_date(self, db, account, people):
        owner, _ = people
        late = new_task(db, account, owner, due_date=date(2031, 1, 1))
        early = new_task(db, account, owner, due_date=date(2030, 1, 1))

        ascending = crud.get_tasks_by_account(db, account.id)
        assert [t.id for t in ascending] == [early.id, late.id]

        descending = crud.get_tasks_by_account(db, account.id, sort_dir="desc")
        assert [t.id for t in descending] == [late.id, early.id]

    def test_sort_by_priority_is_alphabetical(self, db, account, people):
        owner, _ = people
        for priority in ("medium", "low", "high"):
            new_task(db, account, owner, priority=priority)
        tasks = crud.get_tasks_by_account(db, account.id, sort_by="priority")
        assert [t.priority.value for t in tasks] == ["high", "low", "medium"]

    def test_bad_sort_options(self, db, account):
        with pytest.raises(ValidationError):
            crud.get_tasks_by_account(db, account.id, sort_by="title")
        with pytest.raises(ValidationError):
            crud.get_tasks_by_account(db, account.id, sort_dir="sideways")

    def test_manager_listing_carries_account_type(self, db, account, people, make_db_user):
        owner, manager = people
        new_task(db, account, owner)
        new_task(db, account, owner, assigned_to=make_db_user(role=UserRole.MANAGER).id)

        tasks = crud.get_tasks_by_manager(db, manager.id)
        assert len(tasks) == 1
        assert tasks[0].account_type == "shopify"
        assert tasks[0].assigned_to == manager.id

        assert crud.get_tasks_by_manager(db, manager.id, account_id=uuid4()) == []

    def test_counts_are_zero_filled(self, db, account, people):
        owner, manager = people
        new_task(db, account, owner)
        new_task(db, account, owner, status="in-progress")
        new_task(db, account, owner, status="in-progress")

        counts = crud.count_tasks_by_account(db, account.id)
        assert counts.total == 3
        assert counts.pending == 1
        assert counts.in_progress == 2
        assert counts.completed == 0
        assert counts.cancelled == 0
        assert counts.model_dump(by_alias=True)["in-progress"] == 2

        assert crud.count_tasks_by_manager(db, manager.id).total == 3
        assert crud.count_tasks_by_account(db, uuid4()).total == 0


class TestDeleteTask:
    def test_delete(self, db, account, people):
        owner, _ = people
        task = new_task(db, account, owner)
        crud.delete_task(db, task.id)
        assert crud.get_task(db, task.id) is None
        with pytest.raises(NotFoundError):
            crud.delete_task(db, task.id)
