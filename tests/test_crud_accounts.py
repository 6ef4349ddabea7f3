"""Tests for the account store."""
from uuid import uuid4

import pydantic
import pytest

from amp_core import crud, models, schemas
from amp_core.errors import NotFoundError, ValidationError
from amp_core.models import AccountStatus, UserRole

CREDENTIALS = {"username": "shop-owner", "password": "hunter2"}


@pytest.fixture
def owner(make_db_user):
    return make_db_user(role=UserRole.OWNER)


@pytest.fixture
def manager(make_db_user):
    return make_db_user(role=UserRole.MANAGER)


@pytest.fixture
def account(db, owner):
    return crud.create_account(db, owner.id, "shopify", CREDENTIALS, "Post twice a week")


class TestCreateAccount:
    def test_starts_pending(self, account, owner):
        assert account.status == AccountStatus.PENDING
        assert account.owner_id == owner.id
        assert account.manager_id is None
        assert account.credentials == CREDENTIALS
        assert account.management_instructions == "Post twice a week"

    def test_credentials_are_encrypted_at_rest(self, db, account):
        row = db.query(models.ManagedAccount).filter(models.ManagedAccount.id == account.id).one()
        assert row.credentials
        assert "hunter2" not in row.credentials

    def test_optional_fields(self, db, owner):
        account = crud.create_account(db, owner.id, "etsy")
        assert account.credentials is None
        assert account.management_instructions == ""

    def test_blank_type(self, db, owner):
        with pytest.raises(ValidationError):
            crud.create_account(db, owner.id, "   ")

    def test_unknown_owner(self, db):
        with pytest.raises(NotFoundError):
            crud.create_account(db, uuid4(), "shopify")


class TestReadAccounts:
    def test_summary_has_no_credentials(self, db, account):
        summary = crud.get_account_summary(db, account.id)
        assert "credentials" not in summary.model_dump()

    def test_unreadable_credentials_become_none(self, db, account):
        row = db.query(models.ManagedAccount).filter(models.ManagedAccount.id == account.id).one()
        row.credentials = "bm90IGEgcmVhbCBjaXBoZXJ0ZXh0IGF0IGFsbA=="
        db.commit()

        detail = crud.get_account(db, account.id)
        assert detail is not None
        assert detail.credentials is None

    def test_missing(self, db):
        assert crud.get_account(db, uuid4()) is None
        assert crud.get_account_summary(db, uuid4()) is None

    def test_by_owner_and_manager(self, db, owner, manager, make_db_user):
        first = crud.create_account(db, owner.id, "shopify")
        second = crud.create_account(db, owner.id, "amazon")
        crud.create_account(db, make_db_user().id, "ebay")
        crud.assign_account_manager(db, second.id, manager.id)

        owned = crud.get_accounts_by_owner(db, owner.id)
        assert {a.id for a in owned} == {first.id, second.id}
        assert all("credentials" not in a.model_dump() for a in owned)

        managed = crud.get_accounts_by_manager(db, manager.id)
        assert [a.id for a in managed] == [second.id]

    def test_list_filters(self, db, owner):
        crud.create_account(db, owner.id, "shopify")
        other = crud.create_account(db, owner.id, "amazon")
        crud.update_account_status(db, other.id, AccountStatus.SUSPENDED)

        assert len(crud.list_accounts(db)) == 2
        assert [a.id for a in crud.list_accounts(db, status="suspended")] == [other.id]
        assert len(crud.list_accounts(db, account_type="shopify")) == 1
        assert len(crud.list_accounts(db, limit=1)) == 1


class TestUpdateAccount:
    def test_partial_update(self, db, account):
        updated = crud.update_account(
            db, account.id, schemas.AccountUpdate(account_type="shopify-plus", credentials={"token": "abc"})
        )
        assert updated.account_type == "shopify-plus"
        assert updated.credentials == {"token": "abc"}
        assert updated.management_instructions == "Post twice a week"
        assert updated.updated_at >= account.updated_at

    def test_manager_must_be_assignable(self, db, account, make_db_user):
        other_owner = make_db_user(role=UserRole.OWNER)
        with pytest.raises(ValidationError):
            crud.update_account(db, account.id, schemas.AccountUpdate(manager_id=other_owner.id))
        with pytest.raises(NotFoundError):
            crud.update_account(db, account.id, schemas.AccountUpdate(manager_id=uuid4()))

    def test_nothing_to_update(self, db, account):
        with pytest.raises(ValidationError):
            crud.update_account(db, account.id, schemas.AccountUpdate())

    def test_unknown_fields_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            schemas.AccountUpdate(owner_id=str(uuid4()))

    def test_status(self, db, account):
        assert crud.update_account_status(db, account.id, "active").status == AccountStatus.ACTIVE
        with pytest.raises(ValidationError):
            crud.update_account_status(db, account.id, "archived")
        with pytest.raises(NotFoundError):
            crud.update_account_status(db, uuid4(), "active")

    def test_instructions(self, db, account):
        updated = crud.update_account_instructions(db, account.id, "Reply within a day")
        assert updated.management_instructions == "Reply within a day"
        with pytest.raises(ValidationError):
            crud.update_account_instructions(db, account.id, "  ")


class TestManagerAssignment:
    def test_assign_and_unassign(self, db, account, manager):
        assert crud.assign_account_manager(db, account.id, manager.id).manager_id == manager.id
        assert crud.unassign_account_manager(db, account.id).manager_id is None

    def test_admin_is_assignable(self, db, account, make_db_user):
        admin = make_db_user(role=UserRole.ADMIN)
        assert crud.assign_account_manager(db, account.id, admin.id).manager_id == admin.id

    def test_owner_is_not_assignable(self, db, account, owner):
        with pytest.raises(ValidationError) as exc_info:
            crud.assign_account_manager(db, account.id, owner.id)
        assert exc_info.value.message == "The user you are trying to assign is not a manager"

    def test_missing_manager(self, db, account):
        with pytest.raises(NotFoundError) as exc_info:
            crud.assign_account_manager(db, account.id, uuid4())
        assert exc_info.value.message == "Manager not found"


class TestDeleteAccount:
    def test_delete_cascades_tasks(self, db, account, owner):
        task = crud.create_task(db, schemas.TaskCreate(account_id=account.id, title="Audit"), owner.id)

        crud.delete_account(db, account.id)

        assert crud.get_account(db, account.id) is None
        assert crud.get_task(db, task.id) is None

    def test_delete_missing(self, db):
        with pytest.raises(NotFoundError):
            crud.delete_account(db, uuid4())
