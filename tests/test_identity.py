"""User directory and admin user management."""

import pytest

from knowledge_base.core.exceptions import Forbidden, InvalidState, NotFound, ValidationError
from knowledge_base.models.activity_log import ActivityLog
from knowledge_base.models.user import User, UserRole, SupervisorType
from knowledge_base.services.activity_service import activity_service
from knowledge_base.services.identity_service import identity_service, PREDEFINED_USERS


class TestCreateUser:
    def test_admin_creates_supervisor(self, db, admin):
        created = identity_service.create_user(
            db, "scannersupervisor1", "supervisor", "Scanner", "Supervisor 1",
            supervisor_type="scanner", actor=admin,
        )
        assert created.role == UserRole.supervisor
        assert created.supervisor_type == SupervisorType.scanner
        assert created.display_name == "Scanner Supervisor 1"

    def test_duplicate_username(self, db, admin):
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "admin", actor=admin)

    def test_unknown_role(self, db, admin):
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "someone", "owner", actor=admin)

    def test_username_length_limit(self, db, admin):
        with pytest.raises(ValidationError):
            identity_service.create_user(db, "u" * 151, actor=admin)
        assert identity_service.get_user_by_name(db, "u" * 151) is None

    def test_non_admin_cannot_create(self, db, supervisor):
        with pytest.raises(Forbidden):
            identity_service.create_user(db, "someone", actor=supervisor)

    def test_creation_is_logged(self, db, admin):
        identity_service.create_user(db, "user9", actor=admin)
        assert db.query(ActivityLog).filter(ActivityLog.action == "Created user: user9").count() == 1


class TestUpdateAndDelete:
    def test_promote_user(self, db, admin, user):
        updated = identity_service.update_user(db, admin, user.id, role="supervisor")
        assert updated.role == UserRole.supervisor

    def test_update_requires_admin(self, db, user, other_user):
        with pytest.raises(Forbidden):
            identity_service.update_user(db, user, other_user.id, role="admin")

    def test_update_missing_user(self, db, admin):
        with pytest.raises(NotFound):
            identity_service.update_user(db, admin, "missing", first_name="x")

    def test_delete_clean_user(self, db, admin, other_user):
        identity_service.delete_user(db, admin, other_user.id)
        assert identity_service.get_user(db, other_user.id) is None

    def test_cannot_delete_self(self, db, admin):
        with pytest.raises(InvalidState):
            identity_service.delete_user(db, admin, admin.id)

    def test_cannot_delete_an_author(self, service, db, admin, user):
        service.submit_question(db, user, "Scanner jam error 42", "Feeder stops", "ibml")
        with pytest.raises(InvalidState):
            identity_service.delete_user(db, admin, user.id)

    def test_activity_log_outlives_the_user(self, db, admin):
        doomed = identity_service.create_user(db, "temp", actor=admin)
        activity_service.record(db, doomed.id, "Logged in")
        db.commit()

        identity_service.delete_user(db, admin, doomed.id)
        assert db.query(ActivityLog).filter(ActivityLog.user_id == doomed.id).count() == 1


class TestDirectory:
    def test_reviewer_emails_are_admin_addresses(self, db, admin, supervisor):
        db.add(User(username="superadmin", role=UserRole.admin))
        db.commit()
        assert identity_service.reviewer_emails(db) == ["admin@example.com"]

    def test_seed_is_idempotent(self, db):
        assert identity_service.seed_predefined_users(db) == len(PREDEFINED_USERS)
        assert identity_service.seed_predefined_users(db) == 0

        roles = {u.username: u.role for u in db.query(User)}
        assert roles["superadmin"] == UserRole.admin
        assert roles["valsupervisor2"] == UserRole.supervisor
        assert roles["user1"] == UserRole.user

    def test_list_users_pages(self, db, admin, user, other_user):
        page = identity_service.list_users(db, page=1, page_size=2)
        assert page["total"] == 3
        assert len(page["users"]) == 2


class TestActivityLogQuery:
    def test_admin_filters_by_user_and_action(self, service, db, admin, user):
        service.submit_question(db, user, "Scanner jam error 42", "Feeder stops", "ibml")
        service.submit_question(db, admin, "Jam on feed tray", "Tray 1", "softtrac")

        result = activity_service.query_log(db, admin, user_id=user.id)
        assert result["total"] == 1
        assert result["logs"][0].action == "Created question: Scanner jam error 42"

        by_action = activity_service.query_log(db, admin, action="feed tray")
        assert by_action["total"] == 1

    def test_log_is_admin_only(self, db, supervisor):
        with pytest.raises(Forbidden):
            activity_service.query_log(db, supervisor)
