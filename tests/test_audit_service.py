"""
Tests for the append-only permission audit trail.
"""
import pytest
from sqlalchemy.exc import OperationalError

from app.crud.audit_log import audit_log
from app.models.audit_log import AuditActionEnum, AuditLog, ImmutableAuditEntry
from app.models.iam import RolePagePermission
from app.services.access_control import Principal
from app.services.audit_service import AUDIT_WRITE_FAILED, AuditOutcome, AuditService, merge_warnings
from app.services.permission_resolver import PermissionResolver


@pytest.fixture
def admin_principal(admin_user):
    return Principal(user_id=admin_user.user_id, role_name="admin", display_name="Admin User")


def test_record_stores_before_and_after(test_db, admin_principal):
    outcome = AuditService.record(
        test_db, admin_principal,
        action_type=AuditActionEnum.ROLE_RENAMED,
        entity_type="role",
        entity_id=2,
        role_id=2,
        summary="Role 'teacher' renamed to 'educator'",
        before={"name": "teacher"},
        after={"name": "educator"},
    )

    assert outcome.written is True
    assert outcome.warnings is None

    entry = audit_log.get_by_id(test_db, audit_id=outcome.audit_id)
    assert entry.action_type == "role_renamed"
    assert entry.actor_user_id == admin_principal.user_id
    assert entry.actor_role == "admin"
    assert entry.entity_id == "2"
    assert entry.audit_data == {"before": {"name": "teacher"}, "after": {"name": "educator"}}


def test_entries_cannot_be_updated(test_db, admin_principal):
    outcome = AuditService.record(
        test_db, admin_principal,
        action_type=AuditActionEnum.PAGE_CREATED,
        entity_type="page",
        summary="Page 'Reports' (/reports) created",
    )
    entry = audit_log.get_by_id(test_db, audit_id=outcome.audit_id)

    entry.summary = "tampered"
    with pytest.raises(ImmutableAuditEntry):
        test_db.commit()
    test_db.rollback()

    assert audit_log.get_by_id(test_db, audit_id=outcome.audit_id).summary == "Page 'Reports' (/reports) created"


def test_entries_cannot_be_deleted(test_db, admin_principal):
    outcome = AuditService.record(
        test_db, admin_principal,
        action_type=AuditActionEnum.PAGE_DELETED,
        entity_type="page",
        summary="Page 'Reports' (/reports) deleted",
    )
    entry = audit_log.get_by_id(test_db, audit_id=outcome.audit_id)

    test_db.delete(entry)
    with pytest.raises(ImmutableAuditEntry):
        test_db.commit()
    test_db.rollback()

    assert test_db.query(AuditLog).count() == 1


def test_failed_write_keeps_primary_change(test_db, roles, pages, admin_principal, monkeypatch, caplog):
    change = PermissionResolver(test_db).set_page_permission("teacher", pages["/reports"].page_id, True)

    def broken_create(*args, **kwargs):
        raise OperationalError("INSERT INTO permission_audit_log", {}, Exception("disk full"))

    monkeypatch.setattr(audit_log, "create", broken_create)

    outcome = AuditService.log_permission_changed(test_db, admin_principal, change)

    assert outcome.written is False
    assert outcome.warnings == [AUDIT_WRITE_FAILED]
    assert "AuditWriteFailed" in caplog.text
    assert test_db.query(RolePagePermission).filter_by(page_id=pages["/reports"].page_id).one().is_allowed is True
    assert test_db.query(AuditLog).count() == 0


def test_merge_warnings():
    assert merge_warnings([AuditOutcome(written=True), AuditOutcome(written=True)]) is None
    assert merge_warnings([AuditOutcome(written=True), AuditOutcome(written=False)]) == [AUDIT_WRITE_FAILED]
    assert merge_warnings([]) is None


def test_menu_reorder_summary(test_db, admin_principal):
    outcome = AuditService.log_menu_reordered(
        test_db, admin_principal,
        [{"id": 5, "before": None, "after": 1}, {"id": 2, "before": 4, "after": 2}],
    )
    entry = audit_log.get_by_id(test_db, audit_id=outcome.audit_id)

    assert entry.summary == "2 pages reordered"
    assert entry.audit_data["after"] == {"5": 1, "2": 2}
