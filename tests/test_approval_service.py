"""Unit tests for the access approval workflow (intake + decision handler)."""
import threading
from unittest.mock import MagicMock

import pytest

from codescore.auth import verify_password
from codescore.database import SessionLocal
from codescore.errors import (
    AccountCreationError,
    AccountExistsError,
    DuplicateRequestError,
    InvalidOrExpiredTokenError,
    ProviderError,
    ValidationError,
    WeakCredentialError,
)
from codescore.models.approval_request import ApprovalRequest, ApprovalStatus
from codescore.models.approved_user import ApprovedUser
from codescore.models.user import User
from codescore.services.approval_service import decide, decide_by_id, list_requests, submit_request
from codescore.services.provisioner import LocalAccountProvisioner

ADMIN = "admin@example.com"


@pytest.fixture
def provisioner():
    return LocalAccountProvisioner()


def _status(db, request_id):
    db.expire_all()
    return db.query(ApprovalRequest).filter(ApprovalRequest.id == request_id).one().status


class TestSubmitRequest:

    def test_creates_pending_request_with_token(self, db, dispatcher):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        assert req.status == ApprovalStatus.PENDING.value
        assert len(req.approval_token) >= 43
        assert req.approved_at is None
        assert req.approved_by is None

    def test_password_is_hashed_not_stored_plain(self, db, dispatcher):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        assert req.password_hash != "secret1"
        assert verify_password("secret1", req.password_hash)

    def test_email_is_normalized(self, db, dispatcher):
        req = submit_request(db, "  A@X.com ", "eval", "secret1", dispatcher)
        assert req.email == "a@x.com"

    def test_notifies_admin_with_token(self, db, dispatcher):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        dispatcher.notify_admin_of_request.assert_called_once_with("a@x.com", "eval", req.approval_token)

    def test_tokens_are_unique_per_request(self, db, dispatcher):
        first = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        second = submit_request(db, "b@x.com", "eval", "secret1", dispatcher)
        assert first.approval_token != second.approval_token

    @pytest.mark.parametrize("email,reason,password", [
        ("", "eval", "secret1"),
        ("a@x.com", "", "secret1"),
        ("a@x.com", "eval", ""),
        ("a@x.com", "   ", "secret1"),
        ("not-an-email", "eval", "secret1"),
        ("a@x.com", "eval", "short"),
    ])
    def test_invalid_input_rejected_without_insert(self, db, dispatcher, email, reason, password):
        with pytest.raises(ValidationError):
            submit_request(db, email, reason, password, dispatcher)

        assert db.query(ApprovalRequest).count() == 0
        dispatcher.notify_admin_of_request.assert_not_called()

    def test_duplicate_pending_email_rejected(self, db, dispatcher):
        submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        with pytest.raises(DuplicateRequestError):
            submit_request(db, "A@x.com", "again", "secret2", dispatcher)

        assert db.query(ApprovalRequest).count() == 1

    def test_new_request_allowed_after_denial(self, db, dispatcher, provisioner):
        first = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        decide(db, first.approval_token, "deny", ADMIN, provisioner)

        second = submit_request(db, "a@x.com", "please", "secret1", dispatcher)

        assert second.status == ApprovalStatus.PENDING.value

    def test_existing_account_cannot_request(self, db, dispatcher, make_user):
        make_user(email="a@x.com")

        with pytest.raises(ValidationError):
            submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

    def test_notification_failure_keeps_request(self, db, dispatcher):
        dispatcher.notify_admin_of_request.side_effect = RuntimeError("smtp down")

        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        assert _status(db, req.id) == ApprovalStatus.PENDING.value


class TestDecide:

    def test_approve_scenario(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        token = req.approval_token

        result = decide(db, token, "approve", ADMIN, provisioner)

        assert result.success is True
        assert result.email == "a@x.com"
        user = db.query(User).filter(User.email == "a@x.com").one()
        assert verify_password("secret1", user.password)
        assert user.approved_by == ADMIN
        assert _status(db, req.id) == ApprovalStatus.APPROVED.value
        assert db.query(ApprovedUser).filter(ApprovedUser.email == "a@x.com").count() == 1

        with pytest.raises(InvalidOrExpiredTokenError):
            decide(db, token, "approve", ADMIN, provisioner)
        assert db.query(User).filter(User.email == "a@x.com").count() == 1

    def test_approve_records_terminal_transition(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        decide(db, req.approval_token, "approve", ADMIN, provisioner)

        db.expire_all()
        row = db.query(ApprovalRequest).filter(ApprovalRequest.id == req.id).one()
        assert row.approved_by == ADMIN
        assert row.approved_at is not None

    def test_deny_creates_no_account(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        result = decide(db, req.approval_token, "deny", ADMIN, provisioner)

        assert result.action == "deny"
        assert _status(db, req.id) == ApprovalStatus.DENIED.value
        assert db.query(User).count() == 0
        assert db.query(ApprovedUser).count() == 0

    def test_denied_token_cannot_approve(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        decide(db, req.approval_token, "deny", ADMIN, provisioner)

        with pytest.raises(InvalidOrExpiredTokenError):
            decide(db, req.approval_token, "approve", ADMIN, provisioner)

        assert _status(db, req.id) == ApprovalStatus.DENIED.value
        assert db.query(User).count() == 0

    @pytest.mark.parametrize("action", ["approve", "deny"])
    @pytest.mark.parametrize("token", ["", "nope", "x" * 43])
    def test_unknown_token(self, db, provisioner, action, token):
        with pytest.raises(InvalidOrExpiredTokenError):
            decide(db, token, action, ADMIN, provisioner)

    def test_unknown_action_leaves_request_pending(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        with pytest.raises(ValidationError):
            decide(db, req.approval_token, "maybe", ADMIN, provisioner)

        assert _status(db, req.id) == ApprovalStatus.PENDING.value

    def test_existing_account_keeps_request_pending(self, db, dispatcher, provisioner, make_user):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        make_user(email="a@x.com", password="other-password")

        with pytest.raises(AccountExistsError):
            decide(db, req.approval_token, "approve", ADMIN, provisioner)

        assert _status(db, req.id) == ApprovalStatus.PENDING.value
        assert db.query(ApprovedUser).count() == 0
        # token still usable
        decide(db, req.approval_token, "deny", ADMIN, provisioner)
        assert _status(db, req.id) == ApprovalStatus.DENIED.value

    def test_weak_credential_keeps_request_pending(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        db.query(ApprovalRequest).filter(ApprovalRequest.id == req.id).update({"password_hash": "plain"})
        db.commit()

        with pytest.raises(WeakCredentialError):
            decide(db, req.approval_token, "approve", ADMIN, provisioner)

        assert _status(db, req.id) == ApprovalStatus.PENDING.value
        assert db.query(User).count() == 0

    def test_provisioning_failure_allows_retry(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        failing = MagicMock()
        failing.provision.side_effect = ProviderError("identity store down")

        with pytest.raises(AccountCreationError):
            decide(db, req.approval_token, "approve", ADMIN, failing)

        assert _status(db, req.id) == ApprovalStatus.PENDING.value
        assert db.query(User).count() == 0

        result = decide(db, req.approval_token, "approve", ADMIN, provisioner)
        assert result.success is True
        assert _status(db, req.id) == ApprovalStatus.APPROVED.value

    def test_requester_notified_after_decision(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        decide(db, req.approval_token, "approve", ADMIN, provisioner, dispatcher)

        dispatcher.notify_requester_of_decision.assert_called_once()
        assert dispatcher.notify_requester_of_decision.call_args.args[0] == "a@x.com"

    def test_requester_notification_failure_does_not_undo_decision(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        dispatcher.notify_requester_of_decision.side_effect = OSError("connection refused")

        decide(db, req.approval_token, "approve", ADMIN, provisioner, dispatcher)

        assert _status(db, req.id) == ApprovalStatus.APPROVED.value

    def test_concurrent_approvals_create_one_account(self, db, dispatcher):
        req = submit_request(db, "race@x.com", "eval", "secret1", dispatcher)
        token = req.approval_token
        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def worker():
            session = SessionLocal()
            try:
                barrier.wait()
                decide(session, token, "approve", ADMIN, LocalAccountProvisioner())
                outcome = "ok"
            except InvalidOrExpiredTokenError:
                outcome = "invalid"
            except Exception as e:  # surfaced in the assertion below
                outcome = repr(e)
            finally:
                session.close()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert sorted(outcomes) == ["invalid", "ok"]
        db.expire_all()
        assert db.query(User).filter(User.email == "race@x.com").count() == 1
        assert db.query(ApprovedUser).filter(ApprovedUser.email == "race@x.com").count() == 1
        assert _status(db, req.id) == ApprovalStatus.APPROVED.value


class TestAdminHelpers:

    def test_decide_by_id(self, db, dispatcher, provisioner):
        req = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)

        result = decide_by_id(db, req.id, "approve", ADMIN, provisioner)

        assert result.email == "a@x.com"
        with pytest.raises(InvalidOrExpiredTokenError):
            decide_by_id(db, req.id, "deny", ADMIN, provisioner)

    def test_decide_by_unknown_id(self, db, provisioner):
        with pytest.raises(InvalidOrExpiredTokenError):
            decide_by_id(db, "missing", "approve", ADMIN, provisioner)

    def test_list_requests_filters_by_status(self, db, dispatcher, provisioner):
        a = submit_request(db, "a@x.com", "eval", "secret1", dispatcher)
        submit_request(db, "b@x.com", "eval", "secret1", dispatcher)
        decide(db, a.approval_token, "deny", ADMIN, provisioner)

        assert len(list_requests(db)) == 2
        pending = list_requests(db, "pending")
        assert [r.email for r in pending] == ["b@x.com"]
        assert [r.email for r in list_requests(db, "DENIED")] == ["a@x.com"]
