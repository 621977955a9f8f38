from __future__ import annotations

from datetime import timedelta

from accounts.core.errors import Err, ErrorKind, Ok, Reason
from accounts.core.identity import AuthenticatedUser
from accounts.core.security import hash_token

from conftest import T0


def _live_tokens(repo, user_id):
    return [t for t in repo.list_tokens(user_id) if not t.used]


def test_issue_stores_only_the_digest(verification, repo, make_account):
    user_id = make_account()

    result = verification.issue_token(user_id)

    assert isinstance(result, Ok)
    issued = result.value
    rows = repo.list_tokens(user_id)
    assert len(rows) == 1
    row = rows[0]
    assert row.token_hash == hash_token(issued.token)
    assert row.token_hash != issued.token
    assert row.used is False
    assert row.resend_count == 0
    assert row.last_resend_at is None
    assert issued.expires_at == T0 + timedelta(hours=1)


def test_issue_rejects_unknown_and_verified_accounts(verification, make_account):
    assert verification.issue_token(9999).reason is Reason.ACCOUNT_NOT_FOUND

    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    assert verification.verify_token(token).ok
    assert verification.issue_token(user_id).reason is Reason.ALREADY_VERIFIED


def test_issue_twice_points_to_resend(verification, repo, make_account):
    user_id = make_account()
    verification.issue_token(user_id)

    result = verification.issue_token(user_id)

    assert result.reason is Reason.TOKEN_ALREADY_ISSUED
    assert len(repo.list_tokens(user_id)) == 1


def test_verify_activates_account(verification, repo, clock, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    clock.advance(minutes=1)

    result = verification.verify_token(token)

    assert isinstance(result, Ok)
    assert result.value.state == "active"
    assert result.value.is_active is True
    account = repo.get_account(user_id)
    assert account.state == "active"
    assert account.is_active is True
    assert repo.list_tokens(user_id)[0].used is True


def test_verify_succeeds_only_once(verification, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token

    assert verification.verify_token(token).ok
    for _ in range(3):
        again = verification.verify_token(token)
        assert isinstance(again, Err)
        assert again.reason is Reason.ALREADY_USED
        assert again.error.kind is ErrorKind.STATE_CONFLICT


def test_verify_unknown_token_is_not_found(verification):
    result = verification.verify_token("f" * 64)
    assert result.reason is Reason.NOT_FOUND
    assert result.error.kind is ErrorKind.NOT_FOUND


def test_verify_blank_token_is_validation_error(verification):
    for value in (None, "", "   "):
        result = verification.verify_token(value)
        assert result.reason is Reason.MISSING_TOKEN
        assert result.error.kind is ErrorKind.VALIDATION


def test_expired_token_is_rejected(verification, repo, clock, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    clock.advance(hours=1, seconds=1)

    result = verification.verify_token(token)

    assert result.reason is Reason.EXPIRED
    assert repo.get_account(user_id).state == "pending"
    assert repo.list_tokens(user_id)[0].used is False


def test_token_is_valid_up_to_its_expiry_instant(verification, clock, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    clock.advance(hours=1)

    assert verification.verify_token(token).ok


def test_expired_wins_over_used(verification, clock, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    assert verification.verify_token(token).ok
    clock.advance(hours=2)

    assert verification.verify_token(token).reason is Reason.EXPIRED


def test_verify_keeps_scheduled_account_inactive(verification, deletion, repo, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    deletion.schedule_soft_delete(AuthenticatedUser(user_id))

    result = verification.verify_token(token)

    assert result.ok
    account = repo.get_account(user_id)
    assert account.state == "active"
    assert account.is_active is False


def test_resend_supersedes_previous_token(verification, repo, clock, make_account):
    user_id = make_account()
    first = verification.issue_token(user_id).value.token
    clock.advance(seconds=5)

    result = verification.resend_token(AuthenticatedUser(user_id))

    assert isinstance(result, Ok)
    assert result.value.resend_count == 1
    assert result.value.remaining_attempts == 2
    live = _live_tokens(repo, user_id)
    assert len(live) == 1
    assert live[0].token_hash == hash_token(result.value.token)
    assert verification.verify_token(first).reason is Reason.ALREADY_USED
    assert verification.verify_token(result.value.token).ok


def test_resend_without_prior_token_starts_at_one(verification, repo, make_account):
    user_id = make_account()

    result = verification.resend_token(AuthenticatedUser(user_id))

    assert result.value.resend_count == 1
    assert len(_live_tokens(repo, user_id)) == 1


def test_resend_limit_reached_after_three(verification, repo, clock, make_account):
    user_id = make_account()
    identity = AuthenticatedUser(user_id)
    verification.issue_token(user_id)

    counts = []
    for _ in range(3):
        clock.advance(minutes=3)
        counts.append(verification.resend_token(identity).value.resend_count)
    clock.advance(minutes=3)
    fourth = verification.resend_token(identity)

    assert counts == [1, 2, 3]
    assert fourth.reason is Reason.RESEND_LIMIT_EXCEEDED
    assert fourth.error.kind is ErrorKind.RATE_LIMITED
    assert len(repo.list_tokens(user_id)) == 4
    assert len(_live_tokens(repo, user_id)) == 1


def test_resend_limit_ignores_elapsed_time(verification, clock, make_account):
    user_id = make_account()
    identity = AuthenticatedUser(user_id)
    for _ in range(3):
        clock.advance(minutes=3)
        assert verification.resend_token(identity).ok
    clock.advance(days=30)

    assert verification.resend_token(identity).reason is Reason.RESEND_LIMIT_EXCEEDED


def test_resend_cooldown(verification, repo, clock, make_account):
    user_id = make_account()
    identity = AuthenticatedUser(user_id)
    assert verification.resend_token(identity).ok
    clock.advance(seconds=1)

    result = verification.resend_token(identity)

    assert result.reason is Reason.RESEND_COOLDOWN_ACTIVE
    assert result.error.retry_after_seconds == 119
    assert len(repo.list_tokens(user_id)) == 1


def test_resend_for_verified_account(verification, make_account):
    user_id = make_account()
    token = verification.issue_token(user_id).value.token
    verification.verify_token(token)

    assert verification.resend_token(AuthenticatedUser(user_id)).reason is Reason.ALREADY_VERIFIED


def test_resend_for_missing_account(verification):
    assert verification.resend_token(AuthenticatedUser(424242)).reason is Reason.ACCOUNT_NOT_FOUND


def test_issue_and_notify_sends_link(verification, dispatcher, make_account):
    user_id = make_account(email="ana@example.com")

    result = verification.issue_and_notify(user_id)

    assert result.value.email_sent is True
    message = dispatcher.messages[-1]
    assert message.to_email == "ana@example.com"
    assert "https://app.example.test/verify-email?token=" in message.text_body
    assert dispatcher.last_token() == result.value.token
    assert "1 hour" in message.text_body


def test_dispatch_failure_keeps_token(verification, dispatcher, repo, clock, make_account):
    user_id = make_account()
    dispatcher.error = ConnectionError("smtp down")

    result = verification.issue_and_notify(user_id)

    assert result.ok
    assert result.value.email_sent is False
    assert len(_live_tokens(repo, user_id)) == 1

    dispatcher.error = None
    clock.advance(seconds=10)
    resent = verification.resend_and_notify(AuthenticatedUser(user_id))
    assert resent.value.email_sent is True
    assert verification.verify_token(dispatcher.last_token()).ok


def test_dispatcher_returning_false_is_reported(verification, dispatcher, make_account):
    dispatcher.result = False
    user_id = make_account()

    result = verification.issue_and_notify(user_id)

    assert result.ok
    assert result.value.email_sent is False
