from __future__ import annotations

from accounts.core.errors import Ok, Reason, StorageError


def test_register_creates_pending_account_and_sends_email(account_service, dispatcher, repo):
    result = account_service.register(" Ana@Example.com ", "Ana", "Lopez")

    assert isinstance(result, Ok)
    account = result.value.account
    assert account.email == "ana@example.com"
    assert account.state == "pending"
    assert account.is_active is False
    assert result.value.email_sent is True
    assert dispatcher.messages[-1].to_email == "ana@example.com"
    assert "Ana Lopez" in dispatcher.messages[-1].html_body
    assert len(repo.list_tokens(account.id)) == 1


def test_register_duplicate_email(account_service):
    account_service.register("ana@example.com")

    result = account_service.register("ANA@example.com")

    assert result.reason is Reason.EMAIL_TAKEN


def test_register_survives_dispatch_failure(account_service, dispatcher, repo):
    dispatcher.error = RuntimeError("mail relay rejected")

    result = account_service.register("ana@example.com")

    assert result.ok
    assert result.value.email_sent is False
    assert len(repo.list_tokens(result.value.account.id)) == 1


def test_register_survives_token_storage_failure(account_service, verification, monkeypatch, repo):
    def broken_issue(user_id):
        raise StorageError()

    monkeypatch.setattr(verification, "issue_token", broken_issue)

    result = account_service.register("ana@example.com")

    assert result.ok
    assert result.value.email_sent is False
    assert repo.get_account(result.value.account.id) is not None


def test_get_account(account_service):
    created = account_service.register("ana@example.com", "Ana").value.account

    snapshot = account_service.get_account(created.id)

    assert snapshot is not None
    assert snapshot.first_name == "Ana"
    assert account_service.get_account(99999) is None
