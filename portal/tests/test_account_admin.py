from __future__ import annotations

import pytest

from portal.app.accounts import AccountAdminService, AccountService, IdentityCheck, UserAccount, UserRole
from portal.app.accounts.admin import INVALID_EMAIL_MESSAGE, SAME_EMAIL_MESSAGE
from portal.app.audit import AuditAction, AuditActor
from portal.app.billing import BillingAddress, BillingService
from portal.app.errors import RemoteServiceError, ValidationFailed
from portal.app.services.billing import LocalSandboxBillingProvider
from portal.tests.fakes import (
    START,
    FakeClock,
    InMemoryAccountRepository,
    InMemoryBillingRepository,
    PlainHasher,
    RecordingAuditLogger,
    RecordingEmailProvider,
)

ADMIN = AuditActor(id="admin-1", email="admin@example.com", role=UserRole.ADMIN.value)
MANAGER = AuditActor(id="mgr-1", email="mgr@example.com", role=UserRole.MANAGER.value)
CUSTOMER = AuditActor(id="u1", email="pat@example.com", role=None)


class _OfflineProvider(LocalSandboxBillingProvider):
    def update_customer_email(self, customer_id: str, email: str) -> None:
        raise ConnectionError("processor offline")


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    repo = InMemoryAccountRepository()
    repo.add_user(
        UserAccount(
            id="u1",
            email="pat@example.com",
            first_name="Pat",
            last_name="Lee",
            phone="+15551234567",
            created_at=START,
        )
    )
    return repo


@pytest.fixture
def email() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def provider() -> LocalSandboxBillingProvider:
    return LocalSandboxBillingProvider()


@pytest.fixture
def billing(provider) -> BillingService:
    return BillingService(InMemoryBillingRepository(), provider, clock=FakeClock())


@pytest.fixture
def audit() -> RecordingAuditLogger:
    return RecordingAuditLogger()


@pytest.fixture
def service(repository, billing, audit, email) -> AccountAdminService:
    accounts = AccountService(
        repository,
        hasher=PlainHasher(),
        email_provider=email,
        app_base_url="https://portal.example.com",
        clock=FakeClock(),
    )
    return AccountAdminService(accounts, repository, billing, audit, email_provider=email, clock=FakeClock())


def _with_billing_address(billing: BillingService) -> None:
    billing.save_billing_address(
        user_id="u1",
        email="pat@example.com",
        name="Pat Lee",
        address=BillingAddress(addressLine1="1 Main St", city="Springfield", state="IL", zip="62701"),
    )


def _check(**overrides) -> IdentityCheck:
    values = {
        "currentEmail": "pat@example.com",
        "firstName": "Pat",
        "lastName": "Lee",
        "phone": "(555) 123-4567",
        "address": {"line1": "1 Main St", "city": "Springfield", "state": "IL", "zip": "62701"},
    }
    values.update(overrides)
    return IdentityCheck(**values)


def test_validate_identity_lists_every_mismatch(service):
    result = service.validate_identity(ADMIN, "u1", _check(firstName="Sam", phone="555-000-0000"))

    assert not result.validated
    assert result.message == "First name does not match, Phone number does not match"


def test_validate_identity_ignores_case_and_phone_formatting(service):
    result = service.validate_identity(
        ADMIN, "u1", _check(currentEmail=" PAT@example.com ", lastName="lee", phone="1-555-123-4567")
    )

    assert result.validated
    assert result.message is None


def test_address_is_compared_only_when_billing_customer_exists(service, billing):
    wrong_address = {"line1": "9 Elm St", "city": "Springfield", "state": "IL", "zip": "62701"}

    assert service.validate_identity(ADMIN, "u1", _check(address=wrong_address)).validated

    _with_billing_address(billing)
    result = service.validate_identity(ADMIN, "u1", _check(address=wrong_address))

    assert result.errors == ["Address does not match"]


def test_only_admins_may_validate_or_change_email(service, repository):
    with pytest.raises(PermissionError):
        service.validate_identity(MANAGER, "u1", _check())
    with pytest.raises(PermissionError):
        service.change_email(MANAGER, "u1", _check(), "new@example.com")

    assert "set_email" not in repository.calls


def test_change_email_updates_login_billing_and_notifies(service, repository, billing, provider, email, audit):
    _with_billing_address(billing)

    result = service.change_email(ADMIN, "u1", _check(), " New@Example.com ")

    assert result.account.email == "new@example.com"
    assert result.previous_email == "pat@example.com"
    assert result.billing_synced
    assert result.confirmation_sent
    assert repository.users["u1"].email == "new@example.com"
    customer_id = billing.get_customer("u1").provider_customer_id
    assert provider.customers[customer_id]["email"] == "new@example.com"
    assert email.sent[-1]["to"] == "new@example.com"
    assert email.sent[-1]["subject"] == "Your Email Address Has Been Changed"
    entry = audit.entries[-1]
    assert entry.action == AuditAction.EMAIL_CHANGE
    assert entry.target_id == "u1"
    assert entry.details == {
        "previous_email": "pat@example.com",
        "new_email": "new@example.com",
        "billing_synced": True,
        "confirmation_sent": True,
    }


def test_change_email_revalidates_identity_before_writing(service, repository, audit):
    with pytest.raises(ValidationFailed) as exc:
        service.change_email(ADMIN, "u1", _check(lastName="Smith"), "new@example.com")

    assert exc.value.message == "Last name does not match"
    assert "set_email" not in repository.calls
    assert audit.entries == []


@pytest.mark.parametrize(
    "new_email, message",
    [
        ("not-an-email", INVALID_EMAIL_MESSAGE),
        (None, INVALID_EMAIL_MESSAGE),
        ("PAT@example.com", SAME_EMAIL_MESSAGE),
    ],
)
def test_change_email_rejects_unusable_addresses(service, repository, new_email, message):
    with pytest.raises(ValidationFailed) as exc:
        service.change_email(ADMIN, "u1", _check(), new_email)

    assert exc.value.message == message
    assert "set_email" not in repository.calls


def test_change_email_rejects_address_taken_by_another_user(service, repository):
    repository.add_user(UserAccount(id="u2", email="taken@example.com"))

    with pytest.raises(ValueError):
        service.change_email(ADMIN, "u1", _check(), "taken@example.com")

    assert repository.users["u1"].email == "pat@example.com"


def test_change_email_succeeds_when_billing_sync_fails(repository, audit, email):
    billing = BillingService(InMemoryBillingRepository(), _OfflineProvider(), clock=FakeClock())
    _with_billing_address(billing)
    accounts = AccountService(repository, hasher=PlainHasher(), email_provider=email, clock=FakeClock())
    service = AccountAdminService(accounts, repository, billing, audit, email_provider=email)

    result = service.change_email(ADMIN, "u1", _check(), "new@example.com")

    assert result.account.email == "new@example.com"
    assert not result.billing_synced
    assert audit.entries[-1].details["billing_synced"] is False


def test_change_email_succeeds_when_notice_cannot_be_sent(repository, billing, audit):
    accounts = AccountService(repository, hasher=PlainHasher(), clock=FakeClock())
    failing = RecordingEmailProvider(fail=True)
    service = AccountAdminService(accounts, repository, billing, audit, email_provider=failing)

    result = service.change_email(ADMIN, "u1", _check(), "new@example.com")

    assert not result.confirmation_sent
    assert not result.billing_synced
    assert repository.users["u1"].email == "new@example.com"


def test_staff_password_reset_emails_user_and_audits(service, repository, email, audit):
    account = service.send_password_reset(MANAGER, "u1")

    assert account.id == "u1"
    assert email.sent[-1]["to"] == "pat@example.com"
    assert "reset-password?token=" in email.sent[-1]["text"]
    assert len(repository.reset_tokens) == 1
    entry = audit.entries[-1]
    assert entry.action == AuditAction.PASSWORD_RESET_SENT
    assert entry.actor_id == "mgr-1"
    assert entry.success


def test_staff_password_reset_failure_is_audited_and_raised(repository, billing, audit):
    accounts = AccountService(
        repository, hasher=PlainHasher(), email_provider=RecordingEmailProvider(fail=True), clock=FakeClock()
    )
    service = AccountAdminService(accounts, repository, billing, audit)

    with pytest.raises(RemoteServiceError):
        service.send_password_reset(ADMIN, "u1")

    entry = audit.entries[-1]
    assert entry.action == AuditAction.PASSWORD_RESET_SENT
    assert not entry.success
    assert entry.error_message == "Failed to send password reset email"


def test_customers_cannot_send_resets_or_read_other_users(service):
    with pytest.raises(PermissionError):
        service.send_password_reset(CUSTOMER, "u1")
    with pytest.raises(PermissionError):
        service.get_user(CUSTOMER, "u1")
    with pytest.raises(PermissionError):
        service.list_user_invoices(CUSTOMER, "u1")


def test_staff_can_read_user_and_invoices(service, billing, provider):
    _with_billing_address(billing)
    customer_id = billing.get_customer("u1").provider_customer_id
    provider.issue_invoice(customer_id, amount_due=4900)

    assert service.get_user(MANAGER, "u1").email == "pat@example.com"
    invoices = service.list_user_invoices(MANAGER, "u1")
    assert [invoice.amount_due for invoice in invoices] == [4900]


def test_unknown_user_is_not_found(service):
    with pytest.raises(LookupError):
        service.get_user(ADMIN, "missing")
    with pytest.raises(LookupError):
        service.send_password_reset(ADMIN, "missing")
