from __future__ import annotations

import pytest

from portal.app.enrollments import EnrollmentSubmission, EnrollmentWizard, WizardStep
from portal.app.errors import ValidationFailed
from portal.tests.fakes import make_service


@pytest.fixture
def wizard() -> EnrollmentWizard:
    return EnrollmentWizard(make_service("s1"))


def _scroll_to_end(wizard: EnrollmentWizard) -> None:
    wizard.record_scroll(scroll_top=580, scroll_height=1000, client_height=400)


def _complete_agreement(wizard: EnrollmentWizard) -> None:
    _scroll_to_end(wizard)
    wizard.set_read_confirmed(True)
    wizard.advance()


def test_agreement_step_requires_scroll_and_confirmation(wizard):
    wizard.set_read_confirmed(True)

    assert not wizard.can_advance()
    with pytest.raises(ValidationFailed) as exc:
        wizard.advance()
    assert exc.value.message == "Please confirm you have read the agreement"
    assert wizard.step == WizardStep.AGREEMENT


def test_scroll_threshold_is_twenty_pixels(wizard):
    assert not wizard.record_scroll(scroll_top=579, scroll_height=1000, client_height=400)
    assert wizard.record_scroll(scroll_top=580, scroll_height=1000, client_height=400)


def test_scroll_signal_is_sticky(wizard):
    _scroll_to_end(wizard)
    wizard.record_scroll(scroll_top=0, scroll_height=1000, client_height=400)

    assert wizard.scrolled_to_end


def test_unchecking_read_confirmation_blocks_again(wizard):
    _scroll_to_end(wizard)
    wizard.set_read_confirmed(True)
    assert wizard.can_advance()

    wizard.set_read_confirmed(False)

    assert not wizard.can_advance()


def test_scroll_without_confirmation_is_not_enough(wizard):
    _scroll_to_end(wizard)

    assert not wizard.can_advance()


def test_acknowledgments_must_all_be_checked(wizard):
    _complete_agreement(wizard)
    wizard.set_acknowledgment("risk", True)

    assert wizard.acknowledgment_progress() == "(1 of 2 checked)"
    assert not wizard.can_advance()
    with pytest.raises(ValidationFailed) as exc:
        wizard.advance()
    assert exc.value.message == "Please acknowledge all items to continue"

    wizard.set_acknowledgment("fees", True)

    assert wizard.acknowledgment_progress() == "(2 of 2 checked)"
    assert wizard.advance() == WizardStep.BROKER


def test_unknown_acknowledgment_is_rejected(wizard):
    with pytest.raises(ValueError):
        wizard.set_acknowledgment("bogus", True)


def test_broker_step_requires_every_field(wizard):
    _complete_agreement(wizard)
    wizard.set_acknowledgment("risk", True)
    wizard.set_acknowledgment("fees", True)
    wizard.advance()

    wizard.set_broker(broker_name="trading-com", account_number="12-345")

    assert wizard.account_number == "12345"
    with pytest.raises(ValidationFailed) as exc:
        wizard.advance()
    assert exc.value.message == "Please fill in all broker information"

    wizard.set_broker(account_password="secret")

    assert wizard.advance() == WizardStep.CONFIRM


def test_account_number_keeps_digits_only(wizard):
    wizard.set_broker(account_number="abc")

    assert wizard.account_number == ""


def test_back_navigation_preserves_state(wizard):
    _complete_agreement(wizard)
    wizard.set_acknowledgment("risk", True)

    assert wizard.back() == WizardStep.AGREEMENT
    assert wizard.read_confirmed
    assert wizard.advance() == WizardStep.ACKNOWLEDGE
    assert wizard.acknowledgment_progress() == "(1 of 2 checked)"


def test_back_from_first_step_is_rejected(wizard):
    with pytest.raises(ValueError):
        wizard.back()


def test_build_submission_requires_confirm_step(wizard):
    with pytest.raises(ValueError):
        wizard.build_submission()


def test_agreement_guard_skipped_when_not_required():
    wizard = EnrollmentWizard(make_service("s2", requires_agreement=False))

    assert wizard.advance() == WizardStep.ACKNOWLEDGE


def test_replay_accepts_complete_submission():
    submission = EnrollmentSubmission(
        serviceName="s1",
        scrolledToEnd=True,
        readConfirmed=True,
        acknowledgments={"risk": True, "fees": True},
        brokerName="trading-com",
        accountNumber="12345",
        accountPassword="secret",
    )

    wizard = EnrollmentWizard.replay(make_service("s1"), submission)

    assert wizard.step == WizardStep.CONFIRM
    assert wizard.build_submission().acknowledgments == {"risk": True, "fees": True}


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"scrolledToEnd": False}, "Please confirm you have read the agreement"),
        ({"acknowledgments": {"risk": True}}, "Please acknowledge all items to continue"),
        ({"accountPassword": ""}, "Please fill in all broker information"),
        ({"brokerName": "unknown"}, "Please select a supported broker"),
    ],
)
def test_replay_rejects_skipped_guards(overrides, message):
    values = {
        "serviceName": "s1",
        "scrolledToEnd": True,
        "readConfirmed": True,
        "acknowledgments": {"risk": True, "fees": True},
        "brokerName": "trading-com",
        "accountNumber": "12345",
        "accountPassword": "secret",
    }
    values.update(overrides)

    with pytest.raises(ValidationFailed) as exc:
        EnrollmentWizard.replay(make_service("s1"), EnrollmentSubmission(**values))

    assert exc.value.message == message
