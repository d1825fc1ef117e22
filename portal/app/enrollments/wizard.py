"""Linear state machine behind the four step enrollment wizard.

The same class drives the interactive client and is replayed on the server
against the submitted values, so a submission that skips a guard is rejected
even if the client was bypassed.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..catalog import ServiceDefinition
from ..errors import ValidationFailed

SCROLL_THRESHOLD_PX = 20

BROKER_OPTIONS: Dict[str, str] = {
    "trading-com": "Trading.com",
    "other": "Other Broker",
}

READ_AGREEMENT_MESSAGE = "Please confirm you have read the agreement"
ACKNOWLEDGE_ALL_MESSAGE = "Please acknowledge all items to continue"
BROKER_INFO_MESSAGE = "Please fill in all broker information"
UNKNOWN_BROKER_MESSAGE = "Please select a supported broker"


class WizardStep(str, Enum):
    AGREEMENT = "agreement"
    ACKNOWLEDGE = "acknowledge"
    BROKER = "broker"
    CONFIRM = "confirm"


_ORDER = (WizardStep.AGREEMENT, WizardStep.ACKNOWLEDGE, WizardStep.BROKER, WizardStep.CONFIRM)


class EnrollmentSubmission(BaseModel):
    """Everything the client collected across the wizard steps."""

    service_name: str = Field(alias="serviceName")
    scrolled_to_end: bool = Field(alias="scrolledToEnd", default=False)
    read_confirmed: bool = Field(alias="readConfirmed", default=False)
    acknowledgments: Dict[str, bool] = Field(default_factory=dict)
    broker_name: str = Field(alias="brokerName", default="")
    account_number: str = Field(alias="accountNumber", default="")
    account_password: str = Field(alias="accountPassword", default="")
    api_key: Optional[str] = Field(alias="apiKey", default=None)

    model_config = ConfigDict(populate_by_name=True)


def digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


class EnrollmentWizard:
    """Tracks wizard progress for a single service enrollment."""

    def __init__(self, service: ServiceDefinition) -> None:
        self.service = service
        self._index = 0
        self._scrolled_to_end = False
        self._read_confirmed = False
        self._acknowledgments: Dict[str, bool] = {ack.id: False for ack in service.acknowledgments}
        self._broker_name = ""
        self._account_number = ""
        self._account_password = ""
        self._api_key: Optional[str] = None

    @property
    def step(self) -> WizardStep:
        return _ORDER[self._index]

    @property
    def scrolled_to_end(self) -> bool:
        return self._scrolled_to_end

    @property
    def read_confirmed(self) -> bool:
        return self._read_confirmed

    @property
    def account_number(self) -> str:
        return self._account_number

    # Step 1: agreement

    def record_scroll(self, *, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        """Record a scroll observation; reaching the end is remembered."""

        if scroll_height - (scroll_top + client_height) <= SCROLL_THRESHOLD_PX:
            self._scrolled_to_end = True
        return self._scrolled_to_end

    def set_read_confirmed(self, checked: bool) -> None:
        self._read_confirmed = bool(checked)

    # Step 2: acknowledgments

    def set_acknowledgment(self, acknowledgment_id: str, checked: bool) -> None:
        if acknowledgment_id not in self._acknowledgments:
            raise ValueError(f"Unknown acknowledgment {acknowledgment_id!r}")
        self._acknowledgments[acknowledgment_id] = bool(checked)

    @property
    def checked_count(self) -> int:
        return sum(1 for checked in self._acknowledgments.values() if checked)

    def acknowledgment_progress(self) -> str:
        return f"({self.checked_count} of {len(self._acknowledgments)} checked)"

    # Step 3: broker

    def set_broker(
        self,
        *,
        broker_name: Optional[str] = None,
        account_number: Optional[str] = None,
        account_password: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> None:
        if broker_name is not None:
            self._broker_name = broker_name.strip()
        if account_number is not None:
            self._account_number = digits_only(account_number)
        if account_password is not None:
            self._account_password = account_password
        if api_key is not None:
            self._api_key = api_key.strip() or None

    # Navigation

    def blocking_reason(self) -> Optional[str]:
        """Return the message explaining why the current step cannot advance."""

        step = self.step
        if step == WizardStep.AGREEMENT:
            if self.service.requires_agreement and not (self._scrolled_to_end and self._read_confirmed):
                return READ_AGREEMENT_MESSAGE
        elif step == WizardStep.ACKNOWLEDGE:
            if not all(self._acknowledgments.values()):
                return ACKNOWLEDGE_ALL_MESSAGE
        elif step == WizardStep.BROKER:
            if not (self._broker_name and self._account_number and self._account_password.strip()):
                return BROKER_INFO_MESSAGE
            if self._broker_name not in BROKER_OPTIONS:
                return UNKNOWN_BROKER_MESSAGE
        return None

    def can_advance(self) -> bool:
        return self.step != WizardStep.CONFIRM and self.blocking_reason() is None

    def advance(self) -> WizardStep:
        if self.step == WizardStep.CONFIRM:
            raise ValueError("The wizard is already on its final step")
        reason = self.blocking_reason()
        if reason:
            raise ValidationFailed(reason, field=self.step.value)
        self._index += 1
        return self.step

    def back(self) -> WizardStep:
        if self._index == 0:
            raise ValueError("The wizard is already on its first step")
        self._index -= 1
        return self.step

    def build_submission(self) -> EnrollmentSubmission:
        if self.step != WizardStep.CONFIRM:
            raise ValueError("Complete every step before confirming")
        return EnrollmentSubmission(
            service_name=self.service.name,
            scrolled_to_end=self._scrolled_to_end,
            read_confirmed=self._read_confirmed,
            acknowledgments=dict(self._acknowledgments),
            broker_name=self._broker_name,
            account_number=self._account_number,
            account_password=self._account_password,
            api_key=self._api_key,
        )

    @classmethod
    def replay(cls, service: ServiceDefinition, submission: EnrollmentSubmission) -> "EnrollmentWizard":
        """Drive a fresh wizard through every guard using submitted values."""

        wizard = cls(service)
        if submission.scrolled_to_end:
            wizard._scrolled_to_end = True
        wizard.set_read_confirmed(submission.read_confirmed)
        wizard.advance()

        for acknowledgment_id, checked in submission.acknowledgments.items():
            if acknowledgment_id in wizard._acknowledgments:
                wizard.set_acknowledgment(acknowledgment_id, checked)
        wizard.advance()

        wizard.set_broker(
            broker_name=submission.broker_name,
            account_number=submission.account_number,
            account_password=submission.account_password,
            api_key=submission.api_key,
        )
        wizard.advance()
        return wizard
