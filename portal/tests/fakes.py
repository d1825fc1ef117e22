"""In-memory stand-ins for the Postgres repositories and external collaborators."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from itertools import count
from typing import Any, Dict, List, Optional, Sequence, Tuple

from portal.app.accounts import StoredCredentials, UserAccount, UserRole
from portal.app.audit import AuditEntry
from portal.app.billing import BillingCustomer
from portal.app.catalog import Acknowledgment, ServiceDefinition, ServiceDefinitionInput
from portal.app.enrollments import (
    HELD_STATUSES,
    LIVE_STATUSES,
    AgreementDraft,
    AgreementStatus,
    BrokerAccount,
    BrokerAccountDraft,
    Enrollment,
    ServiceAgreement,
    StatusChange,
    SuspensionReason,
)
from portal.app.products import Product, ProductInput, ProductQuery, ProductSort
from portal.app.step_up import DeliveryMethod, StepUpPurpose, VerificationChallenge
from portal.app.tickets import Ticket, TicketInput, TicketQuery

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_service(name: str = "s1", **overrides) -> ServiceDefinition:
    values = {
        "id": f"svc-{name}",
        "name": name,
        "display_name": name.upper(),
        "description": f"{name} description",
        "version": "1.0",
        "terms_content": f"Terms for {name}",
        "features": ("Automated trading",),
        "pricing_amount": Decimal("99"),
        "max_instances_per_user": 1,
        "acknowledgments": (
            Acknowledgment(id="risk", text="I understand the risks"),
            Acknowledgment(id="fees", text="I accept the fees"),
        ),
        "created_at": START,
    }
    values.update(overrides)
    return ServiceDefinition(**values)


class InMemoryCatalogRepository:
    def __init__(self, services: Sequence[ServiceDefinition] = ()) -> None:
        self.services: Dict[str, ServiceDefinition] = {service.name: service for service in services}

    def list_enabled_services(self) -> Sequence[ServiceDefinition]:
        return [s for s in self.list_all_services() if s.enabled]

    def list_all_services(self) -> Sequence[ServiceDefinition]:
        return sorted(self.services.values(), key=lambda s: (s.created_at, s.name))

    def get_service_by_name(self, name: str) -> Optional[ServiceDefinition]:
        return self.services.get(name)

    def get_services_by_names(self, names: Sequence[str]) -> Sequence[ServiceDefinition]:
        return [self.services[name] for name in names if name in self.services]

    def create_service(self, payload: ServiceDefinitionInput) -> ServiceDefinition:
        if payload.name in self.services:
            raise ValueError(f"Service {payload.name!r} already exists")
        service = ServiceDefinition(id=f"svc-{payload.name}", **payload.model_dump())
        self.services[service.name] = service
        return service

    def update_service(self, name: str, payload: ServiceDefinitionInput) -> Optional[ServiceDefinition]:
        current = self.services.get(name)
        if current is None:
            return None
        updated = ServiceDefinition(id=current.id, created_at=current.created_at, **payload.model_dump())
        self.services[name] = updated
        return updated

    def set_enabled(self, name: str, enabled: bool) -> Optional[ServiceDefinition]:
        current = self.services.get(name)
        if current is None:
            return None
        updated = current.model_copy(update={"enabled": enabled})
        self.services[name] = updated
        return updated


class InMemoryEnrollmentRepository:
    """Mirrors the conditional writes of the Postgres repository."""

    def __init__(self) -> None:
        self.agreements: Dict[str, ServiceAgreement] = {}
        self.brokers: Dict[str, BrokerAccount] = {}
        self.reasons: List[SuspensionReason] = [
            SuspensionReason(code="payment_failed", label="Payment failed"),
            SuspensionReason(code="terms_violation", label="Terms violation"),
            SuspensionReason(code="retired", label="Retired", is_active=False),
        ]
        self._ids = count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _broker_for(self, agreement_id: str) -> Optional[BrokerAccount]:
        for broker in self.brokers.values():
            if broker.service_agreement_id == agreement_id:
                return broker
        return None

    def _enrollment(self, agreement: ServiceAgreement) -> Enrollment:
        return Enrollment(agreement=agreement, broker_account=self._broker_for(agreement.id))

    def add_agreement(self, agreement: ServiceAgreement) -> ServiceAgreement:
        self.agreements[agreement.id] = agreement
        return agreement

    def list_live_agreements(
        self,
        user_id: str,
        *,
        service_name: Optional[str] = None,
        statuses: Sequence[AgreementStatus] = LIVE_STATUSES,
    ) -> Sequence[ServiceAgreement]:
        rows = [
            a
            for a in self.agreements.values()
            if a.user_id == user_id and a.status in statuses and (service_name is None or a.service_name == service_name)
        ]
        return sorted(rows, key=lambda a: (a.agreed_at, a.id))

    def list_enrollments_for_user(
        self, user_id: str, *, statuses: Sequence[AgreementStatus] = LIVE_STATUSES
    ) -> Sequence[Enrollment]:
        rows = [a for a in self.agreements.values() if a.user_id == user_id and a.status in statuses]
        rows.sort(key=lambda a: a.agreed_at, reverse=True)
        return [self._enrollment(a) for a in rows]

    def get_enrollment(self, agreement_id: str, *, user_id: Optional[str] = None) -> Optional[Enrollment]:
        agreement = self.agreements.get(agreement_id)
        if agreement is None or (user_id is not None and agreement.user_id != user_id):
            return None
        return self._enrollment(agreement)

    def create_enrollment(
        self,
        agreement: AgreementDraft,
        broker: BrokerAccountDraft,
        *,
        max_instances: int,
    ) -> Optional[Enrollment]:
        held = self.list_live_agreements(
            agreement.user_id, service_name=agreement.service_name, statuses=HELD_STATUSES
        )
        if len(held) >= max_instances:
            return None
        stored = ServiceAgreement(
            id=self._next_id("agr"),
            status=AgreementStatus.ACTIVE,
            updated_at=agreement.agreed_at,
            **agreement.model_dump(),
        )
        self.agreements[stored.id] = stored
        account = BrokerAccount(
            id=self._next_id("brk"),
            service_agreement_id=stored.id,
            is_active=True,
            created_at=agreement.agreed_at,
            **broker.model_dump(),
        )
        self.brokers[account.id] = account
        return Enrollment(agreement=stored, broker_account=account)

    def apply_status_change(
        self,
        agreement_id: str,
        change: StatusChange,
        *,
        expected_version: int,
        user_id: Optional[str] = None,
    ) -> Optional[Enrollment]:
        current = self.agreements.get(agreement_id)
        if current is None or current.version != expected_version:
            return None
        if user_id is not None and current.user_id != user_id:
            return None
        updated = current.model_copy(
            update={
                "status": change.status,
                "cancelled_at": change.cancelled_at,
                "cancellation_reason": change.cancellation_reason,
                "suspended_at": change.suspended_at,
                "suspended_by": change.suspended_by,
                "suspension_reason": change.suspension_reason,
                "suspension_notes": change.suspension_notes,
                "version": current.version + 1,
            }
        )
        self.agreements[agreement_id] = updated
        broker = self._broker_for(agreement_id)
        if broker is not None:
            self.brokers[broker.id] = broker.model_copy(update={"is_active": change.broker_active})
        return self._enrollment(updated)

    def delete_enrollment(self, agreement_id: str, *, user_id: str, expected_version: Optional[int] = None) -> bool:
        current = self.agreements.get(agreement_id)
        if current is None or current.user_id != user_id:
            return False
        if expected_version is not None and current.version != expected_version:
            return False
        broker = self._broker_for(agreement_id)
        if broker is not None:
            del self.brokers[broker.id]
        del self.agreements[agreement_id]
        return True

    def list_agreements(
        self,
        *,
        status: Optional[AgreementStatus] = None,
        service_name: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[Sequence[Enrollment], int]:
        rows = [
            a
            for a in self.agreements.values()
            if (status is None or a.status == status)
            and (service_name is None or a.service_name == service_name)
            and (user_id is None or a.user_id == user_id)
        ]
        rows.sort(key=lambda a: (a.agreed_at, a.id), reverse=True)
        return [self._enrollment(a) for a in rows[offset : offset + limit]], len(rows)

    def get_broker_account(self, broker_account_id: str) -> Optional[BrokerAccount]:
        return self.brokers.get(broker_account_id)

    def list_suspension_reasons(self, *, active_only: bool = True) -> Sequence[SuspensionReason]:
        return [reason for reason in self.reasons if reason.is_active or not active_only]


class RecordingAuditLogger:
    def __init__(self) -> None:
        self.entries: List[AuditEntry] = []

    def record(self, entry: AuditEntry) -> AuditEntry:
        self.entries.append(entry)
        return entry


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str, dict]] = []

    def notify(self, kind, title, message, metadata) -> None:
        self.sent.append((kind, title, message, dict(metadata)))


class RecordingEmailProvider:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: List[Dict[str, Optional[str]]] = []

    def send_email(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})


class InMemoryChallengeRepository:
    def __init__(self) -> None:
        self.challenges: Dict[str, VerificationChallenge] = {}
        self._ids = count(1)

    def create_challenge(
        self,
        *,
        user_id: str,
        purpose: StepUpPurpose,
        resource_id: str,
        method: DeliveryMethod,
        destination: str,
        code_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> VerificationChallenge:
        for key, challenge in list(self.challenges.items()):
            if challenge.expires_at <= now:
                del self.challenges[key]
            elif (
                challenge.user_id == user_id
                and challenge.purpose == purpose
                and challenge.resource_id == resource_id
                and challenge.used_at is None
            ):
                self.challenges[key] = challenge.model_copy(update={"used_at": now})
        challenge = VerificationChallenge(
            id=f"chl-{next(self._ids)}",
            user_id=user_id,
            purpose=purpose,
            resource_id=resource_id,
            method=method,
            destination=destination,
            code_hash=code_hash,
            expires_at=expires_at,
            created_at=now,
        )
        self.challenges[challenge.id] = challenge
        return challenge

    def get_challenge(self, challenge_id: str, *, user_id: str) -> Optional[VerificationChallenge]:
        challenge = self.challenges.get(challenge_id)
        if challenge is None or challenge.user_id != user_id:
            return None
        return challenge

    def mark_used(self, challenge_id: str, *, now: datetime) -> bool:
        challenge = self.challenges.get(challenge_id)
        if challenge is None or challenge.used_at is not None:
            return False
        self.challenges[challenge_id] = challenge.model_copy(update={"used_at": now})
        return True


class InMemoryAccountRepository:
    def __init__(self) -> None:
        self.users: Dict[str, UserAccount] = {}
        self.password_hashes: Dict[str, str] = {}
        self.reset_tokens: Dict[str, Tuple[str, datetime, bool]] = {}
        self.calls: List[str] = []
        self._ids = count(1)

    def add_user(self, account: UserAccount, password_hash: str = "") -> UserAccount:
        self.users[account.id] = account
        self.password_hashes[account.id] = password_hash
        return account

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        birthdate: Optional[date],
        first_name: Optional[str],
        last_name: Optional[str],
    ) -> UserAccount:
        if self.get_user_by_email(email) is not None:
            raise ValueError("An account with this email already exists")
        account = UserAccount(
            id=f"user-{next(self._ids)}",
            email=email.lower(),
            birthdate=birthdate,
            first_name=first_name,
            last_name=last_name,
        )
        return self.add_user(account, password_hash)

    def get_user_by_id(self, user_id: str) -> Optional[UserAccount]:
        self.calls.append("get_user_by_id")
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserAccount]:
        for account in self.users.values():
            if account.email == email.lower():
                return account
        return None

    def get_credentials(self, email: str) -> Optional[StoredCredentials]:
        account = self.get_user_by_email(email)
        if account is None:
            return None
        return StoredCredentials(account=account, password_hash=self.password_hashes[account.id])

    def update_profile(self, user_id, *, first_name, last_name, phone) -> Optional[UserAccount]:
        current = self.users.get(user_id)
        if current is None:
            return None
        updated = current.model_copy(update={"first_name": first_name, "last_name": last_name, "phone": phone})
        self.users[user_id] = updated
        return updated

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        self.password_hashes[user_id] = password_hash

    def set_email(self, user_id: str, email: str) -> Optional[UserAccount]:
        self.calls.append("set_email")
        existing = self.get_user_by_email(email)
        if existing is not None and existing.id != user_id:
            raise ValueError("An account with this email already exists")
        current = self.users.get(user_id)
        if current is None:
            return None
        updated = current.model_copy(update={"email": email.lower()})
        self.users[user_id] = updated
        return updated

    def set_role(self, user_id: str, role: Optional[UserRole]) -> Optional[UserAccount]:
        self.calls.append("set_role")
        current = self.users.get(user_id)
        if current is None:
            return None
        updated = current.model_copy(update={"role": role})
        self.users[user_id] = updated
        return updated

    def list_users(self, *, search=None, role=None, limit=25, offset=0) -> Tuple[Sequence[UserAccount], int]:
        rows = list(self.users.values())
        if search:
            needle = search.lower()
            rows = [u for u in rows if needle in u.email or needle in (u.display_name or "").lower()]
        if role is not None:
            rows = [u for u in rows if u.role == role]
        return rows[offset : offset + limit], len(rows)

    def store_reset_token(self, user_id: str, token_hash: str, expires_at: datetime, *, now: datetime) -> None:
        self.reset_tokens[token_hash] = (user_id, expires_at, False)

    def consume_reset_token(self, token_hash: str, *, now: datetime) -> Optional[str]:
        entry = self.reset_tokens.get(token_hash)
        if entry is None:
            return None
        user_id, expires_at, used = entry
        if used or expires_at <= now:
            return None
        self.reset_tokens[token_hash] = (user_id, expires_at, True)
        return user_id


class PlainHasher:
    def hash(self, secret: str) -> str:
        return f"hashed:{secret}"

    def verify(self, secret: str, hashed: str) -> bool:
        return hashed == f"hashed:{secret}"


class InMemoryBillingRepository:
    def __init__(self) -> None:
        self.customers: Dict[str, BillingCustomer] = {}

    def get_customer(self, user_id: str) -> Optional[BillingCustomer]:
        return self.customers.get(user_id)

    def upsert_customer(self, customer: BillingCustomer) -> BillingCustomer:
        self.customers[customer.user_id] = customer
        return customer


class InMemoryProductRepository:
    def __init__(self) -> None:
        self.products: Dict[str, Product] = {}
        self._ids = count(1)

    def list_products(self, query: ProductQuery) -> Tuple[Sequence[Product], int]:
        rows = list(self.products.values())
        if query.search:
            needle = query.search.lower()
            rows = [p for p in rows if needle in p.name.lower() or needle in p.sku.lower()]
        key = {
            ProductSort.NAME: lambda p: p.name.lower(),
            ProductSort.PRICE: lambda p: p.price,
            ProductSort.CREATED_AT: lambda p: p.created_at,
        }[query.sort]
        rows.sort(key=key, reverse=query.descending)
        return rows[query.offset : query.offset + query.page_size], len(rows)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    def create_product(self, payload: ProductInput) -> Product:
        if any(p.sku == payload.sku for p in self.products.values()):
            raise ValueError(f"A product with SKU {payload.sku} already exists")
        product = Product(id=f"prod-{next(self._ids)}", **payload.model_dump())
        self.products[product.id] = product
        return product

    def update_product(self, product_id: str, payload: ProductInput) -> Optional[Product]:
        current = self.products.get(product_id)
        if current is None:
            return None
        updated = current.model_copy(update=payload.model_dump())
        self.products[product_id] = updated
        return updated

    def delete_product(self, product_id: str) -> bool:
        return self.products.pop(product_id, None) is not None


class InMemoryTicketRepository:
    def __init__(self) -> None:
        self.tickets: Dict[str, Ticket] = {}
        self._ids = count(1)

    def list_tickets(self, query: TicketQuery) -> Sequence[Ticket]:
        rows = [ticket for ticket in self.tickets.values() if query.matches(ticket)]
        return sorted(rows, key=lambda ticket: ticket.created_at, reverse=True)

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        return self.tickets.get(ticket_id)

    def create_ticket(self, payload: TicketInput, *, created_by: str, completed_at: Optional[datetime]) -> Ticket:
        number = next(self._ids)
        created = START + timedelta(minutes=number)
        ticket = Ticket(
            id=f"tkt-{number}",
            created_by=created_by,
            completed_at=completed_at,
            created_at=created,
            updated_at=created,
            **payload.model_dump(),
        )
        self.tickets[ticket.id] = ticket
        return ticket

    def update_ticket(self, ticket_id: str, changes: Dict[str, Any]) -> Optional[Ticket]:
        current = self.tickets.get(ticket_id)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        self.tickets[ticket_id] = updated
        return updated

    def delete_ticket(self, ticket_id: str) -> bool:
        return self.tickets.pop(ticket_id, None) is not None
