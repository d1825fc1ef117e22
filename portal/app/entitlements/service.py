"""Derives per service enrollment standing for a user."""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional, Protocol, Sequence

from ..catalog import ServiceDefinition
from ..enrollments.models import HELD_STATUSES, LIVE_STATUSES, AgreementStatus, ServiceAgreement
from .models import EntitlementResult, EntitlementStatus


class AgreementReader(Protocol):
    """Read access to a user's agreements filtered by status."""

    def list_live_agreements(
        self,
        user_id: str,
        *,
        service_name: Optional[str] = None,
        statuses: Sequence[AgreementStatus] = LIVE_STATUSES,
    ) -> Sequence[ServiceAgreement]:
        ...


class ServiceLookup(Protocol):
    def get_service_by_name(self, name: str) -> ServiceDefinition:
        ...


def _ordered(agreements: Sequence[ServiceAgreement]) -> List[ServiceAgreement]:
    return sorted(agreements, key=lambda agreement: (agreement.agreed_at, agreement.id))


class EntitlementCalculator:
    """Computes the status, count and card action for catalog services.

    When several live agreements exist for one service the earliest signed
    agreement (ties broken by id) decides the status and action link.
    Suspended agreements never decide the status but still count toward
    the instance limit, so a suspended user is not offered a fresh start.
    """

    def __init__(self, agreements: AgreementReader, catalog: ServiceLookup) -> None:
        self._agreements = agreements
        self._catalog = catalog

    def compute_status(self, user_id: str, service_name: str) -> EntitlementResult:
        service = self._catalog.get_service_by_name(service_name)
        agreements = self._agreements.list_live_agreements(
            user_id, service_name=service_name, statuses=HELD_STATUSES
        )
        return self._evaluate(service, agreements)

    def compute_for_services(
        self, user_id: str, services: Sequence[ServiceDefinition]
    ) -> Dict[str, EntitlementResult]:
        """Evaluate many services with a single agreement read."""

        grouped: Dict[str, List[ServiceAgreement]] = defaultdict(list)
        for agreement in self._agreements.list_live_agreements(user_id, statuses=HELD_STATUSES):
            grouped[agreement.service_name].append(agreement)
        return {service.name: self._evaluate(service, grouped.get(service.name, [])) for service in services}

    @staticmethod
    def _evaluate(service: ServiceDefinition, agreements: Sequence[ServiceAgreement]) -> EntitlementResult:
        held = [
            agreement
            for agreement in _ordered(agreements)
            if agreement.service_name == service.name and agreement.status in HELD_STATUSES
        ]
        live = [agreement for agreement in held if agreement.is_live]
        if not live:
            return EntitlementResult(
                service_name=service.name,
                status=EntitlementStatus.AVAILABLE,
                enrollment_count=len(held),
                max_instances=service.max_instances_per_user,
            )

        first = live[0]
        status = (
            EntitlementStatus.PAUSED if first.status == AgreementStatus.PAUSED else EntitlementStatus.ACTIVE
        )
        return EntitlementResult(
            service_name=service.name,
            status=status,
            agreement_id=first.id,
            enrollment_count=len(held),
            max_instances=service.max_instances_per_user,
        )
