"""Builds the read-only capacity snapshot a feasibility run simulates against."""

from __future__ import annotations

from typing import Optional, Sequence

from staffplan.domain.constraints import validate_proposal_terms
from staffplan.domain.errors import NoStaffInScopeError, ProposalNotFoundError
from staffplan.domain.models import FeasibilitySnapshot
from staffplan.repository.data_repository import DataRepository
from staffplan.utils.config import Settings, get_settings
from staffplan.utils.logger import get_logger


logger = get_logger(__name__)


class SnapshotService:
    """Single I/O step of a feasibility request.

    Loading happens once per request so every simulated week and every
    comparison mode reads the same data.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def load_feasibility_snapshot(
        self,
        *,
        tenant_id: str,
        proposal_id: str,
        office_ids: Optional[Sequence[str]] = None,
    ) -> FeasibilitySnapshot:
        proposal = self._repository.get_proposal(tenant_id, proposal_id)
        if proposal is None:
            raise ProposalNotFoundError("Proposal not found")
        validate_proposal_terms(proposal)
        start_date = proposal.proposed_start_date
        end_date = proposal.proposed_end_date

        office_filter = sorted(set(office_ids)) if office_ids else None
        staff = self._repository.list_staff(tenant_id, office_filter)
        if not staff:
            raise NoStaffInScopeError("No staff found for the selected offices")
        staff_ids = [member.id for member in staff]

        projects = self._repository.list_overlapping_active_projects(
            tenant_id,
            start_date,
            end_date,
        )
        assignments = self._repository.list_assignments(
            [project.id for project in projects],
            staff_ids,
        )
        leave = self._repository.list_approved_leave(
            tenant_id,
            staff_ids,
            start_date,
            end_date,
        )

        logger.info(
            (
                "Snapshot loaded | tenant_id=%s | proposal_id=%s | offices=%s | staff=%s | "
                "projects=%s | assignments=%s | leave=%s"
            ),
            tenant_id,
            proposal_id,
            office_filter or "all",
            len(staff),
            len(projects),
            len(assignments),
            len(leave),
        )
        return FeasibilitySnapshot(
            tenant_id=tenant_id,
            proposal=proposal,
            staff=tuple(staff),
            projects=tuple(projects),
            assignments=tuple(assignments),
            leave=tuple(leave),
        )
