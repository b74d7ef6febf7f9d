"""
Resolution coordinator.

Tracks the caller's decision for every duplicate group of an import session
and turns the decisions into the reconciled record list handed to storage.
"""

from typing import Optional

import structlog

from exceptions import DuplicateGroupNotFoundError, UnresolvedGroupsError
from models.duplicate import (
    DuplicateGroup,
    DuplicateResolution,
    ParsedRecord,
    ReconciledImport,
    ReconciledRecord,
    RecordOperation,
    ResolutionAction,
    ResolutionSummary,
)
from services.field_mapper import FieldMapper
from services.merge_engine import MergeEngine

logger = structlog.get_logger(__name__)


class ResolutionCoordinator:
    """
    Per-group state machine: unresolved -> resolved.

    There is no automatic resolution. Every group needs an explicit
    decision before finalize() succeeds. Re-resolving a group replaces the
    earlier decision.
    """

    def __init__(
        self,
        groups: list[DuplicateGroup],
        mapping: dict[str, str],
        merge_engine: Optional[MergeEngine] = None,
    ):
        self.groups: dict[str, DuplicateGroup] = {g.id: g for g in groups}
        self.mapping = dict(mapping)
        self.merge_engine = merge_engine or MergeEngine()
        self.resolutions: dict[str, DuplicateResolution] = {}

    # ===================
    # STATE
    # ===================

    def get_group(self, group_id: str) -> DuplicateGroup:
        group = self.groups.get(group_id)
        if group is None:
            raise DuplicateGroupNotFoundError(group_id)
        return group

    def resolve(self, group_id: str, action: ResolutionAction) -> DuplicateResolution:
        """
        Record a decision for one group.

        A merge decision always carries the merge preview computed here.

        Raises:
            DuplicateGroupNotFoundError: If group_id is not part of this session
        """
        group = self.get_group(group_id)
        action = ResolutionAction(action)
        merged_data = None
        if action == ResolutionAction.MERGE:
            merged_data = self.merge_engine.generate_merge_preview(group.members, self.mapping)

        secondary_indices = [m.index for m in group.secondaries]
        resolution = DuplicateResolution(
            group_id=group_id,
            action=action,
            primary_index=group.primary.index,
            secondary_index=secondary_indices[0],
            secondary_indices=secondary_indices,
            merged_data=merged_data,
        )
        replaced = group_id in self.resolutions
        self.resolutions[group_id] = resolution

        logger.info(
            "duplicate_group_resolved",
            group_id=group_id,
            action=action.value,
            replaced=replaced,
            progress=round(self.progress, 3),
        )
        return resolution

    @property
    def progress(self) -> float:
        """Share of groups resolved, 1.0 when there is nothing to resolve."""
        if not self.groups:
            return 1.0
        return len(self.resolutions) / len(self.groups)

    @property
    def is_complete(self) -> bool:
        return len(self.resolutions) == len(self.groups)

    def unresolved_group_ids(self) -> list[str]:
        return [gid for gid in self.groups if gid not in self.resolutions]

    # ===================
    # FINALIZE
    # ===================

    def finalize(
        self,
        batch: list[ParsedRecord],
        existing: list[ParsedRecord],
        mapping: Optional[dict[str, str]] = None,
    ) -> ReconciledImport:
        """
        Apply every decision and build the record list for storage.

        Surviving batch records become inserts and changed existing primaries
        become updates. Only uploaded records are ever dropped: stored
        applications are never deleted, and existing records nobody changed
        are left out.

        Raises:
            UnresolvedGroupsError: If any group is still unresolved
        """
        unresolved = self.unresolved_group_ids()
        if unresolved:
            raise UnresolvedGroupsError(unresolved, len(self.groups))

        mapping = self.mapping if mapping is None else mapping
        dropped: set[int] = set()
        overrides: dict[int, dict[str, str]] = {}
        counts = {action: 0 for action in ResolutionAction}

        for group_id, resolution in self.resolutions.items():
            group = self.groups[group_id]
            incoming = [m.index for m in group.secondaries if not m.is_existing]
            match resolution.action:
                case ResolutionAction.MERGE:
                    overrides[resolution.primary_index] = dict(resolution.merged_data)
                    dropped.update(incoming)
                    counts[ResolutionAction.MERGE] += 1
                case ResolutionAction.SKIP:
                    dropped.update(incoming)
                    counts[ResolutionAction.SKIP] += 1
                case ResolutionAction.UPDATE:
                    overrides[resolution.primary_index] = self.merge_engine.generate_update_preview(
                        group.members, mapping
                    )
                    dropped.update(incoming)
                    counts[ResolutionAction.UPDATE] += 1
                case ResolutionAction.KEEP_BOTH:
                    counts[ResolutionAction.KEEP_BOTH] += 1

        records: list[ReconciledRecord] = []
        for record in sorted([*batch, *existing], key=lambda r: r.index):
            if record.index in dropped:
                continue

            original = FieldMapper.to_canonical(record, mapping)
            data = overrides.get(record.index, original)
            if not record.is_existing:
                records.append(ReconciledRecord(
                    index=record.index, operation=RecordOperation.INSERT, data=data
                ))
            elif data != original:
                records.append(ReconciledRecord(
                    index=record.index,
                    operation=RecordOperation.UPDATE,
                    source_id=record.source_id,
                    data=data,
                ))

        summary = ResolutionSummary(
            merged=counts[ResolutionAction.MERGE],
            skipped=counts[ResolutionAction.SKIP],
            updated=counts[ResolutionAction.UPDATE],
            kept_both=counts[ResolutionAction.KEEP_BOTH],
        )
        reconciled = ReconciledImport(records=records, summary=summary)
        logger.info(
            "import_reconciled",
            inserts=len(reconciled.by_operation(RecordOperation.INSERT)),
            updates=len(reconciled.by_operation(RecordOperation.UPDATE)),
            dropped=len(dropped),
            merged=summary.merged,
            skipped=summary.skipped,
            updated=summary.updated,
            kept_both=summary.kept_both,
        )
        return reconciled
