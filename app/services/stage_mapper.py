"""
Label -> pipeline stage mapping.

A support-platform label maps to a stage when it is exactly equal to the
stage slug. Labels are scanned in the order given; the first match wins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.kanban_stage import KanbanStage


@dataclass
class LabelDriftReport:
    """Stage slugs with and without a support-platform label of the same title."""

    matched_labels: List[str] = field(default_factory=list)
    missing_labels: List[str] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.missing_labels


class StageMapper:
    def __init__(self, stages: Sequence[KanbanStage]) -> None:
        self._stages = list(stages)
        self._by_slug = {stage.slug: stage for stage in self._stages}

    @classmethod
    def for_company(cls, db: Session, company_id: UUID) -> "StageMapper":
        stages = (
            db.query(KanbanStage)
            .filter(KanbanStage.company_id == company_id)
            .order_by(KanbanStage.position.asc())
            .all()
        )
        return cls(stages)

    @property
    def stages(self) -> List[KanbanStage]:
        return list(self._stages)

    @property
    def slugs(self) -> set[str]:
        return set(self._by_slug)

    def get_by_slug(self, slug: str) -> Optional[KanbanStage]:
        return self._by_slug.get(slug)

    def get_by_id(self, stage_id: Optional[UUID]) -> Optional[KanbanStage]:
        if stage_id is None:
            return None
        return next((s for s in self._stages if s.id == stage_id), None)

    def initial_stage(self) -> Optional[KanbanStage]:
        return next((s for s in self._stages if s.is_initial), None)

    def stage_for_labels(self, labels: Iterable[str]) -> Optional[KanbanStage]:
        """First label equal to a stage slug, or None."""
        for label in labels:
            stage = self._by_slug.get(label)
            if stage is not None:
                return stage
        return None

    def drift(self, label_titles: Iterable[str]) -> LabelDriftReport:
        titles = set(label_titles)
        report = LabelDriftReport()
        for stage in self._stages:
            if stage.slug in titles:
                report.matched_labels.append(stage.slug)
            else:
                report.missing_labels.append(stage.slug)
        return report


def replace_stage_labels(
    current_labels: Iterable[str], stage_slugs: Iterable[str], target_slug: str
) -> List[str]:
    """Drop every stage label, append the target slug, keep order, de-duplicate."""
    stage_slugs = set(stage_slugs)
    kept = [label for label in current_labels if label not in stage_slugs]
    kept.append(target_slug)
    return list(dict.fromkeys(kept))
