from __future__ import annotations

import logging
from time import time

from bellforge.models.section import Section
from bellforge.models.time_slot import TimeSlot
from bellforge.schemas.generator import LogEntry, PlacementRecord, SlotEvaluation

logger = logging.getLogger(__name__)

_LEVELS = {
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


class RunLog:
    """Per-run log and placement history returned with the schedule result.

    Every entry is mirrored to the module logger so operators see the same
    trail the caller receives.
    """

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []
        self.placement_history: list[PlacementRecord] = []

    def _record(self, level: str, message: str, data: dict | None) -> None:
        self.entries.append(LogEntry(timestamp=time(), level=level, message=message, data=data))
        logger.log(_LEVELS[level], message)

    def info(self, message: str, data: dict | None = None) -> None:
        self._record("INFO", message, data)

    def warn(self, message: str, data: dict | None = None) -> None:
        self._record("WARN", message, data)

    def error(self, message: str, data: dict | None = None) -> None:
        self._record("ERROR", message, data)

    def log_placement(
        self,
        section: Section,
        slot: TimeSlot,
        cost: float,
        evaluations: list[SlotEvaluation],
    ) -> None:
        self.placement_history.append(
            PlacementRecord(
                section_id=section.id,
                course=section.course_name,
                assigned_period=slot.display_id,
                cost_score=cost,
                evaluations=evaluations,
                status="SUCCESS",
            )
        )

    def log_failure(self, section: Section, evaluations: list[SlotEvaluation]) -> None:
        self.placement_history.append(
            PlacementRecord(
                section_id=section.id,
                course=section.course_name,
                evaluations=evaluations,
                status="FAILED",
            )
        )
        self.error(f"Gridlock: Failed to place {section.label}")
