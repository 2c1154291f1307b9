from __future__ import annotations

import logging
from collections import defaultdict

from bellforge.models.section import Section
from bellforge.services.time_grid import TimeGrid

logger = logging.getLogger(__name__)


def balance_lunch_waves(sections: list[Section], grid: TimeGrid) -> dict[int, int]:
    """Assign split-lunch waves so each department eats together.

    Departments are taken largest enrollment first and dropped into the wave
    with the fewest students so far. Returns students per wave.
    """
    if not grid.is_split_lunch or grid.lunch_period_id is None:
        return {}

    wave_loads = {wave: 0 for wave in range(1, grid.num_waves + 1)}
    by_department: dict[str, list[Section]] = defaultdict(list)
    for section in sections:
        if section.is_placed and section.slot.period_id == grid.lunch_period_id:
            by_department[section.department].append(section)

    ranked = sorted(
        by_department.items(),
        key=lambda item: sum(section.enrollment for section in item[1]),
        reverse=True,
    )
    for department, members in ranked:
        wave = min(wave_loads, key=lambda key: wave_loads[key])
        for section in members:
            section.lunch_wave = wave
        wave_loads[wave] += sum(section.enrollment for section in members)
        logger.debug("Department %s assigned to lunch wave %s", department, wave)

    return wave_loads
