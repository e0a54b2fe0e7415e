"""Area health scoring over a bounded report feed.

Everything here is a pure function of the snapshot it is given: the dashboard
and the home summary call it again on every feed change instead of keeping
running counters.

Penalty rules:
- Only unresolved reports penalise their area, by ``10 + severity``.
- A report without severity weighs ``DEFAULT_SEVERITY_PENALTY`` instead.
- ``score = max(0, 100 - penalty)``.

Areas are grouped by their raw name, with no trimming or case folding.
"""

import math
from collections.abc import Iterable

from ezhil.schemas.dashboard import AreaScore, FeedAggregate, GlobalStats
from ezhil.schemas.report import RESOLVED, WASTE_TYPES, ReportBase

BASE_PENALTY = 10
DEFAULT_SEVERITY_PENALTY = 2
MAX_SCORE = 100
FOCUS_AREA_THRESHOLD = 85


def _severity(report: ReportBase) -> int | None:
    """Return the report's severity, or None when it is missing or malformed."""
    value = report.severity
    if isinstance(value, bool) or not isinstance(value, int) or not value:
        return None
    return value


def _score(penalty: int) -> int:
    return max(0, MAX_SCORE - penalty)


def select_focus_area(
    areas: Iterable[AreaScore],
    threshold: int = FOCUS_AREA_THRESHOLD,
) -> AreaScore | None:
    """
    Pick the area that most needs attention.

    Chooses the highest penalty rather than the lowest score, so areas that
    are all clamped to zero are still told apart. On equal penalties the
    first area seen wins. An area is only returned when its score is below
    ``threshold``; areas with no penalty are never chosen.
    """
    worst: AreaScore | None = None
    max_penalty = 0
    for area in areas:
        if area.penalty > max_penalty:
            max_penalty = area.penalty
            worst = area

    if worst is not None and worst.score < threshold:
        return worst
    return None


def aggregate_reports(
    reports: Iterable[ReportBase],
    focus_threshold: int = FOCUS_AREA_THRESHOLD,
) -> FeedAggregate:
    """
    Compute global statistics and per-area health scores for a feed snapshot.

    Args:
        reports: Reports in feed order (newest first). Not modified.
        focus_threshold: Score below which the worst area becomes a focus area.

    Returns:
        Stats, areas sorted ascending by score (stable on first appearance in
        ``reports``, no secondary key) and the focus area if any.
    """
    stats = GlobalStats()
    area_map: dict[str, AreaScore] = {}

    for report in reports:
        resolved = report.status == RESOLVED
        severity = _severity(report)

        stats.total += 1
        if resolved:
            stats.resolved += 1
        else:
            stats.pending += 1

        if severity is not None:
            stats.severity_sum += severity

        # Unknown labels are dropped, not bucketed.
        if report.waste_type in WASTE_TYPES:
            stats.types[report.waste_type] += 1

        if not report.area:
            continue

        area = area_map.get(report.area)
        if area is None:
            area = area_map[report.area] = AreaScore(name=report.area)

        area.report_count += 1
        if resolved:
            area.resolved_count += 1
        else:
            weight = severity if severity is not None else DEFAULT_SEVERITY_PENALTY
            area.penalty += BASE_PENALTY + weight

    if stats.total:
        # Unclassified reports still count in the denominator.
        stats.average_severity = stats.severity_sum / stats.total
        stats.resolution_rate = math.floor(stats.resolved / stats.total * 100 + 0.5)

    for area in area_map.values():
        area.score = _score(area.penalty)

    # Dict order is first-seen order; focus selection relies on it.
    focus_area = select_focus_area(area_map.values(), focus_threshold)
    areas = sorted(area_map.values(), key=lambda a: a.score)

    return FeedAggregate(stats=stats, areas=areas, focus_area=focus_area)
