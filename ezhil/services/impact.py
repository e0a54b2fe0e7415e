"""Impact points and achievements for reporting citizens."""

from collections.abc import Iterable

from ezhil.schemas.leaderboard import Badge, Standing
from ezhil.schemas.report import CLASSIFIED, RESOLVED, ReportOut

ANONYMOUS_USER = "anonymous"

POINTS_PER_REPORT = 10
POINTS_PER_CLASSIFICATION = 20
POINTS_PER_RESOLUTION = 50
REPORTS_PER_LEVEL = 5


def level_for(report_count: int) -> int:
    """Level grows by one every five reports, starting at 1."""
    return report_count // REPORTS_PER_LEVEL + 1


def _was_classified(report: ReportOut) -> bool:
    return report.status == CLASSIFIED or (report.status == RESOLVED and bool(report.waste_type))


def report_points(report: ReportOut) -> int:
    """Points one report earns its submitter."""
    points = POINTS_PER_REPORT
    if _was_classified(report):
        points += POINTS_PER_CLASSIFICATION
    if report.status == RESOLVED:
        points += POINTS_PER_RESOLUTION
    return points


def compute_standings(reports: Iterable[ReportOut]) -> list[Standing]:
    """
    Group reports by submitter and total their impact.

    Anonymous reports earn nobody points. The display name and area are taken
    from the first report seen for each user (feeds are newest first, so this
    is the latest one). Ordered by points descending; ties keep first-seen
    order.
    """
    standings: dict[str, Standing] = {}

    for report in reports:
        if not report.user_id or report.user_id == ANONYMOUS_USER:
            continue

        standing = standings.get(report.user_id)
        if standing is None:
            standing = standings[report.user_id] = Standing(
                user_id=report.user_id,
                user_name=report.user_name,
                area=report.area,
            )

        standing.report_count += 1
        if _was_classified(report):
            standing.classified_count += 1
        if report.status == RESOLVED:
            standing.resolved_count += 1
        standing.impact_points += report_points(report)

    for standing in standings.values():
        standing.level = level_for(standing.report_count)

    return sorted(standings.values(), key=lambda s: s.impact_points, reverse=True)


def standing_for(user_id: str, reports: Iterable[ReportOut]) -> Standing:
    """Standing of a single user, zeroed when they have no reports."""
    for standing in compute_standings(r for r in reports if r.user_id == user_id):
        return standing
    return Standing(user_id=user_id)


def badges_for(standing: Standing) -> list[Badge]:
    """Achievements unlocked by a standing."""
    return [
        Badge(
            id="starter",
            name="Starter",
            description="1st Report",
            unlocked=standing.report_count >= 1,
        ),
        Badge(
            id="explorer",
            name="Explorer",
            description="5 Reports",
            unlocked=standing.report_count >= 5,
        ),
        Badge(
            id="hero",
            name="Hero",
            description="Resolved",
            unlocked=standing.resolved_count > 0,
        ),
        Badge(
            id="elite",
            name="Elite",
            description="100+ Points",
            unlocked=standing.impact_points >= 100,
        ),
        Badge(
            id="guardian",
            name="Guardian",
            description="Level 5+",
            unlocked=standing.level >= 5,
        ),
    ]
