"""Markdown dashboards: manager overview and associate analytics."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from mobility.config import Settings
from mobility.errors import StorageFailure
from mobility.log import get_logger
from mobility.models import Actor, Application, ApplicationStatus, Project
from mobility.profiles import get_profile, list_available_associates
from mobility.projects import discover, list_owned
from mobility.scorer import ScoredProject
from mobility.session import Session
from mobility.store import RecordStore
from mobility.workflow import list_for

log = get_logger(__name__)

_DASH = "\u2014"

_TIER_BADGE: dict[str, str] = {
    "high": "\U0001f7e2",
    "medium": "\U0001f7e1",
    "low": "\U0001f7e0",
    "none": "\u26aa",
}


@dataclass
class ManagerSummary:
    manager: str
    projects: list[Project] = field(default_factory=list)
    applications: list[Application] = field(default_factory=list)
    available_associates: int = 0

    @property
    def active_projects(self) -> int:
        return sum(1 for p in self.projects if p.applications_open)

    @property
    def total_views(self) -> int:
        return sum(p.view_count for p in self.projects)

    @property
    def by_status(self) -> Counter:
        return Counter(a.status.value for a in self.applications)


@dataclass
class AssociateSummary:
    associate: Actor
    applications: list[Application] = field(default_factory=list)
    ranked: list[ScoredProject] = field(default_factory=list)

    @property
    def by_status(self) -> Counter:
        return Counter(a.status.value for a in self.applications)

    @property
    def average_match(self) -> float:
        if not self.applications:
            return 0.0
        return sum(a.match_score for a in self.applications) / len(self.applications)


def _trim(text: str, n: int) -> str:
    return text[:n] + ("\u2026" if len(text) > n else "")


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def manager_summary(session: Session, store: RecordStore) -> ManagerSummary:
    owned = list_owned(session, store)
    return ManagerSummary(
        manager=session.name or session.user_id,
        projects=owned.projects,
        applications=list_for(session, store),
        available_associates=len(list_available_associates(session, store)),
    )


def associate_summary(session: Session, store: RecordStore, top: int = 5) -> AssociateSummary:
    actor = get_profile(session, store)
    ranked = discover(session, store, actor, open_only=True)
    return AssociateSummary(
        associate=actor,
        applications=list_for(session, store),
        ranked=ranked[:top],
    )


def build_manager_report(summary: ManagerSummary) -> str:
    lines: list[str] = [f"# Project Dashboard \u2014 {summary.manager} \u2014 {_today()}", ""]
    by_status = summary.by_status
    lines.append(
        f"**{len(summary.projects)}** projects | **{summary.active_projects}** accepting applications"
        f" | **{summary.available_associates}** associates available"
    )
    lines.append(
        f"**{len(summary.applications)}** applications"
        f" ({by_status.get('Pending', 0)} pending, {by_status.get('Accepted', 0)} accepted,"
        f" {by_status.get('Declined', 0)} declined) | **{summary.total_views}** views"
    )
    lines.append("")

    if summary.projects:
        lines.append("## My Projects")
        lines.append("")
        lines.append("| # | Project | Urgency | Deadline | Open | Applications | Views |")
        lines.append("|--:|---------|---------|----------|------|-------------:|------:|")
        for p in summary.projects:
            open_flag = "yes" if p.applications_open else "closed"
            lines.append(
                f"| {p.id} | {_trim(p.title, 40)} | {p.urgency or _DASH} | "
                f"{p.application_deadline or _DASH} | {open_flag} | {p.application_count} | {p.view_count} |"
            )
        lines.append("")

    pending = [a for a in summary.applications if a.status is ApplicationStatus.PENDING]
    if pending:
        lines.append("## Awaiting Decision")
        lines.append("")
        for a in sorted(pending, key=lambda a: -a.match_score):
            skills = ", ".join(a.associate_skills[:4])
            lines.append(
                f"- **{a.associate_name or a.associate_id}** \u2192 {a.project_title} "
                f"\u2014 {a.match_score}% match \u2014 _{skills}_ (application #{a.id})"
            )
        lines.append("")

    decided = [a for a in summary.applications if a.status.terminal]
    if decided:
        lines.append("## Recent Decisions")
        lines.append("")
        for a in sorted(decided, key=lambda a: a.updated_at or "", reverse=True)[:10]:
            lines.append(f"- {a.associate_name or a.associate_id} \u2014 {a.project_title} \u2014 _{a.status.value}_")
        lines.append("")

    log.info("Built manager report: %d projects, %d applications", len(summary.projects), len(summary.applications))
    return "\n".join(lines)


def build_associate_report(summary: AssociateSummary) -> str:
    actor = summary.associate
    lines: list[str] = [f"# My Opportunities \u2014 {actor.name or actor.id} \u2014 {_today()}", ""]
    by_status = summary.by_status
    lines.append(
        f"**{len(summary.applications)}** applications"
        f" ({by_status.get('Pending', 0)} pending, {by_status.get('Accepted', 0)} accepted,"
        f" {by_status.get('Declined', 0)} declined) | average match **{summary.average_match:.0f}%**"
    )
    lines.append(f"Skills: {', '.join(actor.skills) or _DASH}")
    if actor.desired_tech:
        lines.append(f"Learning: {', '.join(actor.desired_tech)}")
    lines.append("")

    if summary.ranked:
        lines.append("## Top Matches")
        lines.append("")
        for s in summary.ranked:
            p = s.project
            lines.append(f"### {_TIER_BADGE[s.tier]} {p.title} ({s.percent}% \u2014 {s.tier})")
            if p.company or p.location:
                lines.append(f"- **Where:** {' / '.join(x for x in (p.company, p.location) if x)}")
            if s.matched_skills:
                lines.append(f"- **Matched:** {', '.join(s.matched_skills)}")
            if s.missing_skills:
                lines.append(f"- **To learn:** {', '.join(s.missing_skills[:5])}")
            if p.application_deadline:
                lines.append(f"- **Apply by:** {p.application_deadline}")
            lines.append("")

    if summary.applications:
        lines.append("## Application History")
        lines.append("")
        for a in sorted(summary.applications, key=lambda a: a.applied_at or "", reverse=True)[:10]:
            lines.append(f"- **{a.project_title}** \u2014 _{a.status.value}_ \u2014 {a.match_score}% \u2014 {a.applied_at or ''}")
        lines.append("")

    log.info("Built associate report for %s: %d matches", actor.id, len(summary.ranked))
    return "\n".join(lines)


def write_report(content: str, settings: Settings, name: str) -> Path:
    path = settings.reports_dir / f"{name}_{_today()}.md"
    try:
        settings.reports_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise StorageFailure(f"Could not write report {path.name}: {exc}") from exc
    log.info("Report written \u2192 %s", path)
    return path
