"""Score and rank projects against an actor's declared skills."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from mobility.log import get_logger
from mobility.models import Actor, Project

log = get_logger(__name__)

REQUIRED_WEIGHT = 0.7
PREFERRED_WEIGHT = 0.3

HIGH_TIER = 0.7
MEDIUM_TIER = 0.4


@dataclass
class ScoredProject:
    project: Project
    score: float
    tier: str
    matched_required: list[str] = field(default_factory=list)
    matched_preferred: list[str] = field(default_factory=list)
    missing_skills: list[str] = field(default_factory=list)

    @property
    def matched_skills(self) -> list[str]:
        """Original spellings, required first, deduplicated."""
        return list(dict.fromkeys(self.matched_required + self.matched_preferred))

    @property
    def percent(self) -> int:
        return score_percent(self.score)


def _normalize(s: str) -> str:
    return (s or "").lower().strip()


def _normalize_all(skills: Iterable[str]) -> list[str]:
    """Lower-case and drop blanks; an empty string would contain-match anything."""
    return [n for n in (_normalize(s) for s in skills) if n]


def skills_match(a: str, b: str) -> bool:
    """Case-insensitive containment in either direction ("React" ~ "ReactJS")."""
    x, y = _normalize(a), _normalize(b)
    if not x or not y:
        return False
    return x in y or y in x


def _matched(project_skills: list[str], actor_skills: list[str]) -> tuple[list[str], list[str]]:
    matched: list[str] = []
    missing: list[str] = []
    for skill in project_skills:
        if not _normalize(skill):
            continue
        if any(skills_match(skill, mine) for mine in actor_skills):
            matched.append(skill)
        else:
            missing.append(skill)
    return matched, missing


def _fraction(matched: list[str], project_skills: list[str]) -> float:
    total = len(_normalize_all(project_skills))
    if total == 0:
        # nothing asked for: fully satisfied
        return 1.0
    return len(matched) / total


def classify(score: float) -> str:
    if score >= HIGH_TIER:
        return "high"
    if score >= MEDIUM_TIER:
        return "medium"
    if score > 0:
        return "low"
    return "none"


def score_percent(score: float) -> int:
    return max(0, min(100, int(round(score * 100))))


def score_skills(
    actor_skills: list[str],
    required: list[str],
    preferred: list[str],
) -> tuple[float, list[str], list[str], list[str]]:
    """Return (score, matched_required, matched_preferred, missing)."""
    mine = _normalize_all(actor_skills)
    req_hit, req_miss = _matched(required, mine)
    pref_hit, pref_miss = _matched(preferred, mine)
    score = (
        REQUIRED_WEIGHT * _fraction(req_hit, required)
        + PREFERRED_WEIGHT * _fraction(pref_hit, preferred)
    )
    score = min(max(score, 0.0), 1.0)
    return score, req_hit, pref_hit, req_miss + pref_miss


def score_project(project: Project, actor: Actor) -> ScoredProject:
    score, req_hit, pref_hit, missing = score_skills(
        actor.all_skills, project.required_skills, project.preferred_skills,
    )
    return ScoredProject(
        project=project,
        score=score,
        tier=classify(score),
        matched_required=req_hit,
        matched_preferred=pref_hit,
        missing_skills=missing,
    )


def _recency_key(project: Project) -> str:
    # ISO dates/timestamps sort lexically
    return project.posted_date or project.created_at or ""


def rank_projects(projects: list[Project], actor: Actor) -> list[ScoredProject]:
    """Best score first, then most recently posted, then lowest id."""
    scored = [score_project(p, actor) for p in projects]
    # stable sorts, applied least-significant key first
    scored.sort(key=lambda s: s.project.id or 0)
    scored.sort(key=lambda s: _recency_key(s.project), reverse=True)
    scored.sort(key=lambda s: s.score, reverse=True)
    log.debug(
        "Ranked %d projects for %s (%d high)",
        len(scored), actor.id, sum(1 for s in scored if s.tier == "high"),
    )
    return scored
