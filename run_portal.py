#!/usr/bin/env python3
"""
Command-line entry point for the internal mobility portal.

Every command runs as one session (``--user``/``--name``/``--role``) and goes
through the same authorization gate as any other caller.

Examples:
    python run_portal.py --user A001 --role associate browse
    python run_portal.py --user A001 --role associate browse --search react --category frontend
    python run_portal.py --user A001 --role associate apply 3 --cover "Keen to help"
    python run_portal.py --user PM01 --role pm applications --status Pending
    python run_portal.py --user PM01 --role pm decide 7 Accepted
    python run_portal.py --user PM01 --role pm associate A001
    python run_portal.py --user PM01 --role pm report
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Callable

sys.path.insert(0, str(Path(__file__).resolve().parent))

from mobility.config import Settings, ensure_dirs, load_settings
from mobility.errors import Outcome
from mobility.log import configure_logging, get_logger
from mobility.models import Role
from mobility.profiles import get_associate
from mobility.projects import discover, toggle_applications
from mobility.report import (
    associate_summary,
    build_associate_report,
    build_manager_report,
    manager_summary,
    write_report,
)
from mobility.session import Session, resolve_actor, resolve_session
from mobility.store import RecordStore
from mobility.workflow import decide, list_for, submit

log = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_STORAGE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Internal mobility portal: match associates to projects and manage applications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--user", "-u", help="Session user id")
    parser.add_argument("--name", "-n", default="", help="Display name")
    parser.add_argument("--role", "-r", choices=["associate", "manager", "pm"], help="Session role")
    parser.add_argument("--token", default="cli-session", help="Session token (empty = signed out)")
    parser.add_argument("--settings", type=Path, help="Path to settings.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    browse_p = sub.add_parser("browse", help="Projects ranked by skill match")
    browse_p.add_argument("--open-only", action="store_true", help="Hide projects not accepting applications")
    browse_p.add_argument("--top", "-t", type=int, default=20, help="Show top N")
    browse_p.add_argument("--search", "-s", help="Match title, description, company, division, location or skills")
    browse_p.add_argument("--category", "-c", help="Only this category (e.g. frontend, \"Cloud/DevOps\")")

    apps_p = sub.add_parser("applications", help="List applications visible to you")
    apps_p.add_argument("--project", type=int, help="Only this project")
    apps_p.add_argument("--status", choices=["Pending", "Accepted", "Declined"])

    apply_p = sub.add_parser("apply", help="Apply to a project")
    apply_p.add_argument("project_id", type=int)
    apply_p.add_argument("--cover", default="", help="Cover note")

    decide_p = sub.add_parser("decide", help="Accept or decline an application")
    decide_p.add_argument("application_id", type=int)
    decide_p.add_argument("decision", choices=["Accepted", "Declined"])

    toggle_p = sub.add_parser("toggle", help="Open/close applications on your project")
    toggle_p.add_argument("project_id", type=int)

    associate_p = sub.add_parser("associate", help="Show one associate's profile (managers)")
    associate_p.add_argument("associate_id")

    sub.add_parser("report", help="Write a markdown dashboard for your role")
    return parser


def _session(args: argparse.Namespace, settings: Settings) -> Session:
    pairs = {"auth-token": args.token or "", "user-id": args.user or "", "user-name": args.name}
    if args.role:
        pairs["user-role"] = args.role
    return resolve_session(pairs, settings)


def _cmd_browse(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    actor = resolve_actor(session, store)
    ranked = discover(
        session, store, actor,
        open_only=args.open_only, search=args.search, category=args.category,
    )
    lines = []
    for s in ranked[: args.top]:
        flag = "" if s.project.applications_open else "  [closed]"
        lines.append(f"#{s.project.id:<4} {s.percent:>3}% {s.tier:<6} {s.project.title}{flag}")
    return lines or ["No matching projects."]


def _cmd_applications(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    apps = list_for(session, store, project_id=args.project, status=args.status)
    return [
        f"#{a.id:<4} {a.status.value:<8} {a.match_score:>3}%  {a.project_title} ← {a.associate_name or a.associate_id}"
        for a in apps
    ] or ["No applications."]


def _cmd_apply(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    resolve_actor(session, store)
    app = submit(session, store, args.project_id, args.cover, duplicate_policy=settings.duplicate_policy)
    return [f"Application #{app.id} submitted to {app.project_title} ({app.match_score}% match)"]


def _cmd_decide(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    app = decide(session, store, args.application_id, args.decision)
    return [f"Application #{app.id} → {app.status.value}"]


def _cmd_toggle(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    project = toggle_applications(session, store, args.project_id)
    state = "open" if project.applications_open else "closed"
    return [f"Applications for #{project.id} {project.title} are now {state}"]


def _cmd_associate(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    actor = get_associate(session, store, args.associate_id)
    lines = [f"{actor.name or actor.id} <{actor.email}>" if actor.email else actor.name or actor.id]
    lines.append(f"Skills: {', '.join(actor.skills) or '-'}")
    if actor.desired_tech:
        lines.append(f"Learning: {', '.join(actor.desired_tech)}")
    if actor.experience:
        lines.append(f"Experience: {actor.experience}")
    if actor.location:
        lines.append(f"Location: {actor.location}")
    lines.append("Open to opportunities" if actor.open_to_opportunities else "Not looking")
    return lines


def _cmd_report(args, session: Session, store: RecordStore, settings: Settings) -> list[str]:
    resolve_actor(session, store)
    if session.role is Role.MANAGER:
        path = write_report(build_manager_report(manager_summary(session, store)), settings, "manager")
    else:
        path = write_report(build_associate_report(associate_summary(session, store)), settings, "associate")
    return [f"Report: {path}"]


COMMANDS: dict[str, Callable[..., list[str]]] = {
    "browse": _cmd_browse,
    "applications": _cmd_applications,
    "apply": _cmd_apply,
    "decide": _cmd_decide,
    "toggle": _cmd_toggle,
    "associate": _cmd_associate,
    "report": _cmd_report,
}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        configure_logging("DEBUG")

    def _run() -> list[str]:
        settings = load_settings(args.settings)
        ensure_dirs(settings)
        store = RecordStore.from_settings(settings)
        session = _session(args, settings)
        return COMMANDS[args.command](args, session, store, settings)

    outcome: Outcome[Any] = Outcome.capture(_run)
    error = outcome.error
    if error is None:
        for line in outcome.data or []:
            print(line)
        return EXIT_OK

    redirect = getattr(error, "redirect", None)
    print(f"{outcome.kind}: {error.message}" + (f" (go to {redirect})" if redirect else ""), file=sys.stderr)
    if outcome.hard:
        log.error("Storage failure during %s: %s", args.command, error.message)
        return EXIT_STORAGE
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
