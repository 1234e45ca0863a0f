import argparse
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

from PySide6.QtCore import QCoreApplication, QTimer

from StudyCore.core.clock import fmt_hms, fmt_short, local_now
from StudyCore.core.config import load_settings
from StudyCore.core.errors import StudyError
from StudyCore.core.log import setup_logging
from StudyCore.repos import session_repo
from StudyCore.services.report_chart import render_daily_chart
from StudyCore.services.study_controller import StudyController

log = logging.getLogger("studycore")


def _subject_id(controller, key):
    for subject in controller.state.subjects:
        if key in (subject.id, subject.name):
            return subject.id
    raise SystemExit(f"No subject named {key!r}")


def cmd_status(controller, args):
    d = controller.dashboard()
    print(f"Today:       {fmt_short(d['today_study'])} (wasted {fmt_short(d['today_wasted'])})")
    print(f"This week:   {fmt_short(d['week_study'])}")
    print(f"This month:  {fmt_short(d['month_study'])}")
    print(f"Streak:      {d['streak']} day(s)")
    print(f"Days studied: {session_repo.get_total_days_studied(controller.user_id)}, "
          f"hours: {session_repo.get_total_hours_studied(controller.user_id):.1f}")
    for g in d["goals"]:
        goal = controller.tracker.get(g.goal_id)
        scope = controller.find_subject(goal.subject_id).name if goal.subject_id else "all subjects"
        print(f"Goal {goal.type.value} ({scope}): {fmt_short(g.current)} / {fmt_short(g.target)} - {g.percent:.0f}%")
    overview = controller.analytics()["overview"]
    if overview.top_subject is not None:
        print(f"Top subject: {overview.top_subject.name} ({fmt_short(overview.top_subject.total_time)})")


def cmd_subjects(controller, args):
    for row in controller.analytics()["subjects"]:
        print(f"{row.name:<24} {fmt_short(row.total):>8}  {row.count} sessions, avg {fmt_short(row.average)}")


def cmd_add_subject(controller, args):
    subject = controller.add_subject(args.name, args.color, args.goal_minutes * 60 if args.goal_minutes else None)
    print(f"Added {subject.name} ({subject.id})")


def cmd_goal(controller, args):
    subject_id = _subject_id(controller, args.subject) if args.subject else None
    goal = controller.set_goal(args.period, args.minutes * 60, subject_id)
    print(f"{goal.type.value} goal set to {fmt_short(goal.target)}")


def cmd_log(controller, args):
    start = datetime.fromisoformat(args.start) if args.start else local_now()
    session = controller.manual_entry(_subject_id(controller, args.subject), start, args.minutes * 60, notes=args.notes)
    print(f"Logged {fmt_short(session.duration)} for {args.subject}")


def cmd_track(controller, args):
    app = QCoreApplication.instance()
    if args.wasted:
        controller.start_wasted()
    else:
        controller.start(_subject_id(controller, args.subject))
    controller.timer.tick.connect(lambda elapsed: print(f"\r{fmt_hms(elapsed)}", end="", flush=True))

    def finish(*_):
        if not controller.timer.running:
            return
        session = controller.stop(args.notes)
        print(f"\nStopped after {fmt_hms(session.duration)}")
        app.quit()

    signal.signal(signal.SIGINT, finish)
    # let Python see SIGINT while the Qt loop runs
    keepalive = QTimer()
    keepalive.timeout.connect(lambda: None)
    keepalive.start(200)
    if args.minutes:
        QTimer.singleShot(args.minutes * 60 * 1000, finish)
    app.exec()


def cmd_export(controller, args):
    print(f"Exported to {controller.export_to(args.path)}")


def cmd_import(controller, args):
    snapshot = controller.import_snapshot(Path(args.path))
    print(f"Imported {len(snapshot.subjects)} subjects, {len(snapshot.sessions)} sessions, {len(snapshot.goals)} goals")


def cmd_reconcile(controller, args):
    corrected = controller.reconcile()
    print(f"Corrected {len(corrected)} subject(s)" if corrected else "Totals already match the session log")


def cmd_chart(controller, args):
    print(f"Chart written to {render_daily_chart(controller.analytics()['daily'], args.path)}")


def build_parser():
    parser = argparse.ArgumentParser(prog="studycore", description="Study time tracker")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status").set_defaults(func=cmd_status)
    sub.add_parser("subjects").set_defaults(func=cmd_subjects)

    p = sub.add_parser("add-subject")
    p.add_argument("name")
    p.add_argument("--color", default="#3b82f6")
    p.add_argument("--goal-minutes", type=int)
    p.set_defaults(func=cmd_add_subject)

    p = sub.add_parser("goal")
    p.add_argument("period", choices=["daily", "weekly", "monthly"])
    p.add_argument("minutes", type=int)
    p.add_argument("--subject")
    p.set_defaults(func=cmd_goal)

    p = sub.add_parser("log")
    p.add_argument("subject")
    p.add_argument("minutes", type=int)
    p.add_argument("--start", help="ISO start time, default now")
    p.add_argument("--notes")
    p.set_defaults(func=cmd_log)

    p = sub.add_parser("track")
    p.add_argument("subject", nargs="?")
    p.add_argument("--wasted", action="store_true")
    p.add_argument("--minutes", type=int)
    p.add_argument("--notes")
    p.set_defaults(func=cmd_track)

    p = sub.add_parser("export")
    p.add_argument("path", nargs="?")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import")
    p.add_argument("path")
    p.set_defaults(func=cmd_import)

    sub.add_parser("reconcile").set_defaults(func=cmd_reconcile)

    p = sub.add_parser("chart")
    p.add_argument("path")
    p.set_defaults(func=cmd_chart)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = load_settings()
    setup_logging(settings.log_level)
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    controller = StudyController(settings)
    controller.persistence_failed.connect(lambda message: print(f"Warning: {message} (will retry)", file=sys.stderr))
    controller.load()
    if args.command == "track" and not (args.subject or args.wasted):
        raise SystemExit("track needs a subject or --wasted")
    try:
        args.func(controller, args)
    except StudyError as exc:
        log.error("%s", exc)
        return 1
    if controller.pending_writes and controller.retry_pending():
        log.error("%d write(s) could not be saved", len(controller.pending_writes))
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
