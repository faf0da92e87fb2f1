from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

import structlog

from .service import TimesheetService
from .storage import DataStore
from .views import format_timesheet, format_timesheet_list


DEFAULT_DATA_PATH = Path("data/timesheets.json")


def configure_logging(level: int = logging.WARNING) -> None:
    """Keep service events off stdout so they never mix with command output."""
    structlog.configure(
        processors=[structlog.processors.add_log_level, structlog.dev.ConsoleRenderer(colors=False)],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def store_from_args(args: argparse.Namespace) -> DataStore:
    return DataStore(Path(args.data) if args.data else DEFAULT_DATA_PATH)


def service_from_args(args: argparse.Namespace) -> TimesheetService:
    return TimesheetService(store_from_args(args))


def unwrap(result: Dict[str, Any]) -> Dict[str, Any]:
    if not result["success"]:
        raise SystemExit(f"Error: {result['error']}")
    return result


def cmd_add_user(args: argparse.Namespace) -> None:
    store = store_from_args(args)
    user = store.add_user(first_name=args.first_name, last_name=args.last_name, email=args.email, department=args.department)
    print(f"Added user {user.id} ({user.first_name} {user.last_name}, {user.department or 'no department'})")


def cmd_current(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).get_or_create_current_timesheet(args.user))
    print(format_timesheet(result["timesheet"]))


def cmd_show(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).get_timesheet_by_id(args.timesheet))
    print(format_timesheet(result["timesheet"]))


def cmd_list(args: argparse.Namespace) -> None:
    service = service_from_args(args)
    if args.user is not None:
        result = unwrap(service.get_user_timesheets(args.user, status=args.status))
    else:
        result = unwrap(service.get_all_timesheets(status=args.status, department=args.department))
    print(format_timesheet_list(result["timesheets"]))


def cmd_save_entry(args: argparse.Namespace) -> None:
    result = unwrap(
        service_from_args(args).save_time_entry(
            args.timesheet,
            args.date,
            start_time=args.start,
            end_time=args.end,
            break_minutes=args.break_minutes,
        )
    )
    entry, totals = result["entry"], result["totals"]
    print(f"Saved {entry['date']}: {entry['totalHours']:.2f}h (period total {totals['grandTotal']:.2f}h)")


def cmd_delete_entry(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).delete_time_entry(timesheet_id=args.timesheet, date=args.date))
    print(f"Deleted entry for {args.date} (period total {result['totals']['grandTotal']:.2f}h)")


def cmd_apply_preset(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).apply_schedule_preset(args.timesheet, args.preset, args.dates))
    print(f"Filled {len(result['entries'])} days with {args.preset} (period total {result['totals']['grandTotal']:.2f}h)")


def cmd_submit(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).submit_timesheet(args.timesheet))
    print(f"Submitted timesheet {result['timesheet']['id']}")


def cmd_approve(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).approve_timesheet(args.timesheet, args.approver))
    print(f"Approved timesheet {result['timesheet']['id']}")


def cmd_reject(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).reject_timesheet(args.timesheet, args.rejecter, args.reason))
    print(f"Rejected timesheet {result['timesheet']['id']}: {result['timesheet']['rejectionReason']}")


def cmd_revert(args: argparse.Namespace) -> None:
    result = unwrap(service_from_args(args).revert_to_draft(args.timesheet))
    print(f"Timesheet {result['timesheet']['id']} is back in draft")


def cmd_delete(args: argparse.Namespace) -> None:
    unwrap(service_from_args(args).delete_timesheet(args.timesheet))
    print(f"Deleted timesheet {args.timesheet}")


def cmd_pay_period(args: argparse.Namespace) -> None:
    period = unwrap(service_from_args(args).get_pay_period_info(args.date))["payPeriod"]
    print(f"{period['startFormatted']} - {period['endFormatted']} ({period['start']} to {period['end']})")


def cmd_stats(args: argparse.Namespace) -> None:
    stats = unwrap(service_from_args(args).get_timesheet_stats(args.user))["stats"]
    print(f"Current period: {stats['currentPeriod']}")
    print(f"Awaiting approval: {stats['pending']}")


def cmd_presets(args: argparse.Namespace) -> None:
    presets = unwrap(service_from_args(args).get_schedule_presets())["presets"]
    if args.json:
        print(json.dumps(presets, indent=2))
        return
    for preset in presets:
        print(f"{preset['label']:<8} {preset['startTime']}-{preset['endTime']}  break {preset['breakMinutes']}m")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bi-weekly timesheet CLI")
    parser.add_argument("--data", help=f"Path to the JSON store (default {DEFAULT_DATA_PATH})")
    parser.add_argument("--verbose", action="store_true", help="Log service events to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    user = sub.add_parser("add-user", help="Add a staff member")
    user.add_argument("first_name")
    user.add_argument("last_name")
    user.add_argument("--email")
    user.add_argument("--department")
    user.set_defaults(func=cmd_add_user)

    current = sub.add_parser("current", help="Open (or create) the current pay period timesheet")
    current.add_argument("user", type=int)
    current.set_defaults(func=cmd_current)

    show = sub.add_parser("show", help="Render a timesheet")
    show.add_argument("timesheet", type=int)
    show.set_defaults(func=cmd_show)

    listing = sub.add_parser("list", help="List timesheets")
    listing.add_argument("--user", type=int)
    listing.add_argument("--status")
    listing.add_argument("--department")
    listing.set_defaults(func=cmd_list)

    save = sub.add_parser("save-entry", help="Record hours for one day")
    save.add_argument("timesheet", type=int)
    save.add_argument("date")
    save.add_argument("start", nargs="?")
    save.add_argument("end", nargs="?")
    save.add_argument("--break", dest="break_minutes", type=int, default=0, help="Break length in minutes")
    save.set_defaults(func=cmd_save_entry)

    delete_entry = sub.add_parser("delete-entry", help="Clear one day")
    delete_entry.add_argument("timesheet", type=int)
    delete_entry.add_argument("date")
    delete_entry.set_defaults(func=cmd_delete_entry)

    preset = sub.add_parser("apply-preset", help="Fill days with a schedule preset")
    preset.add_argument("timesheet", type=int)
    preset.add_argument("preset")
    preset.add_argument("dates", nargs="+")
    preset.set_defaults(func=cmd_apply_preset)

    submit = sub.add_parser("submit", help="Submit a draft for approval")
    submit.add_argument("timesheet", type=int)
    submit.set_defaults(func=cmd_submit)

    approve = sub.add_parser("approve", help="Approve a submitted timesheet")
    approve.add_argument("timesheet", type=int)
    approve.add_argument("approver", type=int)
    approve.set_defaults(func=cmd_approve)

    reject = sub.add_parser("reject", help="Reject a submitted timesheet")
    reject.add_argument("timesheet", type=int)
    reject.add_argument("rejecter", type=int)
    reject.add_argument("--reason")
    reject.set_defaults(func=cmd_reject)

    revert = sub.add_parser("revert", help="Return a rejected timesheet to draft")
    revert.add_argument("timesheet", type=int)
    revert.set_defaults(func=cmd_revert)

    delete = sub.add_parser("delete", help="Delete a draft timesheet")
    delete.add_argument("timesheet", type=int)
    delete.set_defaults(func=cmd_delete)

    pay_period = sub.add_parser("pay-period", help="Show the pay period containing a date")
    pay_period.add_argument("date", nargs="?")
    pay_period.set_defaults(func=cmd_pay_period)

    stats = sub.add_parser("stats", help="Dashboard numbers for a user")
    stats.add_argument("user", type=int)
    stats.set_defaults(func=cmd_stats)

    presets = sub.add_parser("presets", help="List schedule presets")
    presets.add_argument("--json", action="store_true")
    presets.set_defaults(func=cmd_presets)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    args.func(args)


if __name__ == "__main__":
    main()
