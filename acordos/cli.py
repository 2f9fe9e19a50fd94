from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any

from acordos import __version__ as TOOL_VERSION
from acordos.bulk import SelectionMode, bulk_text
from acordos.classifier import ViewFilter, badge, days_late
from acordos.config import Settings, parse_iso_day, setup_logging
from acordos.errors import ImportFileError, InvalidPhoneError, ValidationError
from acordos.export import to_csv_text, write_xlsx
from acordos.loader import load_workbook_file
from acordos.messaging import format_brl, whatsapp_link
from acordos.promises import PromiseEntry, PromiseView
from acordos.records import ClientRecord, date_to_json
from acordos.shared import format_br_date
from acordos.workspace import Workspace

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_UNREADABLE_INPUT = 2
EXIT_INVALID_INPUT = 3
EXIT_EMPTY_SELECTION = 4

BADGE_LABELS = {
    "paid": "PAGO",
    "overdue": "ATRASADO",
    "due_today": "HOJE",
    "neutral": "",
}


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class AcordosArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (InvalidPhoneError, ValidationError)):
        return EXIT_INVALID_INPUT
    if isinstance(exc, (ImportFileError, UnicodeDecodeError)):
        return EXIT_UNREADABLE_INPUT
    return EXIT_COMMAND_ERROR


# ══════════════════════════════════════════════════════════════════════════════
# CONTEXT
# ══════════════════════════════════════════════════════════════════════════════

def resolve_today(args: argparse.Namespace, settings: Settings) -> date:
    try:
        if getattr(args, "today", None):
            return parse_iso_day(args.today)
        return settings.today()
    except ValueError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc


def open_workspace(args: argparse.Namespace, settings: Settings) -> Workspace:
    state_dir = Path(args.state_dir).expanduser() if getattr(args, "state_dir", None) else settings.state_dir
    workspace = Workspace(state_dir)
    input_file = getattr(args, "file", None)
    if input_file:
        path = Path(input_file)
        if not path.exists():
            raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
        result = workspace.import_file(path, getattr(args, "sheet_name", None))
        for warning in result.warnings:
            emit_human(f"Warning: {warning}", quiet=args.quiet)
    return workspace


def require_persisted(workspace: Workspace) -> None:
    if not workspace.last_persist_ok:
        raise CliError("Could not save state; the change was not stored.", EXIT_COMMAND_ERROR)


def parse_date_arg(value: str) -> date:
    try:
        return parse_iso_day(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


# ══════════════════════════════════════════════════════════════════════════════
# RENDERING
# ══════════════════════════════════════════════════════════════════════════════

def record_payload(record: ClientRecord, today: date) -> dict[str, Any]:
    return {
        "id": record.id,
        "source": record.source,
        "national_id": record.national_id,
        "name": record.name,
        "amount": record.amount,
        "due_date": date_to_json(record.due_date) or None,
        "phone": record.phone,
        "negotiation_type": record.negotiation_type,
        "status": record.status,
        "notes": record.notes,
        "promise_date": date_to_json(record.promise_date) or None,
        "badge": badge(record, today),
        "days_late": days_late(record, today) if record.due_date else None,
    }


def promise_payload(entry: PromiseEntry) -> dict[str, Any]:
    payload = entry.payload
    return {
        "key": entry.key,
        "promise_date": date_to_json(payload.promise_date),
        "updated_at": payload.updated_at,
        "note": payload.note,
        "name": payload.snapshot.name,
        "phone": payload.snapshot.phone,
        "national_id": payload.snapshot.national_id,
        "amount": payload.snapshot.amount,
    }


def render_record_line(record: ClientRecord, today: date) -> str:
    label = BADGE_LABELS[badge(record, today)]
    if label == "ATRASADO":
        label = f"ATRASADO ({days_late(record, today)}d)"
    due = format_br_date(record.due_date) or "-"
    promise = f" promessa {format_br_date(record.promise_date)}" if record.promise_date else ""
    parts = [
        due.ljust(10),
        label.ljust(15),
        record.name or "-",
        record.national_id or "-",
        record.phone or "-",
        format_brl(record.amount) or "-",
    ]
    return " | ".join(parts) + promise + f" [{record.source}]"


def render_inspect_text(payload: dict[str, Any]) -> str:
    lines = [
        "acordos inspect",
        f"File: {payload['file']}",
        f"Format: {payload['format']}",
        f"Workbook sheets: {', '.join(payload['sheets']) or '[none]'}",
        f"Sheet: {payload['sheet'] or '[none]'}",
        f"Header row: {payload['header_row'] + 1}",
        f"Rows kept: {payload['rows']}",
        f"Rows dropped: {payload['dropped_rows']}",
        "Columns:",
    ]
    for field_name, column in payload["mapping"].items():
        lines.append(f"- {field_name}: {column or '[not found]'}")
    if payload["warnings"]:
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in payload["warnings"])
    return "\n".join(lines) + "\n"


def render_summary_text(payload: dict[str, Any]) -> str:
    stats = payload["summary"]
    promises = payload["promises"]
    lines = [
        "acordos summary",
        f"Date: {payload['today']}",
        f"Clients: {stats['total']} ({stats['manual']} manual)",
        f"Pending: {stats['pending']}",
        f"Paid: {stats['paid']}",
        f"Due today: {stats['due_today']}",
        f"Overdue: {stats['overdue']}",
        f"Promises: {promises['total']} (today {promises['today']}, expired {promises['expired']}, next 7 days {promises['next_7']})",
        "Due in the next 7 days:",
    ]
    lines.extend(f"- {item['date']}: {item['count']}" for item in payload["upcoming"])
    return "\n".join(lines) + "\n"


# ══════════════════════════════════════════════════════════════════════════════
# PARSER
# ══════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--state-dir", dest="state_dir", help="Directory holding manual_clients.json and promises.json")
    common.add_argument("--today", help="Reference date (YYYY-MM-DD); defaults to ACORDOS_TODAY or the current day")
    common.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logs")

    source = argparse.ArgumentParser(add_help=False)
    source.add_argument("--file", help="Spreadsheet to import (.xlsx .xlsm .xls .ods .csv .txt)")
    source.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name (default: first sheet)")

    view = argparse.ArgumentParser(add_help=False)
    view.add_argument("--filter", dest="view_filter", choices=[item.value for item in ViewFilter], default=ViewFilter.ALL.value, help="Status filter")
    view.add_argument("--query", default="", help="Search national id, name or phone")

    parser = AcordosArgumentParser(prog="acordos", description="Collection agreements: import, classify and follow up.")
    subparsers = parser.add_subparsers(dest="command", required=True, parser_class=AcordosArgumentParser)

    inspect = subparsers.add_parser("inspect", parents=[common], help="Show sheets, header row and column mapping of a file.")
    inspect.add_argument("input", help="Input file path")
    inspect.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name (default: first sheet)")
    inspect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    list_cmd = subparsers.add_parser("list", parents=[common, source, view], help="List the working set.")
    list_cmd.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    summary = subparsers.add_parser("summary", parents=[common, source], help="Dashboard statistics.")
    summary.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    bulk = subparsers.add_parser("bulk", parents=[common, source, view], help="Phones for a batch outreach, one per line.")
    bulk.add_argument("mode", choices=[item.value for item in SelectionMode], help="Selection mode")

    export = subparsers.add_parser("export", parents=[common, source], help="Export the working set.")
    export.add_argument("format", choices=["csv", "xlsx"], help="Output format")
    export.add_argument("output", help="Output path")
    export.add_argument("--force", action="store_true", help="Overwrite an existing output")

    clients = subparsers.add_parser("clients", help="Manage manual clients.")
    clients_subparsers = clients.add_subparsers(dest="clients_command", required=True, parser_class=AcordosArgumentParser)
    clients_add = clients_subparsers.add_parser("add", parents=[common], help="Add a manual client.")
    clients_add.add_argument("--name", default="", help="Client name")
    clients_add.add_argument("--phone", default="", help="Phone with area code")
    clients_add.add_argument("--due", default="", help="Due date (YYYY-MM-DD or DD/MM/YYYY)")
    clients_add.add_argument("--cpf", default="", help="National id (CPF/CNPJ)")
    clients_add.add_argument("--amount", default="", help="Amount, e.g. 1.234,56")
    clients_subparsers.add_parser("clear", parents=[common], help="Delete every manual client.")

    promises = subparsers.add_parser("promises", help="Manage payment promises.")
    promises_subparsers = promises.add_subparsers(dest="promises_command", required=True, parser_class=AcordosArgumentParser)
    promises_set = promises_subparsers.add_parser("set", parents=[common], help="Create or overwrite a promise.")
    promises_set.add_argument("--key", help="Existing promise key to overwrite")
    promises_set.add_argument("--cpf", default="", help="National id (CPF/CNPJ)")
    promises_set.add_argument("--phone", default="", help="Phone with area code")
    promises_set.add_argument("--name", default="", help="Client name")
    promises_set.add_argument("--amount", default="", help="Amount, e.g. 1.234,56")
    promises_set.add_argument("--date", required=True, help="Promise date (YYYY-MM-DD)")
    promises_set.add_argument("--note", default="", help="Free-text note")
    promises_remove = promises_subparsers.add_parser("remove", parents=[common], help="Delete a promise.")
    promises_remove.add_argument("key", help="Promise key")
    promises_list = promises_subparsers.add_parser("list", parents=[common], help="List promises by date.")
    promises_list.add_argument("--view", choices=[item.value for item in PromiseView], default=PromiseView.ALL.value, help="Promise view")
    promises_list.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    link = subparsers.add_parser("link", help="Print a WhatsApp link for a phone and message.")
    link.add_argument("phone", help="Phone with area code")
    link.add_argument("message", help="Message text")

    subparsers.add_parser("version", help="Print version")
    return parser


# ══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════════

def run_inspect(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    workbook = load_workbook_file(input_path)
    workspace = Workspace()
    result = workspace.load_workbook(workbook, args.sheet_name)
    payload = {
        "file": str(input_path),
        "format": workbook.detected_format,
        "sheets": workbook.sheet_names,
        "sheet": workspace.sheet_name,
        "header_row": result.header_row,
        "mapping": dict(result.mapping.columns),
        "rows": len(result.records),
        "dropped_rows": result.dropped_rows,
        "warnings": result.warnings,
    }
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(render_inspect_text(payload), end="")
    return EXIT_SUCCESS


def run_list(args: argparse.Namespace, settings: Settings, today: date) -> int:
    workspace = open_workspace(args, settings)
    records = workspace.view(ViewFilter(args.view_filter), args.query, today=today)
    if args.json:
        maybe_emit_json_stdout([record_payload(record, today) for record in records], True)
        return EXIT_SUCCESS
    for record in records:
        print(render_record_line(record, today))
    emit_human(f"{len(records)} of {len(workspace.records)} client(s)", quiet=args.quiet)
    return EXIT_SUCCESS


def run_summary(args: argparse.Namespace, settings: Settings, today: date) -> int:
    workspace = open_workspace(args, settings)
    payload = {
        "today": today.isoformat(),
        "summary": workspace.summary(today).as_dict(),
        "promises": workspace.promise_counts(today),
        "upcoming": [{"date": day.isoformat(), "count": count} for day, count in workspace.upcoming(today)],
    }
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(render_summary_text(payload), end="")
    return EXIT_SUCCESS


def run_bulk(args: argparse.Namespace, settings: Settings, today: date) -> int:
    workspace = open_workspace(args, settings)
    phones = workspace.bulk_phones(SelectionMode(args.mode), ViewFilter(args.view_filter), args.query, today=today)
    if not phones:
        eprint(f"No phones selected for {args.mode}.")
        return EXIT_EMPTY_SELECTION
    print(bulk_text(phones))
    emit_human(f"{len(phones)} phone(s) selected", quiet=args.quiet)
    return EXIT_SUCCESS


def run_export(args: argparse.Namespace, settings: Settings, today: date) -> int:
    output_path = Path(args.output)
    if output_path.exists() and not args.force:
        raise CliError(f"Refusing to overwrite existing output: {output_path}", EXIT_COMMAND_ERROR)
    workspace = open_workspace(args, settings)
    rows = workspace.export_rows()
    if args.format == "csv":
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(to_csv_text(rows), encoding="utf-8")
    else:
        write_xlsx(rows, output_path)
    emit_human(f"Exported {len(rows)} client(s): {output_path}", quiet=args.quiet)
    return EXIT_SUCCESS


def run_clients(args: argparse.Namespace, settings: Settings, today: date) -> int:
    workspace = open_workspace(args, settings)
    if args.clients_command == "add":
        record = workspace.add_manual_client(
            name=args.name,
            phone=args.phone,
            due_date=args.due,
            national_id=args.cpf,
            amount=args.amount,
        )
        require_persisted(workspace)
        emit_human(f"Client saved: {record.name} ({record.id})", quiet=args.quiet)
        return EXIT_SUCCESS
    if args.clients_command == "clear":
        removed = workspace.clear_manual_clients()
        require_persisted(workspace)
        emit_human(f"Manual clients deleted: {removed}", quiet=args.quiet)
        return EXIT_SUCCESS
    raise CliError(f"Unknown clients command: {args.clients_command}", EXIT_COMMAND_ERROR)


def run_promises(args: argparse.Namespace, settings: Settings, today: date) -> int:
    workspace = open_workspace(args, settings)
    if args.promises_command == "set":
        key = workspace.set_promise(
            key=args.key,
            promise_date=parse_date_arg(args.date),
            name=args.name,
            phone=args.phone,
            national_id=args.cpf,
            amount=args.amount,
            note=args.note,
        )
        require_persisted(workspace)
        print(key)
        emit_human(f"Promise saved for {args.date}", quiet=args.quiet)
        return EXIT_SUCCESS
    if args.promises_command == "remove":
        if not workspace.remove_promise(args.key):
            eprint(f"Promise not found: {args.key}")
            return EXIT_COMMAND_ERROR
        require_persisted(workspace)
        emit_human(f"Promise removed: {args.key}", quiet=args.quiet)
        return EXIT_SUCCESS
    if args.promises_command == "list":
        entries = workspace.promise_entries(PromiseView(args.view), today=today)
        if args.json:
            maybe_emit_json_stdout([promise_payload(entry) for entry in entries], True)
            return EXIT_SUCCESS
        for entry in entries:
            snapshot = entry.payload.snapshot
            print(
                f"{format_br_date(entry.payload.promise_date)} | {snapshot.name or '-'} | "
                f"{snapshot.phone or '-'} | {format_brl(snapshot.amount) or '-'} | {entry.key}"
            )
        emit_human(f"{len(entries)} promise(s)", quiet=args.quiet)
        return EXIT_SUCCESS
    raise CliError(f"Unknown promises command: {args.promises_command}", EXIT_COMMAND_ERROR)


def run_link(args: argparse.Namespace) -> int:
    print(whatsapp_link(args.phone, args.message))
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


STATEFUL_COMMANDS = {
    "list": run_list,
    "summary": run_summary,
    "bulk": run_bulk,
    "export": run_export,
    "clients": run_clients,
    "promises": run_promises,
}


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        settings = Settings()
        if getattr(args, "verbose", False):
            setup_logging("DEBUG")
        elif getattr(args, "quiet", False):
            setup_logging("ERROR")
        else:
            setup_logging(settings.log_level)
        args.quiet = getattr(args, "quiet", False)

        if args.command == "version":
            return run_version()
        if args.command == "link":
            return run_link(args)
        if args.command == "inspect":
            return run_inspect(args)
        handler = STATEFUL_COMMANDS.get(args.command)
        if handler is None:
            raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
        return handler(args, settings, resolve_today(args, settings))
    except OSError as exc:
        eprint(str(exc))
        return EXIT_COMMAND_ERROR
    except (CliError, ValueError, UnicodeDecodeError) as exc:
        eprint(str(exc))
        return classify_exception(exc)


if __name__ == "__main__":
    raise SystemExit(main())
