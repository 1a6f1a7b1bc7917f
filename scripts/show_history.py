#!/usr/bin/env python3
"""
Print the edit history of an incident record, most recent first.
"""

import argparse
import json
import sys

from incident_scribe.core import dao
from incident_scribe.core.audit import get_history
from incident_scribe.core.schema import AuditEntry


def format_entry(entry: AuditEntry) -> str:
    lines = [f"#{entry.id}  {entry.edited_at.isoformat(sep=' ', timespec='seconds')}  by {entry.actor}"]
    for field, change in entry.changes.items():
        lines.append(f"  {field}: {change.get('old')!r} -> {change.get('new')!r}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Show the edit history of an incident record",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s 3f2c...            # Full history
  %(prog)s 3f2c... -n 5       # Five most recent entries
  %(prog)s 3f2c... --json     # Output entries as JSON

Environment variables:
- DB_PATH=./data/incidents.db (database location)
        """
    )

    parser.add_argument("record_id", help="Record id")
    parser.add_argument(
        "--limit", "-n",
        type=int,
        default=None,
        help="Show at most this many entries"
    )
    parser.add_argument(
        "--json", "-j",
        action="store_true",
        help="Output entries as JSON instead of human-readable text"
    )

    args = parser.parse_args()

    if dao.get_record(args.record_id) is None:
        print(f"Record not found: {args.record_id}", file=sys.stderr)
        return 1

    entries = get_history(args.record_id, args.limit).to_list()

    if args.json:
        print(json.dumps([entry.to_dict() for entry in entries], indent=2, default=str))
        return 0

    if not entries:
        print("No edits recorded.")
        return 0

    print("\n\n".join(format_entry(entry) for entry in entries))
    return 0


if __name__ == "__main__":
    sys.exit(main())
