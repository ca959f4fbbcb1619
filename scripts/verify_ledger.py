"""CLI script to audit the ledger for consistency violations."""
from __future__ import annotations

import argparse
import json
import sys

from bountyboard.tasks.integrity import audit_ledger_integrity


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Check balances, duplicates and completion stamps in the ledger",
    )
    parser.add_argument(
        "--async",
        action="store_true",
        dest="use_async",
        help="Queue the audit on the worker instead of running it here",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Print the full report as JSON",
    )
    args = parser.parse_args()

    if args.use_async:
        task = audit_ledger_integrity.apply_async()
        print(f"Task queued: {task.id}")
        return

    report = audit_ledger_integrity.run()
    if args.as_json:
        print(json.dumps(report, indent=2))
    else:
        print(
            f"Users: {report['users']}  Participations: {report['participations']}  "
            f"Claims: {report['claims']}"
        )
        for violation in report["violations"]:
            print(f"FAILED {violation['check']}: {violation['message']}")
        print("Ledger is consistent" if report["ok"] else "Ledger has violations")

    if not report["ok"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
