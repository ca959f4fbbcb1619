"""CLI script to recompute achievement snapshots on demand."""
from __future__ import annotations

import argparse

from bountyboard.tasks.achievements import check_all_achievements, check_user_achievements


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Recompute achievement snapshots and report newly earned achievements",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--user-id", type=str, help="Recompute a single user's snapshot")
    target.add_argument(
        "--all",
        action="store_true",
        help="Recompute snapshots for every user with a completed bounty",
    )
    parser.add_argument(
        "--async",
        action="store_true",
        dest="use_async",
        help="Queue the work on the Celery worker",
    )
    args = parser.parse_args()

    task, task_args = (
        (check_all_achievements, ()) if args.all else (check_user_achievements, (args.user_id,))
    )
    if args.use_async:
        queued = task.apply_async(args=task_args)
        print(f"Task queued: {queued.id}")
        return

    result = task.run(*task_args)
    if args.all:
        print(
            f"Checked {result['users_checked']} user(s), {result['users_failed']} failed, "
            f"{result['total_new']} new achievement(s)"
        )
    else:
        earned = ", ".join(result["achievement_ids"]) or "none"
        print(f"User {result['user_id']}: new achievements: {earned}")


if __name__ == "__main__":
    main()
