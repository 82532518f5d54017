#!/usr/bin/env python3
"""
Scheduled fan-out sweep and notification retention.

Re-runs the subscriber fan-out for every video ingested in the last N hours,
completing fan-outs that failed part way (subscribers that already hold the
notification are skipped), then applies the read-notification retention
policy to every user.

Intended to be run by cron or a systemd timer.

Usage:
    python -m backend.src.scripts.fanout_sweep [--hours 24] [--skip-retention] [--dry-run]

Examples:
    # Sweep the configured window (FANOUT_SWEEP_HOURS) and purge
    python -m backend.src.scripts.fanout_sweep

    # Only re-run fan-out for the last 6 hours
    python -m backend.src.scripts.fanout_sweep --hours 6 --skip-retention
"""

import argparse
import signal
import sys
from typing import Any, Dict, Optional


def signal_handler(signum, frame):
    """Handle CTRL+C gracefully."""
    print("\n\nSweep interrupted.")
    sys.exit(130)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Re-run subscriber fan-out for recent videos and purge old read notifications.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Notes:
  - Safe to run repeatedly; already notified subscribers are skipped
  - Unread notifications are never purged
        """
    )

    parser.add_argument(
        "--hours",
        type=int,
        default=None,
        help="Sweep window in hours (default: FANOUT_SWEEP_HOURS)"
    )
    parser.add_argument(
        "--skip-retention",
        action="store_true",
        help="Do not purge expired read notifications"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many videos would be swept without making changes"
    )

    args = parser.parse_args(argv)
    if args.hours is not None and args.hours < 1:
        parser.error("--hours must be at least 1")
    return args


def run_sweep(
    db,
    hours: Optional[int] = None,
    skip_retention: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """
    Run the sweep against an open session.

    Returns:
        Dict with the fan-out summary and, unless skipped, retention counts
    """
    from datetime import datetime, timedelta

    from backend.src.config.settings import get_settings
    from backend.src.models.video import Video
    from backend.src.services.fanout_service import FanoutService
    from backend.src.services.notification_service import NotificationService
    from backend.src.utils.logging_config import get_logger

    logger = get_logger("scripts")
    settings = get_settings()
    window = hours if hours is not None else settings.fanout_sweep_hours

    if dry_run:
        since = datetime.utcnow() - timedelta(hours=window)
        pending = db.query(Video).filter(Video.created_at >= since).count()
        return {"dry_run": True, "since_hours": window, "videos_checked": pending}

    summary: Dict[str, Any] = {
        "fanout": FanoutService(db, settings=settings).sweep_recent_videos(window)
    }

    if not skip_retention:
        summary["retention"] = NotificationService(
            db, settings=settings
        ).apply_retention_all()

    logger.info("Sweep finished", extra={"summary": summary})
    return summary


def main(argv=None):
    """Main entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    args = parse_args(argv)

    # Import here to avoid loading database during argument parsing
    from sqlalchemy.exc import SQLAlchemyError

    from backend.src.db.database import SessionLocal, dispose_engine

    db = SessionLocal()
    try:
        summary = run_sweep(
            db,
            hours=args.hours,
            skip_retention=args.skip_retention,
            dry_run=args.dry_run,
        )
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[ERROR] Sweep failed: {e}")
        sys.exit(1)
    finally:
        db.close()
        dispose_engine()

    if summary.get("dry_run"):
        print(f"[DRY RUN] {summary['videos_checked']} videos in the last {summary['since_hours']}h")
        sys.exit(0)

    fanout = summary["fanout"]
    print(f"Videos checked:  {fanout['videos_checked']}")
    print(f"Created:         {fanout['created']}")
    print(f"Skipped:         {fanout['skipped']}")
    print(f"Failed:          {fanout['failed']}")
    if "retention" in summary:
        print(f"Purged:          {summary['retention']['deleted']}")

    # Non-zero exit lets the scheduler alert on partial fan-out
    sys.exit(1 if fanout["failed"] else 0)


if __name__ == "__main__":
    main()
