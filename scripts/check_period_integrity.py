#!/usr/bin/env python3
"""
Check attendance periods against their records.
Uses the same DATABASE_URL as the app (from app.core.config.settings).
Run from project root: python scripts/check_period_integrity.py
Exit code 1 when any issue is found.
"""
import sys
import os

# Ensure app is importable when run from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import settings  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.services.integrity_service import find_integrity_issues  # noqa: E402


def main() -> int:
    url = settings.DATABASE_URL
    print(f"DATABASE_URL: {url if url.startswith('sqlite') else url.split('@')[-1]}")

    db = SessionLocal()
    try:
        issues = find_integrity_issues(db)
    finally:
        db.close()

    for issue in issues:
        target = f"record {issue.record_id}" if issue.record_id is not None else "period"
        print(f"[{issue.kind}] period {issue.period_id} {target}: {issue.detail}")

    if issues:
        print(f"{len(issues)} integrity issue(s) found", file=sys.stderr)
        return 1
    print("No integrity issues found")
    return 0


if __name__ == "__main__":
    sys.exit(main())
