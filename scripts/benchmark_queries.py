from __future__ import annotations

import sys
import time
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from libdesk.core.time_provider import default_time_provider
from libdesk.db import session_scope
from libdesk.models import Branch, Schedule
from libdesk.services import collection_service, report_service, seat_service, student_service


def time_query(label: str, fn, runs: int = 3) -> None:
    timings = []
    for _ in range(runs):
        started = time.perf_counter()
        fn()
        timings.append((time.perf_counter() - started) * 1000.0)
    avg_ms = sum(timings) / len(timings) if timings else 0.0
    print(f"{label}: avg_ms={avg_ms:.2f} runs={runs} samples={[round(x, 2) for x in timings]}")


def main() -> None:
    with session_scope() as db:
        month = default_time_provider.current_month()
        branch_id = db.query(Branch.id).order_by(Branch.id.asc()).limit(1).scalar()
        shift_id = db.query(Schedule.id).order_by(Schedule.id.asc()).limit(1).scalar()

        time_query("students_list", lambda: student_service.list_students(db, branch_id=branch_id))
        time_query("students_expiring_soon", lambda: student_service.list_expiring_soon(db, branch_id=branch_id))
        time_query("seats_with_shift_state", lambda: seat_service.list_seats(db, branch_id=branch_id))
        time_query(
            "collections_month",
            lambda: collection_service.list_collections(db, month=month, branch_id=branch_id),
        )
        time_query("profit_loss_month", lambda: report_service.profit_loss(db, month=month, branch_id=branch_id))

        if shift_id is not None:
            time_query(
                "students_for_shift_page",
                lambda: student_service.list_students_for_shift(db, shift_id, page=1, limit=50),
            )


if __name__ == "__main__":
    main()
