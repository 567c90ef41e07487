from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from libdesk.core.time_provider import default_time_provider
from libdesk.db import Base, engine, session_scope
from libdesk.models import Branch, Schedule, Seat
from libdesk.services.auth_service import ensure_default_admin
from libdesk.services.seat_service import create_seats


DEFAULT_SHIFTS = (
    ('Morning', '06:00-12:00'),
    ('Afternoon', '12:00-18:00'),
    ('Evening', '18:00-23:00'),
)
DEFAULT_SEAT_COUNT = 20


def seed_main_branch(db) -> Branch | None:
    if db.query(Branch).first():
        return None
    branch = Branch(name='Main Library', code='MAIN')
    db.add(branch)
    db.commit()
    db.refresh(branch)

    today = default_time_provider.today()
    db.add_all([Schedule(title=title, time=window, event_date=today) for title, window in DEFAULT_SHIFTS])
    db.commit()

    if not db.query(Seat).filter(Seat.branch_id == branch.id).first():
        numbers = ','.join(str(n) for n in range(1, DEFAULT_SEAT_COUNT + 1))
        create_seats(db, seat_numbers=numbers, branch_id=branch.id)
    return branch


def main() -> None:
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        ensure_default_admin(db)
        branch = seed_main_branch(db)
    if branch is None:
        print('DB ready; a branch already exists, nothing seeded.')
    else:
        print(f'DB initialized with {branch.name}, {len(DEFAULT_SHIFTS)} shifts and {DEFAULT_SEAT_COUNT} seats.')


if __name__ == '__main__':
    main()
