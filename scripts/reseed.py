"""
Utility to create tables and reseed reference and demo data.

Usage:
  python scripts/reseed.py
"""
from __future__ import annotations

from sqlalchemy import text

from swapstation.database import SessionLocal, engine
from swapstation.models import Base
from swapstation.seeds import seed_demo_data, seed_reference_data


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        reference = seed_reference_data(db)
        demo = seed_demo_data(db)
        batteries = db.execute(text("SELECT COUNT(*) FROM batteries")).scalar()
        print(f"reference inserted={reference} demo inserted={demo} batteries={int(batteries or 0)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
