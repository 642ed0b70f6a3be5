from __future__ import annotations

from typing import Iterator

from sqlalchemy.orm import Session

from backend.app.db.session import SessionLocal


def get_db() -> Iterator[Session]:
    """Une session par requête ; ce qui n'est pas commité est annulé."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
