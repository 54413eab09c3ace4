from datetime import datetime, timedelta, timezone
from sqlalchemy import delete, func
from sqlmodel import Session, select
from typing import List

from models import Submission

GMT3 = timezone(timedelta(hours=3))


def gmt3_timestamp(now: datetime = None) -> str:
    """Submission time at a fixed UTC+3 offset, truncated to whole seconds."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(GMT3).strftime("%Y-%m-%d %H:%M:%S")


def create_submission(session: Session, **fields) -> Submission:
    fields.setdefault("timestamp", gmt3_timestamp())
    submission = Submission(**fields)
    session.add(submission)
    session.commit()
    session.refresh(submission)
    return submission


def list_submissions(session: Session) -> List[Submission]:
    return session.exec(
        select(Submission).order_by(Submission.timestamp.desc(), Submission.id.desc())
    ).all()


def count_submissions(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Submission)).one()


def clear_submissions(session: Session) -> int:
    result = session.execute(delete(Submission))
    session.commit()
    return result.rowcount
