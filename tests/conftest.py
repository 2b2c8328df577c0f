from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import medreminder.models  # noqa: F401  (registers tables)
from medreminder.crud.user import create_user
from medreminder.db.base import Base
from medreminder.services.blob_store import LocalBlobStore

# Tuesday
DEFAULT_NOW = datetime(2026, 10, 20, 9, 0, 0)


class FrozenClock:
    def __init__(self, now: datetime = DEFAULT_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class RecordedJob:
    task_name: str
    payload: Dict[str, Any]
    run_at: Optional[datetime] = None
    delay_seconds: Optional[float] = None


@dataclass
class RecordingJobScheduler:
    jobs: List[RecordedJob] = field(default_factory=list)

    def run_after(self, delay_seconds, task_name, payload):
        self.jobs.append(RecordedJob(task_name=task_name, payload=dict(payload), delay_seconds=delay_seconds))

    def run_at(self, when, task_name, payload):
        self.jobs.append(RecordedJob(task_name=task_name, payload=dict(payload), run_at=when))

    def named(self, task_name: str) -> List[RecordedJob]:
        return [job for job in self.jobs if job.task_name == task_name]


class RecordingMailSender:
    def __init__(self, failing_destinations=()):
        self.sent = []
        self.failing_destinations = set(failing_destinations)

    def send(self, message):
        if message.destination in self.failing_destinations:
            raise ConnectionError(f"mailbox {message.destination} unavailable")
        self.sent.append((message.destination, message.subject))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def jobs():
    return RecordingJobScheduler()


@pytest.fixture
def mail_sender():
    return RecordingMailSender()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "reports"), "http://files.test/reports")


@pytest.fixture
def user(db):
    return create_user(db, name="Alice", email="alice@example.com")


@pytest.fixture
def other_user(db):
    return create_user(db, name="Bob", email="bob@example.com")
