# tests/conftest.py
import json
from datetime import date, datetime

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_booking.client.api import RecordStoreClient
from campus_booking.core.clock import local_tz
from campus_booking.core.config import settings
from campus_booking.core.database import get_db, init_db
from campus_booking.main import app
from campus_booking.schemas.booking import Booking, BookingForm, BookingStatus, MeetingType
from campus_booking.schemas.borrowing import BorrowingRequest, BorrowStatus

TEST_API_KEY = "test-key"
STAFF_PASSWORD = "staff-pass"

ROOM_A = "ห้องประชุมธีรธรรมานันท์"      # id 1
ROOM_B = "ห้องประชุมเฉลิมพระเกียรติ"      # id 2


class FakeStore:
    """In-memory storage facade answering through httpx.MockTransport."""

    def __init__(self):
        self.blobs = {"rooms": [], "equipment": []}
        self.writes = []
        self.notifications = []
        self.fail_reads = False
        self.fail_writes = False
        self.fail_notify = 0  # number of upcoming /notify calls that fail

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.headers.get("X-API-Key") != TEST_API_KEY and path == "/data":
            return httpx.Response(401, json={"error": "Unauthorized"})

        if path == "/data":
            data_type = request.url.params["type"]
            if request.method == "GET":
                if self.fail_reads:
                    return httpx.Response(500, json={"error": "KV unavailable"})
                return httpx.Response(200, json=self.blobs[data_type])
            if self.fail_writes:
                return httpx.Response(500, json={"error": "KV write failed"})
            body = json.loads(request.content)
            self.blobs[data_type] = body
            self.writes.append((data_type, body))
            return httpx.Response(200, json={"success": True})

        if path == "/notify":
            if self.fail_notify:
                self.fail_notify -= 1
                return httpx.Response(502, text="bad gateway")
            self.notifications.append(json.loads(request.content)["message"])
            return httpx.Response(200, json={"success": True})

        if path == "/auth/login":
            password = json.loads(request.content).get("password")
            return httpx.Response(200, json={"success": password == STAFF_PASSWORD})

        return httpx.Response(404, json={"error": "Not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def writes_of(self, data_type: str):
        return [body for kind, body in self.writes if kind == data_type]


class FakeClock:
    """Callable wall clock that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ==============================================================================
# STORE / CLIENT
# ==============================================================================

@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def store_client(fake_store):
    return RecordStoreClient(base_url="http://store.test", api_key=TEST_API_KEY, transport=fake_store.transport)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=local_tz()))


# ==============================================================================
# SERVER
# ==============================================================================

@pytest.fixture
def db_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def api_client(db_engine, monkeypatch):
    """TestClient on an in-memory database; the lifespan is not run."""
    monkeypatch.setattr(settings, "API_KEY", TEST_API_KEY)
    monkeypatch.setattr(settings, "STAFF_PASSWORDS", [STAFF_PASSWORD])
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


# ==============================================================================
# RECORDS
# ==============================================================================

@pytest.fixture
def make_booking():
    counter = {"n": 0}

    def _make(**overrides) -> Booking:
        counter["n"] += 1
        fields = dict(
            id=f"b{counter['n']}",
            room_name=ROOM_A,
            date=date(2024, 6, 1),
            start_time="09:00",
            end_time="10:00",
            booker_name="สมชาย ใจดี",
            phone="0812345678",
            participants=10,
            meeting_type=MeetingType.ONSITE,
            purpose="ประชุมฝ่าย",
            status=BookingStatus.BOOKED,
            created_at=datetime(2024, 5, 20, 8, 0),
        )
        fields.update(overrides)
        return Booking(**fields)

    return _make


@pytest.fixture
def make_borrowing():
    counter = {"n": 0}

    def _make(**overrides) -> BorrowingRequest:
        counter["n"] += 1
        fields = dict(
            id=f"r{counter['n']}",
            borrower_name="สมหญิง",
            phone="0899999999",
            department="งานทะเบียน",
            purpose="ถ่ายภาพกิจกรรม",
            borrow_date=date(2024, 6, 1),
            return_date=date(2024, 6, 3),
            equipment_list="กล้อง DSLR 1 ตัว",
            status=BorrowStatus.PENDING,
            created_at=datetime(2024, 5, 30, 9, 0),
        )
        fields.update(overrides)
        return BorrowingRequest(**fields)

    return _make


@pytest.fixture
def booking_form():
    def _make(**overrides) -> BookingForm:
        fields = dict(
            room_ids=[1],
            date=date(2024, 6, 1),
            start_time="09:00",
            end_time="10:00",
            booker_name="สมชาย ใจดี",
            phone="0812345678",
            participants=10,
            purpose="ประชุมฝ่าย",
        )
        fields.update(overrides)
        return BookingForm(**fields)

    return _make
