import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["CACHE_ENABLED"] = "false"
os.environ["KAFKA_ENABLED"] = "false"

from collections import defaultdict  # noqa: E402
from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

import managertc.models  # noqa: E402,F401
from managertc.core.config import settings  # noqa: E402
from managertc.core.database import engine  # noqa: E402
from managertc.core.security import TokenData, get_current_user  # noqa: E402
from managertc.main import app  # noqa: E402
from managertc.models import (  # noqa: E402
    Department,
    Designation,
    Employee,
    Job,
    Policy,
    PolicyAssignment,
)
from managertc.models.common import utcnow  # noqa: E402
from managertc.sockets.common import session_from_identity  # noqa: E402

COMPANY = "acme_corp"
OTHER_COMPANY = "globex_inc"


@pytest.fixture(autouse=True)
def database():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def export_dir(tmp_path, monkeypatch):
    directory = tmp_path / "exports"
    monkeypatch.setattr(settings, "EXPORT_DIR", str(directory))
    return directory


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


def make_user(role="admin", company_id=COMPANY, sub="user_admin", **extra) -> TokenData:
    return TokenData(
        sub=sub,
        email=extra.pop("email", f"{sub}@example.com"),
        roles=[role],
        company_id=company_id,
        first_name=extra.pop("first_name", "Ada"),
        last_name=extra.pop("last_name", "Admin"),
        **extra,
    )


@pytest.fixture
def login():
    """Switch the identity the HTTP client is authenticated as."""

    def _login(role="admin", company_id=COMPANY, sub="user_admin") -> TokenData:
        user = make_user(role=role, company_id=company_id, sub=sub)
        app.dependency_overrides[get_current_user] = lambda: user
        return user

    yield _login
    app.dependency_overrides.clear()


@pytest.fixture
def client(login):
    login()
    return TestClient(app)


# -----------------------------------------------------------------------------
# Seed helpers
# -----------------------------------------------------------------------------


@pytest.fixture
def seed(session):
    class Seeder:
        def department(self, name, status="Active", company_id=COMPANY, days_old=0):
            department = Department(
                company_id=company_id,
                department=name,
                status=status,
                created_at=utcnow() - timedelta(days=days_old),
            )
            session.add(department)
            session.commit()
            session.refresh(department)
            return department

        def designation(self, name, department, status="Active"):
            designation = Designation(
                company_id=department.company_id,
                designation=name,
                department_id=department.id,
                status=status,
            )
            session.add(designation)
            session.commit()
            session.refresh(designation)
            return designation

        def employee(
            self,
            email,
            department=None,
            designation=None,
            status="Active",
            role="employee",
            user_id=None,
            company_id=COMPANY,
        ):
            employee = Employee(
                company_id=department.company_id if department else company_id,
                user_id=user_id,
                first_name=email.split("@")[0].title(),
                last_name="Tester",
                email=email,
                role=role,
                status=status,
                department_id=department.id if department else None,
                department=department.department if department else None,
                designation_id=designation.id if designation else None,
                designation=designation.designation if designation else None,
                bank_account_number="GB00-1234",
            )
            session.add(employee)
            session.commit()
            session.refresh(employee)
            return employee

        def policy(self, name, department=None, designation_ids=None, apply_to_all=False):
            company_id = department.company_id if department else COMPANY
            policy = Policy(
                company_id=company_id,
                policy_name=name,
                apply_to_all=apply_to_all,
                policy_description=f"{name} rules",
                effective_date=utcnow() + timedelta(days=10),
            )
            session.add(policy)
            session.commit()
            session.refresh(policy)
            if department is not None:
                session.add(
                    PolicyAssignment(
                        company_id=company_id,
                        policy_id=policy.id,
                        department_id=department.id,
                        designation_ids=list(designation_ids or []),
                    )
                )
                session.commit()
            return policy

        def job(self, title, status="Published", company_id=COMPANY, **extra):
            job = Job(
                company_id=company_id,
                job_id=extra.pop("job_id", f"JOB-{abs(hash(title)) % 1000000:06d}-ABC"),
                title=title,
                description=f"{title} description",
                category=extra.pop("category", "Software"),
                min_salary=extra.pop("min_salary", 3000),
                max_salary=extra.pop("max_salary", 5000),
                expired_date=utcnow() + timedelta(days=30),
                status=status,
                **extra,
            )
            session.add(job)
            session.commit()
            session.refresh(job)
            return job

    return Seeder()


# -----------------------------------------------------------------------------
# Socket.IO
# -----------------------------------------------------------------------------


class FakeServer:
    """Records what socket handlers register, save and emit."""

    def __init__(self):
        self.handlers = {}
        self.sessions = {}
        self.rooms = defaultdict(set)
        self.emitted = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def get_session(self, sid, namespace=None):
        return self.sessions.get(sid, {})

    async def save_session(self, sid, session, namespace=None):
        self.sessions[sid] = session

    async def enter_room(self, sid, room, namespace=None):
        self.rooms[room].add(sid)

    async def emit(self, event, data=None, to=None, room=None, skip_sid=None, **kwargs):
        self.emitted.append(
            {"event": event, "data": data, "to": to, "room": room, "skip_sid": skip_sid}
        )

    async def trigger(self, event, sid, data=None):
        return await self.handlers[event](sid, data)

    def connect_as(self, sid, user: TokenData):
        self.sessions[sid] = session_from_identity(user)

    def sent(self, event):
        return [e for e in self.emitted if e["event"] == event]

    def response(self, event):
        responses = self.sent(f"{event}-response")
        assert responses, f"no response emitted for {event}"
        return responses[-1]["data"]


@pytest.fixture
def fake_server(monkeypatch):
    monkeypatch.setattr(
        "managertc.sockets.common.hit_rate_window", lambda key, limit, window: True
    )
    return FakeServer()
