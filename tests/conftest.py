import io
import os

# Must be set before the application modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from reportlab.pdfgen import canvas

from config import settings
from database import Base, SessionLocal, engine
from main import create_app
from modules.documents.models import User
from modules.security.rate_limiter import RateLimiter

DEFAULT_ACTOR_ID = 1
GRANTEE_ID = 11
OUTSIDER_ID = 12


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_pdf(pages: int = 1, text: str = "Document de test") -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf)
    for number in range(1, pages + 1):
        c.drawString(100, 750, f"{text} - page {number}")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture(autouse=True)
def clean_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def temp_upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "staging"
    monkeypatch.setattr(settings, "TEMP_UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def users():
    with SessionLocal() as db:
        db.add_all([
            User(id=DEFAULT_ACTOR_ID, username="operateur", display_name="Opérateur", initials="OP", company="BeaverDoc Consulting"),
            User(id=GRANTEE_ID, username="marie.lefebvre", display_name="Marie Lefebvre", initials="ML", company="Entreprise XYZ"),
            User(id=OUTSIDER_ID, username="paul.martin", display_name="Paul Martin", initials="PM", company=None),
        ])
        db.commit()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(users, clock):
    app = create_app(rate_limiter=RateLimiter(window_seconds=15 * 60, max_requests=100, clock=clock))
    return TestClient(app)


@pytest.fixture
def example_pdf():
    return make_pdf()


@pytest.fixture
def two_page_pdf():
    return make_pdf(pages=2)


@pytest.fixture
def upload(client, example_pdf):
    def _upload(content=None, filename="contrat.pdf", content_type="application/pdf", options=None, headers=None):
        data = {"options": options} if options is not None else None
        files = {"file": (filename, content if content is not None else example_pdf, content_type)}
        return client.post("/documents/upload", files=files, data=data, headers=headers)
    return _upload
