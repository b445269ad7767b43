import json
from types import SimpleNamespace

import pytest

from quizapp import create_app, db
from quizapp.models import Classroom, Submission, utcnow


def make_questions(n=10):
    return [
        {
            "question": f"Apa fungsi property nomor {i + 1}?",
            "options": ["Pilihan A", "Pilihan B", "Pilihan C", "Pilihan D"],
            "correct_answer": i % 4,
        }
        for i in range(n)
    ]


def completion_text(questions=None):
    return json.dumps({"questions": make_questions() if questions is None else questions})


class FakeGroq:
    """Stands in for groq.Groq: replays canned completions, or raises queued exceptions."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))

    def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=item))])


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SECRET_KEY": "test",
        "GROQ_API_KEY": "test-key",
        "QUESTION_RETRY_DELAY": 0,
        "ADMIN_PASSWORD": "rahasia",
        "ADMIN_PASSWORD_HASH": "",
        "QUIZ_TIME_LIMIT_MINUTES": 15,
        "MAX_TAB_SWITCHES": 3,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(client):
    client.post("/admin/login", data={"password": "rahasia"})
    return client


@pytest.fixture
def fake_groq(monkeypatch):
    """Patch the route-level client factory; tests set .responses before use."""
    fake = FakeGroq([])
    monkeypatch.setattr("quizapp.routes.get_groq_client", lambda api_key=None: fake)
    return fake


@pytest.fixture
def classroom(app):
    cls = Classroom(name="Kelas A")
    db.session.add(cls)
    db.session.commit()
    return cls


@pytest.fixture
def submission_factory(app):
    def factory(**overrides):
        now = utcnow()
        fields = dict(
            student_name="Budi",
            student_nim="12345",
            student_email="budi@example.com",
            code="<html><body><h1>Halo</h1></body></html>",
            questions=make_questions(),
            time_limit_minutes=15,
            created_at=now,
            started_at=now,
        )
        fields.update(overrides)
        submission = Submission(**fields)
        db.session.add(submission)
        db.session.commit()
        return submission
    return factory
