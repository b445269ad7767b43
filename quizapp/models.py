import uuid
from datetime import datetime, timezone

from quizapp import db


def utcnow():
    """Naive UTC timestamp, the form every column in this module stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id():
    return str(uuid.uuid4())


class Classroom(db.Model):
    __tablename__ = "classes"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)

    submissions = db.relationship("Submission", backref="classroom", lazy=True)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class Submission(db.Model):
    __tablename__ = "submissions"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)

    # Student Fields
    student_name = db.Column(db.String(150), nullable=False)
    student_nim = db.Column(db.String(30), nullable=False)
    student_email = db.Column(db.String(150), nullable=False)
    class_id = db.Column(db.Integer, db.ForeignKey("classes.id"), nullable=True)

    # Quiz content
    code = db.Column(db.Text, nullable=False)
    questions = db.Column(db.JSON, nullable=False, default=list)
    answers = db.Column(db.JSON, nullable=True)  # null until completed
    score = db.Column(db.Integer, nullable=True)  # null until completed

    # Browser Lockdown Forensics
    tab_switches = db.Column(db.Integer, default=0, nullable=False)
    suspicious_activity = db.Column(db.Boolean, default=False, nullable=False)

    # Timing
    time_limit_minutes = db.Column(db.Integer, nullable=False, default=15)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_completed(self):
        return self.completed_at is not None

    def to_dict(self):
        return {
            "id": self.id,
            "student_name": self.student_name,
            "student_nim": self.student_nim,
            "student_email": self.student_email,
            "class_id": self.class_id,
            "code": self.code,
            "questions": self.questions,
            "answers": self.answers,
            "score": self.score,
            "tab_switches": self.tab_switches,
            "suspicious_activity": self.suspicious_activity,
            "time_limit_minutes": self.time_limit_minutes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
