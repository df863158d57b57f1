import enum
from datetime import datetime

from flask_login import UserMixin
from sqlalchemy import func

from quizportal.extensions import bcrypt, db


def _iso(value):
    return value.isoformat() if value else None


class QuizStatus(str, enum.Enum):
    DRAFT = "draft"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class DeletionReason(str, enum.Enum):
    QUIZ_DELETED = "Quiz deleted by event manager"
    DEACTIVATED = "Account deactivated"
    OTHER = "Other"


class EventQuiz(db.Model):
    __tablename__ = "event_quizzes"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    instructions = db.Column(db.Text)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30, server_default="30")
    total_questions = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    total_marks = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    is_published = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    negative_marking_enabled = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    # [{"question", "options", "correct_answer", "marks", "negative_marks"}]
    questions = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    credentials = db.relationship("QuizCredential", back_populates="quiz")
    results = db.relationship("EventQuizResult", back_populates="quiz")

    def current_status(self, now: datetime) -> QuizStatus:
        if not self.is_published:
            return QuizStatus.DRAFT
        if now < self.start_time:
            return QuizStatus.UPCOMING
        if now > self.end_time:
            return QuizStatus.COMPLETED
        return QuizStatus.ACTIVE

    def public_questions(self):
        """Questions as shown to participants, without the answer key."""
        return [
            {
                "index": index,
                "question": q.get("question"),
                "options": q.get("options") or [],
                "marks": q.get("marks", 1),
                "negative_marks": q.get("negative_marks", 0),
            }
            for index, q in enumerate(self.questions or [])
        ]

    def to_dict(self, now: datetime | None = None, include_questions: bool = False):
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "instructions": self.instructions,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration_minutes": self.duration_minutes,
            "total_questions": self.total_questions,
            "total_marks": self.total_marks,
            "is_published": self.is_published,
            "negative_marking_enabled": self.negative_marking_enabled,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if now is not None:
            data["status"] = self.current_status(now).value
        if include_questions:
            data["questions"] = self.questions or []
        return data


class QuizCredential(db.Model, UserMixin):
    """Login record for one quiz participant or team.

    ``failed_attempts``, ``locked``, ``lock_expiry`` and
    ``last_successful_login`` are owned by ``services.lockout``; nothing else
    should write them.
    """

    __tablename__ = "quiz_credentials"
    __table_args__ = (
        db.Index("ix_quiz_credentials_quiz_username", "quiz_id", "username"),
        db.Index("ix_quiz_credentials_quiz_active", "quiz_id", "is_active"),
    )

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("event_quizzes.id"), nullable=False, index=True)
    username = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    is_team = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    team_name = db.Column(db.String(255))
    participant_name = db.Column(db.String(120))
    participant_email = db.Column(db.String(255))
    college = db.Column(db.String(255))
    department = db.Column(db.String(120))
    year = db.Column(db.String(20))
    phone_number = db.Column(db.String(50))
    admission_number = db.Column(db.String(100))
    team_members = db.Column(db.JSON)

    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    has_attempted_quiz = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    session_token = db.Column(db.String(64))

    failed_attempts = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    locked = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    lock_expiry = db.Column(db.DateTime)
    last_successful_login = db.Column(db.DateTime)

    deletion_reason = db.Column(
        db.Enum(
            DeletionReason,
            name="deletion_reason",
            native_enum=False,
            length=64,
            values_callable=lambda reasons: [r.value for r in reasons],
        )
    )
    deleted_at = db.Column(db.DateTime)

    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    quiz = db.relationship("EventQuiz", back_populates="credentials")

    __mapper_args__ = {"version_id_col": version_id}

    def set_password(self, password: str) -> None:
        self.password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    def check_password(self, password: str) -> bool:
        return bcrypt.check_password_hash(self.password_hash, password)

    def deactivate(self, reason: DeletionReason, now: datetime) -> None:
        self.is_active = False
        self.deletion_reason = reason
        self.deleted_at = now
        self.session_token = None

    def restore(self) -> None:
        self.is_active = True
        self.deletion_reason = None
        self.deleted_at = None

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "username": self.username,
            "is_team": self.is_team,
            "team_name": self.team_name,
            "participant_details": {
                "name": self.participant_name,
                "email": self.participant_email,
                "college": self.college,
                "department": self.department,
                "year": self.year,
                "phone_number": self.phone_number,
                "admission_number": self.admission_number,
            },
            "team_members": self.team_members or [],
            "is_active": self.is_active,
            "has_attempted_quiz": self.has_attempted_quiz,
            "failed_attempts": self.failed_attempts,
            "locked": self.locked,
            "lock_expiry": _iso(self.lock_expiry),
            "last_successful_login": _iso(self.last_successful_login),
            "deletion_reason": self.deletion_reason.value if self.deletion_reason else None,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class EventQuizResult(db.Model):
    """One scored submission per participant email and quiz."""

    __tablename__ = "event_quiz_results"
    __table_args__ = (
        db.UniqueConstraint("quiz_id", "participant_email", name="uq_event_quiz_results_quiz_email"),
        db.Index("ix_event_quiz_results_quiz_score", "quiz_id", "score"),
    )

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("event_quizzes.id"), nullable=False)
    credential_id = db.Column(db.Integer, db.ForeignKey("quiz_credentials.id"))
    participant_email = db.Column(db.String(255), nullable=False)
    participant_info = db.Column(db.JSON)
    answers = db.Column(db.JSON)
    score = db.Column(db.Float, nullable=False, default=0, server_default="0")
    total_marks = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    time_taken = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    submitted_at = db.Column(db.DateTime, nullable=False)

    quiz = db.relationship("EventQuiz", back_populates="results")

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "credential_id": self.credential_id,
            "participant_email": self.participant_email,
            "participant_info": self.participant_info or {},
            "answers": self.answers or [],
            "score": self.score,
            "total_marks": self.total_marks,
            "time_taken": self.time_taken,
            "submitted_at": _iso(self.submitted_at),
        }


class QuizSettings(db.Model):
    """Per-college quiz settings.

    Override and emergency secrets are only ever held as bcrypt hashes.
    """

    __tablename__ = "quiz_settings"

    MIN_SESSION_TIMEOUT = 60
    MAX_SESSION_TIMEOUT = 1800

    id = db.Column(db.Integer, primary_key=True)
    college_id = db.Column(db.String(64), unique=True, nullable=False, default="default", server_default="default")

    admin_override_enabled = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    admin_override_password_hash = db.Column(db.String(255), nullable=False)
    admin_override_session_timeout = db.Column(db.Integer, nullable=False, default=300, server_default="300")

    emergency_access_enabled = db.Column(db.Boolean, nullable=False, default=True, server_default="1")
    emergency_password_hash = db.Column(db.String(255), nullable=False)
    emergency_access_description = db.Column(
        db.String(255),
        default="Emergency password allows admin access to any quiz even without registered credentials",
    )

    last_updated_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @classmethod
    def get_or_create_default(cls, college_id: str, override_password: str, emergency_password: str) -> "QuizSettings":
        settings = cls.query.filter_by(college_id=college_id).first()
        if not settings:
            settings = cls(college_id=college_id)
            settings.set_admin_override_password(override_password)
            settings.set_emergency_password(emergency_password)
            db.session.add(settings)
            db.session.commit()
        return settings

    def set_admin_override_password(self, password: str) -> None:
        self.admin_override_password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    def set_emergency_password(self, password: str) -> None:
        self.emergency_password_hash = bcrypt.generate_password_hash(password).decode("utf-8")

    def validate_admin_password(self, password: str) -> bool:
        if not self.admin_override_enabled or not password:
            return False
        return bcrypt.check_password_hash(self.admin_override_password_hash, password)

    def validate_emergency_password(self, password: str) -> bool:
        if not self.emergency_access_enabled or not password:
            return False
        return bcrypt.check_password_hash(self.emergency_password_hash, password)

    def admin_config(self):
        return {
            "enabled": self.admin_override_enabled,
            "session_timeout": self.admin_override_session_timeout,
        }

    def to_dict(self):
        return {
            "college_id": self.college_id,
            "admin_override": self.admin_config(),
            "emergency_access": {
                "enabled": self.emergency_access_enabled,
                "description": self.emergency_access_description,
            },
            "last_updated_at": _iso(self.last_updated_at),
        }
