# models.py
from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()

QUESTION_TYPES = ("multiple_choice", "short_answer", "matching")


class Exam(db.Model):
    __tablename__ = "exams"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    duration = db.Column(db.Integer, nullable=False)  # minutes
    is_published = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    questions = db.relationship(
        "Question",
        back_populates="exam",
        order_by="Question.order",
        cascade="all, delete-orphan",
    )


class Question(db.Model):
    __tablename__ = "questions"
    __table_args__ = (
        db.UniqueConstraint("exam_id", "order", name="uq_questions_exam_order"),
    )

    id = db.Column(db.Integer, primary_key=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exams.id"), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False)
    # multiple_choice: [str]; matching: [{left, right}] or {matching_pairs, right_options}
    options = db.Column(db.JSON, nullable=True)
    # multiple_choice: str; short_answer: str | [str]; matching: [{left, right}]
    correct_answer = db.Column(db.JSON, nullable=False)
    points = db.Column(db.Integer, default=1, nullable=False)
    order = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    exam = db.relationship("Exam", back_populates="questions")


class ExamAttempt(db.Model):
    __tablename__ = "exam_attempts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    exam_id = db.Column(db.Integer, db.ForeignKey("exams.id"), nullable=False, index=True)
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    total_score = db.Column(db.Integer, default=0)
    is_completed = db.Column(db.Boolean, default=False, nullable=False)

    answers = db.relationship("Answer", back_populates="attempt", cascade="all, delete-orphan")


# At most one completed attempt per (user, exam).
db.Index(
    "uq_exam_attempts_completed",
    ExamAttempt.user_id,
    ExamAttempt.exam_id,
    unique=True,
    sqlite_where=ExamAttempt.is_completed == db.true(),
    postgresql_where=ExamAttempt.is_completed == db.true(),
)


class Answer(db.Model):
    __tablename__ = "answers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False)
    attempt_id = db.Column(db.Integer, db.ForeignKey("exam_attempts.id"), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id"), nullable=False)
    user_answer = db.Column(db.JSON, nullable=True)
    is_correct = db.Column(db.Boolean, nullable=False)
    points_earned = db.Column(db.Integer, default=0, nullable=False)
    answered_at = db.Column(db.DateTime, default=datetime.utcnow)

    attempt = db.relationship("ExamAttempt", back_populates="answers")
    question = db.relationship("Question")
