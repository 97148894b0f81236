# app.py
import os
import logging
from collections import namedtuple

import click
from flask import Flask, request, jsonify
from flask_cors import CORS
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from attempts import (
    AlreadySubmittedError, ExamNotFoundError, SubmissionError,
    completed_attempt, submit_attempt,
)
from codec import decode
from importer import load_questions_from_excel
from models import db, Exam, Question, ExamAttempt
from presenter import present_exam
from schemas import ExamIn, SubmissionIn

logger = logging.getLogger(__name__)

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DB_PATH = os.path.join(BASE_DIR, "exam.db")

Session = namedtuple("Session", ["user_id", "role"])


# =========================
# Session (set by the auth proxy)
# =========================
def current_session(req):
    raw = req.headers.get("X-User-Id", "").strip()
    try:
        user_id = int(raw)
    except ValueError:
        return None
    role = (req.headers.get("X-User-Role") or "user").strip().lower()
    return Session(user_id=user_id, role=role)


def is_admin(req):
    sess = current_session(req)
    return sess is not None and sess.role == "admin"


def _structured_or_raw(value):
    """Unwrap JSON-encoded objects and lists; leave scalars as stored."""
    decoded = decode(value)
    return decoded if isinstance(decoded, (dict, list)) else value


def _validation_error(e: ValidationError):
    details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
    return jsonify({"error": "invalid payload", "details": details}), 400


# =========================
# Serializers
# =========================
def _exam_summary(exam):
    return {
        "id": exam.id,
        "title": exam.title,
        "description": exam.description,
        "duration": exam.duration,
        "is_published": exam.is_published,
        "question_count": len(exam.questions),
    }


def _question_admin(q):
    return {
        "id": q.id,
        "text": q.text,
        "type": q.type,
        "points": q.points,
        "order": q.order,
        "options": _structured_or_raw(q.options),
        "correct_answer": _structured_or_raw(q.correct_answer),
    }


def _attempt_summary(att):
    return {
        "id": att.id,
        "user_id": att.user_id,
        "exam_id": att.exam_id,
        "started_at": att.started_at.isoformat() if att.started_at else None,
        "completed_at": att.completed_at.isoformat() if att.completed_at else None,
        "total_score": att.total_score,
    }


def _attempt_detail(att, with_key=False):
    answers = {a.question_id: a for a in att.answers}
    questions = Question.query.filter_by(exam_id=att.exam_id).order_by(Question.order.asc()).all()
    items = []
    for q in questions:
        a = answers.get(q.id)
        item = {
            "question_id": q.id,
            "text": q.text,
            "type": q.type,
            "points": q.points,
            "user_answer": _structured_or_raw(a.user_answer) if a else None,
            "is_correct": bool(a and a.is_correct),
            "points_earned": a.points_earned if a else 0,
        }
        if with_key:
            item["correct_answer"] = _structured_or_raw(q.correct_answer)
        items.append(item)

    data = _attempt_summary(att)
    data["max_score"] = sum(q.points for q in questions)
    data["answers"] = items
    return data


def _add_questions(exam, questions):
    for q in questions:
        options, correct = q.storage_payload()
        db.session.add(Question(
            exam=exam,
            text=q.text,
            type=q.type,
            options=options,
            correct_answer=correct,
            points=q.points,
            order=q.order,
        ))


# =========================
# App Setup
# =========================
def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_mapping(
        SQLALCHEMY_DATABASE_URI=os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}"),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
        CORS_ORIGINS=os.environ.get("CORS_ORIGINS", "*"),
    )
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={r"/api/*": {"origins": origins or "*"}})

    db.init_app(app)
    with app.app_context():
        db.create_all()

    @app.cli.command("init-db")
    def init_db():
        """Create database tables."""
        db.create_all()
        click.echo("Tables created")

    register_routes(app)
    return app


def register_routes(app):
    # =========================
    # Admin APIs
    # =========================
    @app.route("/api/admin/exams", methods=["GET"])
    def admin_list_exams():
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        exams = Exam.query.order_by(Exam.created_at.desc(), Exam.id.desc()).all()
        return jsonify([_exam_summary(e) for e in exams])

    @app.route("/api/admin/exams", methods=["POST"])
    def admin_create_exam():
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        try:
            data = ExamIn.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return _validation_error(e)

        exam = Exam(
            title=data.title,
            description=data.description,
            duration=data.duration,
            is_published=data.is_published,
        )
        db.session.add(exam)
        _add_questions(exam, data.questions)
        db.session.commit()
        return jsonify({"status": "ok", "id": exam.id}), 201

    @app.route("/api/admin/exams/<int:exam_id>", methods=["GET"])
    def admin_get_exam(exam_id):
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        exam = db.session.get(Exam, exam_id)
        if not exam:
            return jsonify({"error": "exam not found"}), 404

        data = _exam_summary(exam)
        data["questions"] = [_question_admin(q) for q in exam.questions]
        return jsonify(data)

    @app.route("/api/admin/exams/<int:exam_id>", methods=["PUT"])
    def admin_update_exam(exam_id):
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        exam = db.session.get(Exam, exam_id)
        if not exam:
            return jsonify({"error": "exam not found"}), 404

        try:
            data = ExamIn.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return _validation_error(e)

        if ExamAttempt.query.filter_by(exam_id=exam_id).first():
            return jsonify({"error": "exam already has attempts; questions are locked"}), 409

        exam.title = data.title
        exam.description = data.description
        exam.duration = data.duration
        exam.is_published = data.is_published

        exam.questions.clear()
        db.session.flush()
        _add_questions(exam, data.questions)
        db.session.commit()
        return jsonify({"status": "ok"})

    @app.route("/api/admin/exams/<int:exam_id>/import", methods=["POST"])
    def admin_import_questions(exam_id):
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        exam = db.session.get(Exam, exam_id)
        if not exam:
            return jsonify({"error": "exam not found"}), 404

        file = request.files.get("file")
        if not file or not file.filename.endswith(".xlsx"):
            return jsonify({"error": "invalid file"}), 400

        taken = {q.order for q in exam.questions}
        try:
            parsed, errors = load_questions_from_excel(file.stream, start_order=max(taken, default=0) + 1)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        accepted = []
        for q in parsed:
            if q.order in taken:
                errors.append(f"order {q.order}: already used in this exam")
                continue
            taken.add(q.order)
            accepted.append(q)

        _add_questions(exam, accepted)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            logger.exception("question import for exam %s failed", exam_id)
            return jsonify({"error": "import conflicts with existing questions"}), 409

        return jsonify({"status": "ok", "imported": len(accepted), "errors": errors})

    @app.route("/api/admin/exams/<int:exam_id>/attempts")
    def admin_exam_attempts(exam_id):
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        attempts = (
            ExamAttempt.query
            .filter_by(exam_id=exam_id, is_completed=True)
            .order_by(ExamAttempt.completed_at.desc())
            .all()
        )
        return jsonify([_attempt_summary(a) for a in attempts])

    @app.route("/api/admin/attempts/<int:attempt_id>")
    def admin_attempt_detail(attempt_id):
        if not is_admin(request):
            return jsonify({"error": "forbidden"}), 403

        att = ExamAttempt.query.filter_by(id=attempt_id, is_completed=True).first()
        if not att:
            return jsonify({"error": "attempt not found"}), 404
        return jsonify(_attempt_detail(att, with_key=True))

    # =========================
    # Student APIs
    # =========================
    @app.route("/api/exams")
    def list_exams():
        if not current_session(request):
            return jsonify({"error": "unauthorized"}), 401

        exams = Exam.query.filter_by(is_published=True).order_by(Exam.id.asc()).all()
        return jsonify([_exam_summary(e) for e in exams])

    @app.route("/api/exams/<int:exam_id>")
    def get_exam(exam_id):
        if not current_session(request):
            return jsonify({"error": "unauthorized"}), 401

        exam = db.session.get(Exam, exam_id)
        if not exam:
            return jsonify({"error": "exam not found"}), 404
        if not exam.is_published:
            return jsonify({"error": "this exam is not available"}), 403

        return jsonify(present_exam(exam))

    @app.route("/api/exams/<int:exam_id>/check-attempt")
    def check_attempt(exam_id):
        sess = current_session(request)
        if not sess:
            return jsonify({"error": "unauthorized"}), 401

        att = completed_attempt(sess.user_id, exam_id)
        return jsonify({"completed": att is not None, "attempt_id": att.id if att else None})

    @app.route("/api/exams/<int:exam_id>/submit", methods=["POST"])
    def submit_exam(exam_id):
        sess = current_session(request)
        if not sess:
            return jsonify({"error": "unauthorized"}), 401

        exam = db.session.get(Exam, exam_id)
        if not exam:
            return jsonify({"error": "exam not found"}), 404
        if not exam.is_published:
            return jsonify({"error": "this exam is not available"}), 403

        if completed_attempt(sess.user_id, exam_id):
            return jsonify({"error": "already submitted"}), 409

        try:
            data = SubmissionIn.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return _validation_error(e)

        try:
            result = submit_attempt(sess.user_id, exam_id, data.answers)
        except AlreadySubmittedError:
            return jsonify({"error": "already submitted"}), 409
        except ExamNotFoundError:
            return jsonify({"error": "exam not found"}), 404
        except SubmissionError:
            return jsonify({"error": "submission failed, please retry", "retryable": True}), 500

        return jsonify({"status": "ok", **result.model_dump()})

    @app.route("/api/attempts/<int:attempt_id>")
    def attempt_review(attempt_id):
        sess = current_session(request)
        if not sess:
            return jsonify({"error": "unauthorized"}), 401

        att = ExamAttempt.query.filter_by(id=attempt_id, user_id=sess.user_id, is_completed=True).first()
        if not att:
            return jsonify({"error": "attempt not found"}), 404
        return jsonify(_attempt_detail(att))

    # =========================
    # Health Check
    # =========================
    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})


# =========================
# Local Run
# =========================
if __name__ == "__main__":
    create_app().run(debug=True)
