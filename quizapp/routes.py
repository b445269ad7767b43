import logging

from flask import Blueprint, render_template, request, redirect, session, flash, url_for, jsonify, current_app
from werkzeug.security import check_password_hash

# --- IMPORTS ---
from quizapp import db
from quizapp.models import Classroom, Submission, utcnow
from quizapp.question_generator import get_groq_client, generate_questions, QuestionGenerationError
from quizapp.grading import (finalize_submission, remaining_seconds, format_time, grade_badge,
                             score_color, UNANSWERED)

logger = logging.getLogger(__name__)

routes = Blueprint('routes', __name__)

EMPTY_CODE_MESSAGE = "Kode HTML tidak boleh kosong"
GENERATION_FAILED_MESSAGE = "Gagal membuat soal. Silakan coba lagi."
GENERATION_HINT = "Pastikan kode HTML Anda valid dan tidak terlalu kompleks"
NOT_FOUND_MESSAGE = "Submission tidak ditemukan"


# --- HELPER: QUESTION GENERATION ---
def run_question_pipeline(code):
    client = get_groq_client(current_app.config.get("GROQ_API_KEY"))
    return generate_questions(
        code,
        client,
        max_retries=current_app.config["QUESTION_MAX_RETRIES"],
        retry_delay=current_app.config["QUESTION_RETRY_DELAY"],
        model=current_app.config["GROQ_MODEL"],
    )


# --- HELPER: ADMIN SESSION ---
def is_admin():
    return session.get('role') == 'admin'


def list_submissions(class_id):
    query = Submission.query.order_by(Submission.created_at.desc())
    if class_id and class_id.isdigit():
        query = query.filter_by(class_id=int(class_id))
    return query.all()


# --- STUDENT ROUTES ---
@routes.route('/', methods=['GET', 'POST'])
def home():
    classes = Classroom.query.order_by(Classroom.name).all()
    if request.method == 'GET':
        return render_template('index.html', classes=classes, form={})

    form = {key: (request.form.get(key) or '').strip()
            for key in ('student_name', 'student_nim', 'student_email', 'class_id')}
    code = request.form.get('code') or ''
    class_id = int(form['class_id']) if form['class_id'].isdigit() else None

    error = None
    if not form['student_name'] or not form['student_nim'] or not form['student_email']:
        error = "Nama, NIM, dan email wajib diisi"
    elif '@' not in form['student_email']:
        error = "Email tidak valid"
    elif not code.strip():
        error = EMPTY_CODE_MESSAGE
    elif form['class_id'] and (class_id is None or not db.session.get(Classroom, class_id)):
        error = "Kelas tidak ditemukan"

    if error:
        flash(error, "danger")
        return render_template('index.html', classes=classes, form=form, code=code), 400

    try:
        questions = run_question_pipeline(code)
    except QuestionGenerationError as e:
        logger.error("Error generating questions for %s: %s", form['student_nim'], e)
        flash(f"{GENERATION_FAILED_MESSAGE} {GENERATION_HINT}", "danger")
        return render_template('index.html', classes=classes, form=form, code=code), 500

    now = utcnow()
    submission = Submission(
        student_name=form['student_name'],
        student_nim=form['student_nim'],
        student_email=form['student_email'],
        class_id=class_id,
        code=code,
        questions=questions,
        time_limit_minutes=current_app.config["QUIZ_TIME_LIMIT_MINUTES"],
        created_at=now,
        started_at=now,
    )
    db.session.add(submission)
    db.session.commit()
    logger.info("Submission %s created for %s", submission.id, submission.student_nim)
    return redirect(url_for('routes.quiz', submission_id=submission.id))


@routes.route('/quiz/<submission_id>')
def quiz(submission_id):
    submission = db.session.get(Submission, submission_id)
    if not submission:
        flash(NOT_FOUND_MESSAGE, "danger")
        return redirect(url_for('routes.home'))

    if submission.is_completed:
        return redirect(url_for('routes.result', submission_id=submission.id))

    remaining = remaining_seconds(submission.started_at, submission.time_limit_minutes)
    if remaining <= 0:
        # Time ran out while the student was away: grade whatever was saved (nothing)
        finalize_submission(submission, [])
        db.session.commit()
        logger.info("Submission %s expired, auto-submitted", submission.id)
        return redirect(url_for('routes.result', submission_id=submission.id))

    return render_template('quiz.html', submission=submission, time_left=remaining,
                           time_left_label=format_time(remaining),
                           max_tab_switches=current_app.config["MAX_TAB_SWITCHES"])


@routes.route('/result/<submission_id>')
def result(submission_id):
    submission = db.session.get(Submission, submission_id)
    if not submission:
        flash(NOT_FOUND_MESSAGE, "danger")
        return redirect(url_for('routes.home'))
    if not submission.is_completed:
        return redirect(url_for('routes.quiz', submission_id=submission.id))

    rows = list(zip(submission.questions, submission.answers))
    correct = sum(1 for q, a in rows if a == q['correct_answer'])
    return render_template('result.html', submission=submission, rows=rows, correct=correct,
                           badge=grade_badge(submission.score), unanswered=UNANSWERED)


# --- QUIZ API ---
@routes.route('/api/generate-questions', methods=['POST'])
def api_generate_questions():
    data = request.get_json(silent=True) or {}
    code = data.get('code')
    if not isinstance(code, str) or not code.strip():
        return jsonify({"error": EMPTY_CODE_MESSAGE}), 400

    try:
        questions = run_question_pipeline(code)
    except QuestionGenerationError as e:
        logger.error("Error generating questions: %s", e)
        return jsonify({
            "error": GENERATION_FAILED_MESSAGE,
            "details": str(e),
            "hint": GENERATION_HINT,
        }), 500

    return jsonify({"questions": questions})


@routes.route('/api/submit-answers', methods=['POST'])
def api_submit_answers():
    data = request.get_json(silent=True) or {}
    submission_id = data.get('submissionId')
    if not submission_id:
        return jsonify({"ok": False, "error": "submissionId is required"}), 400

    submission = db.session.get(Submission, str(submission_id))
    if not submission:
        return jsonify({"ok": False, "error": NOT_FOUND_MESSAGE}), 404

    answers = data.get('answers')
    if not isinstance(answers, list):
        answers = []

    if submission.is_completed:
        logger.info("Submission %s already completed, returning stored result", submission.id)
    else:
        finalize_submission(submission, answers)
        db.session.commit()
        logger.info("Submission %s graded: %s", submission.id, submission.score)

    return jsonify({
        "ok": True,
        "score": submission.score,
        "completed_at": submission.completed_at.isoformat(),
    })


@routes.route('/api/submissions/<submission_id>/violation', methods=['POST'])
def api_record_violation(submission_id):
    submission = db.session.get(Submission, submission_id)
    if not submission:
        return jsonify({"ok": False, "error": NOT_FOUND_MESSAGE}), 404
    if submission.is_completed:
        return jsonify({"ok": False, "error": "Submission sudah selesai"}), 409

    data = request.get_json(silent=True) or {}
    violation_type = data.get('type', 'unknown')
    limit = current_app.config["MAX_TAB_SWITCHES"]

    submission.tab_switches = (submission.tab_switches or 0) + 1
    submission.suspicious_activity = submission.tab_switches > limit - 1
    db.session.commit()

    logger.warning("Violation '%s' on submission %s (%d/%d)",
                   violation_type, submission.id, submission.tab_switches, limit)
    return jsonify({
        "ok": True,
        "warning_count": submission.tab_switches,
        "auto_submit": submission.tab_switches >= limit,
    })


# --- ADMIN ROUTES ---
@routes.route('/admin/login', methods=['GET', 'POST'])
def admin_login():
    if request.method == 'POST':
        password_hash = current_app.config.get("ADMIN_PASSWORD_HASH")
        if not password_hash:
            flash("Admin login is not configured", "danger")
        elif check_password_hash(password_hash, request.form.get('password') or ''):
            session['role'] = 'admin'
            logger.info("Admin logged in from %s", request.remote_addr)
            return redirect(url_for('routes.admin_dashboard'))
        else:
            flash('Invalid credentials', 'danger')
    return render_template('admin_login.html')


@routes.route('/admin/logout')
def admin_logout():
    session.clear()
    return redirect(url_for('routes.admin_login'))


@routes.route('/admin')
def admin_dashboard():
    if not is_admin(): return redirect(url_for('routes.admin_login'))
    selected_class = request.args.get('class_id', 'all')
    classes = Classroom.query.order_by(Classroom.name).all()
    submissions = list_submissions(selected_class)
    return render_template('admin_dashboard.html', classes=classes, submissions=submissions,
                           selected_class=selected_class, grade_badge=grade_badge)


@routes.route('/admin/classes', methods=['POST'])
def create_class():
    if not is_admin(): return redirect(url_for('routes.admin_login'))
    name = (request.form.get('name') or '').strip()
    if not name:
        flash("Nama kelas wajib diisi", "danger")
    elif Classroom.query.filter_by(name=name).first():
        flash(f"Kelas {name} sudah ada", "warning")
    else:
        db.session.add(Classroom(name=name))
        db.session.commit()
        flash(f"Kelas {name} dibuat", "success")
    return redirect(url_for('routes.admin_dashboard'))


@routes.route('/admin/submission/<submission_id>')
def admin_submission_detail(submission_id):
    if not is_admin(): return redirect(url_for('routes.admin_login'))
    submission = db.session.get(Submission, submission_id)
    if not submission:
        return render_template('admin_submission.html', submission=None, message=NOT_FOUND_MESSAGE), 404
    return render_template('admin_submission.html', submission=submission, score_color=score_color)


# --- ADMIN API ---
@routes.route('/api/classes')
def api_classes():
    if not is_admin(): return jsonify({"error": "Not authenticated"}), 401
    return jsonify([c.to_dict() for c in Classroom.query.order_by(Classroom.name).all()])


@routes.route('/api/submissions')
def api_submissions():
    if not is_admin(): return jsonify({"error": "Not authenticated"}), 401
    submissions = list_submissions(request.args.get('class_id', 'all'))
    return jsonify([s.to_dict() for s in submissions])
