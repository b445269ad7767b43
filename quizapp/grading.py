from quizapp.models import utcnow

UNANSWERED = -1


def normalize_answers(answers, question_count, option_count=4):
    """Pad or truncate answers to the question count; anything unusable becomes -1."""
    answers = list(answers or [])[:question_count]
    normalized = []
    for answer in answers:
        if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer < option_count:
            answer = UNANSWERED
        normalized.append(answer)
    normalized.extend([UNANSWERED] * (question_count - len(normalized)))
    return normalized


def compute_score(questions, answers):
    """Percentage of correct answers, rounded to an int in 0..100."""
    if not questions:
        return 0
    correct = sum(1 for q, a in zip(questions, answers) if a == q.get("correct_answer"))
    return round(correct * 100 / len(questions))


def grade_badge(score):
    """(label, css class) for the admin listing badge."""
    if score is None:
        return "Belum Selesai", "secondary"
    if score >= 80:
        return f"A ({score})", "grade-a"
    if score >= 70:
        return f"B ({score})", "grade-b"
    if score >= 60:
        return f"C ({score})", "grade-c"
    return f"D/E ({score})", "destructive"


def score_color(score):
    if score >= 80:
        return "grade-a"
    if score >= 60:
        return "grade-b"
    return "destructive"


def remaining_seconds(started_at, time_limit_minutes, now=None):
    now = now or utcnow()
    elapsed = int((now - started_at).total_seconds())
    return time_limit_minutes * 60 - elapsed


def format_time(seconds):
    seconds = max(int(seconds), 0)
    return f"{seconds // 60}:{seconds % 60:02d}"


def finalize_submission(submission, answers):
    """Grade a submission and stamp completed_at. Completed submissions are left untouched."""
    if submission.completed_at is not None:
        return submission
    questions = submission.questions or []
    submission.answers = normalize_answers(answers, len(questions))
    submission.score = compute_score(questions, submission.answers)
    submission.completed_at = utcnow()
    return submission
