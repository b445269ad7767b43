import json

import groq
import pytest

from quizapp.question_generator import (
    build_prompt, clean_json_response, validate_questions, generate_questions,
    QuestionGenerationError, TooFewQuestionsError, MODEL,
)
from conftest import FakeGroq, make_questions, completion_text


def test_build_prompt_embeds_code():
    prompt = build_prompt("<h1 class=\"judul\">Halo</h1>")
    assert '<h1 class="judul">Halo</h1>' in prompt
    assert "TEPAT 10 soal" in prompt
    assert '"correct_answer": 0' in prompt


def test_clean_strips_markdown_fences_and_chatter():
    raw = 'Berikut soalnya:\n```json\n{"questions": []}\n```\nSemoga membantu!'
    assert clean_json_response(raw) == '{"questions": []}'


def test_clean_flattens_newlines_and_drops_control_chars():
    raw = '{"questions":\n[\t{"question": "a\u0007b"}]}'
    cleaned = clean_json_response(raw)
    assert "\n" not in cleaned and "\t" not in cleaned
    assert json.loads(cleaned) == {"questions": [{"question": "ab"}]}


def test_clean_escapes_stray_backslashes_only():
    raw = r'{"question": "C:\path \"quoted\" \u0041"}'
    assert json.loads(clean_json_response(raw)) == {"question": 'C:\\path "quoted" A'}


def test_clean_straightens_smart_quotes():
    raw = '{“question”: “Apa itu div”}'
    assert json.loads(clean_json_response(raw)) == {"question": "Apa itu div"}


def test_validate_truncates_to_ten():
    questions = validate_questions({"questions": make_questions(12)})
    assert len(questions) == 10


def test_validate_accepts_between_five_and_nine():
    assert len(validate_questions({"questions": make_questions(7)})) == 7


def test_validate_too_few_is_retryable_until_final_attempt():
    with pytest.raises(TooFewQuestionsError):
        validate_questions({"questions": make_questions(3)})
    assert len(validate_questions({"questions": make_questions(3)}, final_attempt=True)) == 3


def test_validate_rejects_empty_even_on_final_attempt():
    with pytest.raises(QuestionGenerationError, match="empty"):
        validate_questions({"questions": []}, final_attempt=True)


@pytest.mark.parametrize("payload", [{}, {"questions": "none"}, []])
def test_validate_requires_questions_array(payload):
    with pytest.raises(QuestionGenerationError, match="missing questions array"):
        validate_questions(payload)


def test_validate_requires_four_options():
    questions = make_questions()
    questions[2]["options"] = ["a", "b", "c"]
    with pytest.raises(QuestionGenerationError, match="Question #3 is invalid"):
        validate_questions({"questions": questions})


@pytest.mark.parametrize("answer", [4, -1, "0", True, None, 1.5])
def test_validate_rejects_bad_correct_answer(answer):
    questions = make_questions()
    questions[0]["correct_answer"] = answer
    with pytest.raises(QuestionGenerationError, match="Question #1 has invalid correct_answer"):
        validate_questions({"questions": questions})


def test_generate_uses_groq_parameters():
    client = FakeGroq([completion_text()])
    questions = generate_questions("<p>x</p>", client, retry_delay=0)

    assert len(questions) == 10
    call = client.calls[0]
    assert call["model"] == MODEL
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 4000
    assert call["messages"][0]["role"] == "system"
    assert "<p>x</p>" in call["messages"][1]["content"]


def test_generate_retries_after_unparseable_response():
    client = FakeGroq(["maaf, saya tidak bisa", "```json\n" + completion_text() + "\n```"])
    assert len(generate_questions("<p>x</p>", client, retry_delay=0)) == 10
    assert len(client.calls) == 2


def test_generate_gives_up_after_max_parse_failures():
    client = FakeGroq(["bukan json"] * 3)
    with pytest.raises(QuestionGenerationError, match="Failed to parse JSON after 3 attempts"):
        generate_questions("<p>x</p>", client, max_retries=3, retry_delay=0)
    assert len(client.calls) == 3


def test_generate_retries_when_too_few_questions():
    client = FakeGroq([completion_text(make_questions(2)), completion_text()])
    assert len(generate_questions("<p>x</p>", client, retry_delay=0)) == 10


def test_generate_retries_on_api_error_then_surfaces_it():
    client = FakeGroq([groq.GroqError("rate limited")] * 2)
    with pytest.raises(QuestionGenerationError, match="rate limited"):
        generate_questions("<p>x</p>", client, max_retries=2, retry_delay=0)


def test_generate_surfaces_last_validation_error():
    bad = make_questions()
    bad[4]["options"] = []
    client = FakeGroq([completion_text(bad)] * 3)
    with pytest.raises(QuestionGenerationError, match="Question #5 is invalid"):
        generate_questions("<p>x</p>", client, retry_delay=0)


def test_generate_without_client():
    with pytest.raises(QuestionGenerationError, match="GROQ_API_KEY"):
        generate_questions("<p>x</p>", None)
