import os
import re
import json
import time
import logging

import groq
from groq import Groq

logger = logging.getLogger(__name__)

MODEL = "llama-3.3-70b-versatile"
QUESTION_COUNT = 10
MIN_QUESTIONS = 5
OPTION_COUNT = 4

SYSTEM_PROMPT = (
    "You are a quiz generator. Output ONLY valid JSON. Never use quotes or apostrophes "
    "inside question or option text. Never use escape characters. Output pure JSON only, "
    "no markdown, no explanations."
)

PROMPT_TEMPLATE = """
Anda adalah asisten dosen untuk mata kuliah Web Programming. Berdasarkan kode HTML dengan internal CSS berikut yang dibuat oleh praktikan, buatlah 10 soal pilihan ganda untuk menguji PEMAHAMAN KONSEP mereka.

Kode HTML dengan Internal CSS praktikan:
```html
{code}
```

ATURAN PEMBUATAN SOAL:

1. FOKUS PADA PEMAHAMAN KONSEP, BUKAN HAFALAN KODE
   Contoh BAIK: "Apa fungsi dari property font-weight dalam CSS?"
   Contoh BURUK: "Berapa ukuran font pada h1 dalam kode?"

2. MATERI YANG DIUJIKAN:
   - Font style (font-family, font-size, font-weight, font-style)
   - Text style (text-align, text-decoration, text-transform, line-height)
   - Background (background-color, background-image)
   - Display (block dan inline)
   - Div dan Span
   - CSS Selectors (element, class, id)

3. KRITERIA SOAL:
   - Soal dapat dijawab tanpa melihat kode
   - 4 pilihan jawaban yang masuk akal
   - Tingkat kesulitan sedang
   - Variasi topik

PENTING - ATURAN JSON:
1. Output HANYA JSON, tanpa teks apapun sebelum atau sesudahnya
2. JANGAN gunakan tanda kutip ganda (") di dalam teks soal atau jawaban
3. JANGAN gunakan karakter escape (\\n, \\t, dll)
4. Gunakan kata-kata sederhana tanpa karakter khusus
5. JANGAN gunakan apostrof (') di dalam teks, ganti dengan kata lain

Contoh format yang BENAR:
{{
  "questions": [
    {{
      "question": "Apa fungsi dari property font-weight dalam CSS?",
      "options": [
        "Mengatur ketebalan teks",
        "Mengatur ukuran font",
        "Mengatur jenis font",
        "Mengatur warna font"
      ],
      "correct_answer": 0
    }}
  ]
}}

WAJIB:
- Buat TEPAT 10 soal
- correct_answer adalah index 0-3
- Output HANYA JSON valid, tidak ada teks lain
- JANGAN gunakan karakter kutip atau apostrof di dalam string
"""

_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")
# A backslash that does not start a valid JSON escape sequence
_STRAY_BACKSLASH = re.compile(r'\\(?!["\\/bfnrt]|u[0-9a-fA-F]{4})')


class QuestionGenerationError(Exception):
    """The model did not produce a usable question set."""


class TooFewQuestionsError(QuestionGenerationError):
    pass


def get_groq_client(api_key=None):
    api_key = api_key or os.environ.get("GROQ_API_KEY")
    if not api_key: return None
    return Groq(api_key=api_key)


def build_prompt(code):
    return PROMPT_TEMPLATE.format(code=code)


def clean_json_response(text):
    """
    Cleanup applied to raw model output before json.loads:
    1. Strip markdown fences and backticks.
    2. Keep only the outermost {...} span.
    3. Flatten whitespace control chars, drop the rest.
    4. Escape stray backslashes and straighten smart quotes.
    """
    cleaned = re.sub(r"```json\s*", "", text or "")
    cleaned = re.sub(r"```\s*", "", cleaned)
    cleaned = cleaned.replace("`", "").strip()

    first_brace = cleaned.find("{")
    if first_brace > 0:
        cleaned = cleaned[first_brace:]

    last_brace = cleaned.rfind("}")
    if 0 < last_brace < len(cleaned) - 1:
        cleaned = cleaned[:last_brace + 1]

    cleaned = cleaned.replace("\r\n", " ").replace("\n", " ").replace("\r", " ").replace("\t", " ")
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    cleaned = _STRAY_BACKSLASH.sub(r"\\\\", cleaned)

    return (cleaned
            .replace("“", '"').replace("”", '"')
            .replace("‘", "'").replace("’", "'"))


def validate_questions(payload, final_attempt=False):
    """Check the parsed payload and return a normalized list of at most ten questions."""
    questions = payload.get("questions") if isinstance(payload, dict) else None
    if not isinstance(questions, list):
        raise QuestionGenerationError("Invalid response structure: missing questions array")

    if len(questions) != QUESTION_COUNT:
        logger.warning("Got %d questions instead of %d", len(questions), QUESTION_COUNT)

        if not questions:
            raise QuestionGenerationError("Invalid response structure: questions array is empty")

        if len(questions) < MIN_QUESTIONS and not final_attempt:
            raise TooFewQuestionsError(f"Too few questions: {len(questions)}")

        questions = questions[:QUESTION_COUNT]

    normalized = []
    for i, q in enumerate(questions, start=1):
        if (not isinstance(q, dict) or not q.get("question") or not isinstance(q.get("question"), str)
                or not isinstance(q.get("options"), list) or len(q["options"]) != OPTION_COUNT):
            raise QuestionGenerationError(f"Question #{i} is invalid: missing required fields")

        answer = q.get("correct_answer")
        # bool is an int subclass, reject it explicitly
        if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer < OPTION_COUNT:
            raise QuestionGenerationError(f"Question #{i} has invalid correct_answer")

        normalized.append({
            "question": q["question"].strip(),
            "options": [str(option) for option in q["options"]],
            "correct_answer": answer,
        })
    return normalized


def request_completion(client, code, model=MODEL):
    completion = client.chat.completions.create(
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(code)},
        ],
        model=model,
        temperature=0.3,
        max_tokens=4000,
    )
    if not completion.choices:
        return ""
    return completion.choices[0].message.content or ""


def generate_questions(code, client, max_retries=3, retry_delay=1.0, model=MODEL):
    """
    Generation pipeline:
    1. Ask the model for ten questions about the submitted code.
    2. Clean and parse the JSON it returns.
    3. Validate the shape; retry on parse, shape or API failures.
    Raises QuestionGenerationError once every attempt has failed.
    """
    if client is None:
        raise QuestionGenerationError("GROQ_API_KEY is not configured")

    for attempt in range(1, max_retries + 1):
        logger.info("Attempt %d/%d to generate questions...", attempt, max_retries)
        final_attempt = attempt == max_retries

        try:
            response_text = request_completion(client, code, model=model)
            logger.debug("Raw response (first 500 chars): %s", response_text[:500])

            cleaned = clean_json_response(response_text)
            logger.debug("Cleaned response (first 500 chars): %s", cleaned[:500])

            try:
                payload = json.loads(cleaned)
            except json.JSONDecodeError as e:
                logger.error("Parsing failed on attempt %d: %s", attempt, e)
                if final_attempt:
                    raise QuestionGenerationError(
                        f"Failed to parse JSON after {max_retries} attempts: {e}") from e
                time.sleep(retry_delay)
                continue

            questions = validate_questions(payload, final_attempt=final_attempt)
            logger.info("Successfully generated %d questions", len(questions))
            return questions

        except QuestionGenerationError as e:
            logger.error("Error on attempt %d: %s", attempt, e)
            if final_attempt:
                raise
        except groq.GroqError as e:
            logger.error("Groq API error on attempt %d: %s", attempt, e)
            if final_attempt:
                raise QuestionGenerationError(str(e)) from e

        time.sleep(retry_delay)

    raise QuestionGenerationError("Failed to generate questions after all retries")
