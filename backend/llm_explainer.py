from openai import OpenAI

from config import AppConfig
from models import Course, UserPreferences
from prompt_builder import (
    ADVICE_SYSTEM_PROMPT,
    SYSTEM_PROMPT,
    build_course_explanation_prompt,
    build_schedule_advice_prompt,
)


ADVICE_MAX_TOKENS = 200


def get_openai_client(config: AppConfig) -> OpenAI:
    if not config.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY not set in environment")
    return OpenAI(api_key=config.openai_api_key)


def _complete(config: AppConfig, system: str, user_msg: str, max_tokens: int) -> str:
    client = get_openai_client(config)
    response = client.chat.completions.create(
        model=config.openai_model,
        max_tokens=max_tokens,
        temperature=config.explain_temperature,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user_msg},
        ],
    )
    text = (response.choices[0].message.content or "").strip()
    if not text:
        raise RuntimeError("Empty response from model")
    return text


def explain_course(
    config: AppConfig,
    course: Course,
    preferences: UserPreferences | None = None,
    scored: dict | None = None,
) -> str:
    """Free-text explanation of one course. Raises on missing key or API failure."""
    user_msg = build_course_explanation_prompt(course, preferences, scored)
    return _complete(config, SYSTEM_PROMPT, user_msg, config.explain_max_tokens)


def advise_schedule(config: AppConfig, courses: list[Course], semester: str) -> str:
    user_msg = build_schedule_advice_prompt(courses, semester)
    return _complete(config, ADVICE_SYSTEM_PROMPT, user_msg, ADVICE_MAX_TOKENS)
