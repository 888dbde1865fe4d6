"""
Prompt construction and the OpenAI call wrapper. The OpenAI client is
replaced with a stub; no network access.
"""

from types import SimpleNamespace

import pytest

import llm_explainer
from config import AppConfig
from llm_explainer import advise_schedule, explain_course, get_openai_client
from models import Course, UserPreferences
from prompt_builder import build_course_explanation_prompt, build_schedule_advice_prompt


@pytest.fixture
def course():
    return Course(
        "ECE 57000", name="Artificial Intelligence", credits=3, avg_gpa=3.6,
        difficulty_rating=4.0, workload_hours=11, description="Search and learning.",
    )


class _StubOpenAI:
    """Records the create() call and answers with a fixed message."""

    last_call = None

    def __init__(self, api_key=None, reply="Great course."):
        self.api_key = api_key
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self._reply = reply

    def _create(self, **kwargs):
        _StubOpenAI.last_call = kwargs
        message = SimpleNamespace(content=self._reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestPrompts:
    def test_general_overview(self, course):
        prompt = build_course_explanation_prompt(course)
        assert prompt.startswith("Provide a brief overview of ECE 57000 (Artificial Intelligence)")
        assert "- Average GPA: 3.60" in prompt
        assert "- Difficulty: 4.0/5" in prompt
        assert "Include: what students learn" in prompt

    def test_personalized(self, course):
        prefs = UserPreferences(career_goals=("ml", "robotics"), target_gpa=3.5)
        prompt = build_course_explanation_prompt(course, prefs)
        assert "for a student interested in ml, robotics." in prompt
        assert "Student interests: not specified" in prompt
        assert "Target GPA: 3.5" in prompt

    def test_missing_numbers_render_na(self):
        prompt = build_course_explanation_prompt(Course("ECE 10000", name="Intro", credits=1))
        assert "- Average GPA: N/A" in prompt
        assert "- Workload: N/A hours/week" in prompt

    def test_factor_scores_included(self, course):
        scored = {"overall": 83, "factors": {"career_match": 100, "gpa_optimal": 79.0}}
        prompt = build_course_explanation_prompt(course, UserPreferences(), scored)
        assert "Planner match score: 83/100" in prompt
        assert "- career match: 100" in prompt
        assert "- gpa optimal: 79" in prompt

    def test_schedule_advice(self, course):
        other = Course("ECE 36800", name="Data Structures", credits=3, difficulty_rating=3.0)
        prompt = build_schedule_advice_prompt([course, other], "Fall 2025")
        assert "planning to take these courses in Fall 2025:" in prompt
        assert "- ECE 36800: Data Structures (3 credits, difficulty 3/5)" in prompt
        assert "Total credits: 6" in prompt
        assert "Average difficulty: 3.5/5" in prompt


class TestExplainer:
    def test_missing_key_raises(self):
        with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
            get_openai_client(AppConfig(openai_api_key=None))

    def test_explain_course(self, course, monkeypatch):
        monkeypatch.setattr(llm_explainer, "OpenAI", _StubOpenAI)
        config = AppConfig(openai_api_key="sk-test", openai_model="test-model", explain_max_tokens=123)
        text = explain_course(config, course)
        assert text == "Great course."
        call = _StubOpenAI.last_call
        assert call["model"] == "test-model"
        assert call["max_tokens"] == 123
        assert call["messages"][0]["role"] == "system"
        assert "ECE 57000" in call["messages"][1]["content"]

    def test_empty_reply_raises(self, course, monkeypatch):
        monkeypatch.setattr(llm_explainer, "OpenAI", lambda api_key: _StubOpenAI(api_key, reply="  "))
        with pytest.raises(RuntimeError, match="Empty response"):
            explain_course(AppConfig(openai_api_key="sk-test"), course)

    def test_advise_schedule(self, course, monkeypatch):
        monkeypatch.setattr(llm_explainer, "OpenAI", _StubOpenAI)
        text = advise_schedule(AppConfig(openai_api_key="sk-test"), [course], "Spring 2026")
        assert text == "Great course."
        assert _StubOpenAI.last_call["max_tokens"] == llm_explainer.ADVICE_MAX_TOKENS
        assert "Spring 2026" in _StubOpenAI.last_call["messages"][1]["content"]
