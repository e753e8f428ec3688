"""Symptom questionnaire and the fixed specialty/urgency lookup."""

import math
from typing import Literal

from pydantic import BaseModel, Field


class SymptomQuestion(BaseModel):
    """One question of the symptom questionnaire."""

    id: str
    question: str
    type: Literal["single", "multiple", "scale"]
    options: list[str] | None = None


class SymptomResponse(BaseModel):
    """A patient's answer to one question."""

    question_id: str
    answer: str | list[str] | int | None = None


class SymptomAnalysis(BaseModel):
    """Recommended specialty and how urgently to see it."""

    specialty: str
    urgency: Literal["low", "medium", "high"]
    recommendation: str = Field(description="Patient-facing advice")


PRIMARY_CONCERN = "q1"
DURATION = "q2"
PAIN_SCALE = "q3"
ADDITIONAL_SYMPTOMS = "q4"

QUESTIONS = [
    SymptomQuestion(
        id=PRIMARY_CONCERN,
        question="What is your primary concern today?",
        type="single",
        options=["Fever", "Headache", "Chest Pain", "Skin Issues", "Digestive Problems", "Mental Health"],
    ),
    SymptomQuestion(
        id=DURATION,
        question="How long have you been experiencing this?",
        type="single",
        options=["Less than 24 hours", "1-3 days", "1 week", "More than a week"],
    ),
    SymptomQuestion(
        id=PAIN_SCALE,
        question="Rate your pain/discomfort level (1-10)",
        type="scale",
    ),
    SymptomQuestion(
        id=ADDITIONAL_SYMPTOMS,
        question="Do you have any of these additional symptoms?",
        type="multiple",
        options=["Nausea", "Dizziness", "Fatigue", "Shortness of breath", "None of the above"],
    ),
]

# Checked in order; first concern found in the answer wins
SPECIALTY_RULES = [
    ("Chest Pain", "Cardiology", "high"),
    ("Skin Issues", "Dermatology", "low"),
    ("Mental Health", "Psychiatry", "medium"),
]

DEFAULT_SPECIALTY = "General Medicine"
DEFAULT_URGENCY = "low"
HIGH_PAIN_THRESHOLD = 8


def get_questions() -> list[SymptomQuestion]:
    """Return the questionnaire in display order."""
    return list(QUESTIONS)


def _collect_answers(responses) -> dict:
    """Index answers by question id, skipping anything unreadable."""
    answers = {}
    for response in responses or []:
        if isinstance(response, SymptomResponse):
            answers[response.question_id] = response.answer
        elif isinstance(response, dict):
            question_id = response.get("question_id") or response.get("questionId")
            if isinstance(question_id, str) and question_id:
                answers[question_id] = response.get("answer")
    return answers


def _pain_level(value) -> int | None:
    """Read the pain scale answer as an int, or None if it isn't one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def analyze(responses) -> SymptomAnalysis:
    """
    Map questionnaire answers to a specialty and urgency.

    Only the primary concern and the pain scale are read. Any input, including
    an empty list, produces a result.
    """
    answers = _collect_answers(responses)
    concern = answers.get(PRIMARY_CONCERN)
    pain = _pain_level(answers.get(PAIN_SCALE))

    specialty = DEFAULT_SPECIALTY
    urgency = DEFAULT_URGENCY

    if isinstance(concern, str):
        for keyword, rule_specialty, rule_urgency in SPECIALTY_RULES:
            if keyword in concern:
                specialty = rule_specialty
                urgency = rule_urgency
                break

    if pain is not None and pain >= HIGH_PAIN_THRESHOLD:
        urgency = "high"

    recommendation = f"Based on your symptoms, we recommend consulting with a {specialty} specialist."
    if urgency == "high":
        recommendation += " Please seek immediate medical attention."

    return SymptomAnalysis(specialty=specialty, urgency=urgency, recommendation=recommendation)
