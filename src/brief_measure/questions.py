"""Question bank; the order of QUESTIONS is the canonical encoding order."""

from __future__ import annotations

from dataclasses import dataclass

SEVERITY_SCALE = ("Not Present", "Noticed", "Impactful", "Debilitating")


@dataclass(frozen=True)
class Question:
    id: int
    text: str
    scale_labels: tuple[str, ...] = SEVERITY_SCALE


QUESTIONS: tuple[Question, ...] = (
    Question(1, "Voices/sounds others don't hear"),
    Question(2, "Beliefs others find strange"),
    Question(3, "Feeling unreal/disconnected"),
    Question(4, "Feeling sad/depressed"),
    Question(5, "Energy level", ("Elevated", "Normal", "Tired", "Exhausted")),
    Question(6, "Difficulty concentrating"),
    Question(7, "Problems with daily tasks"),
    Question(8, "Social withdrawal"),
    Question(9, "Thoughts of self-harm"),
    Question(10, "Sleep quality", ("Good", "Fair", "Degraded", "Terrible")),
)

QUESTION_IDS: tuple[int, ...] = tuple(q.id for q in QUESTIONS)
