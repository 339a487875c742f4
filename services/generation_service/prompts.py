"""
Built-in prompts for the explain and recommend endpoints.

Everything else the front-end generates arrives with its own prompt and
schema through /api/generate.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field

EXPLAIN_SYSTEM = (
    "You are a Spanish language tutor. Provide clear, helpful explanations "
    "for exercise mistakes using markdown formatting."
)

EXPLAIN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "explanation": {"type": "string", "description": "Detailed explanation in markdown format"},
    },
    "required": ["explanation"],
}

EXPLAIN_PROMPT = """Spanish exercise explanation needed:

Topic: {topic}
Exercise: {sentence}
Correct answer(s): {answer}
User's answer(s): {user_answer}

Please explain:
1. Why "{answer}" is correct
2. If the user's answer is wrong, why it doesn't work
3. Grammar rule or concept involved
4. Tips to remember this

Use markdown formatting for clarity (bold for **important terms**, code blocks for conjugations, ### for headers, etc.)."""

RECOMMEND_SYSTEM = (
    "You are a Spanish language learning advisor. Analyze user performance "
    "and recommend the next optimal practice topic."
)

RECOMMEND_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "recommendation": {"type": "string", "description": "Specific topic to practice next"},
        "reasoning": {"type": "string", "description": "Brief explanation of why this topic would help"},
    },
    "required": ["recommendation", "reasoning"],
}

RECOMMEND_PROMPT = """Analyze the user's Spanish practice results and suggest a next topic:

Current topic: {topic}
Score: {correct}/{total} ({percentage:.1f}%)
Wrong answers: {wrong}

Based on their performance, suggest ONE specific practice topic. Consider:
- If score > 80%: suggest a more advanced related topic
- If score 60-80%: suggest focused practice on their weak areas
- If score < 60%: suggest an easier or more fundamental topic"""


class Exercise(BaseModel):
    sentence: str = ""
    answer: Any = None


class ExplainRequest(BaseModel):
    topic: str = ""
    exercise: Exercise | None = None
    user_answer: Any = Field(default=None, alias="userAnswer")


class Score(BaseModel):
    correct: int | None = None
    total: int | None = None


class RecommendRequest(BaseModel):
    topic: str = ""
    score: Score = Field(default_factory=Score)
    percentage: float = 0.0
    wrong_exercises: list[Any] = Field(default_factory=list, alias="wrongExercises")


def build_explain_prompt(req: ExplainRequest) -> str:
    exercise = req.exercise or Exercise()
    return EXPLAIN_PROMPT.format(
        topic=req.topic,
        sentence=exercise.sentence,
        answer=exercise.answer,
        user_answer=req.user_answer,
    )


def build_recommend_prompt(req: RecommendRequest) -> str:
    return RECOMMEND_PROMPT.format(
        topic=req.topic,
        correct=req.score.correct,
        total=req.score.total,
        percentage=req.percentage,
        wrong=json.dumps(req.wrong_exercises, ensure_ascii=False),
    )
