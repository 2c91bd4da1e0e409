from changescribe.agents.changelog import generate_changelog
from changescribe.agents.questions import generate_clarifying_questions, run_question_generation

__all__ = [
    "generate_changelog",
    "generate_clarifying_questions",
    "run_question_generation",
]
