from __future__ import annotations

import asyncio
from typing import Optional

import httpx
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI
from openai import OpenAIError

from changescribe.core.errors import MalformedUpstreamResponse
from changescribe.core.settings import PipelineSettings
from changescribe.core.types import ClarifyingQuestion, Commit, QuestionOutcome, QuestionSet
from changescribe.prompts.builder import build_summary
from changescribe.prompts.shared import AUDIENCE_RULES

# Braces are doubled so ChatPromptTemplate renders them literally
QUESTION_FORMAT = """{{"questions": [
  {{"id": "q1", "question": "...", "options": [
    {{"label": "A", "text": "...", "description": "optional short explanation"}},
    {{"label": "B", "text": "..."}}
  ]}}
]}}"""

SYSTEM_PROMPT = f"""You help a maintainer prepare a user-facing changelog. Before the changelog is written, you may ask a few multiple-choice questions to resolve what the commit data cannot tell you.

ASK ONLY WHEN IT MATTERS
- Ask about user impact, naming of features, or whether a change should be announced at all.
- Never ask about things the commit list already answers.
- Ask at most 4 questions. If nothing is unclear, return an empty list.

OPTIONS
- Each question has 2-4 options labelled with single capital letters (A, B, C, D).
- The last option is always "Exclude this information from the changelog".

{AUDIENCE_RULES}

OUTPUT
Respond with JSON only, in exactly this shape:
{QUESTION_FORMAT}"""

_prompt = ChatPromptTemplate.from_messages([
    ("system", SYSTEM_PROMPT),
    ("user", """Here is a summary of the commits going into the next changelog:

{summary}

{context}

Return the clarifying questions as JSON. If no questions are needed, return {{"questions": []}}.""")
])


def build_question_chain(settings: PipelineSettings) -> Runnable:
    """Prompt piped into a JSON-constrained model call."""
    llm = ChatOpenAI(
        model=settings.question_model,
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        temperature=0,
        timeout=settings.question_timeout_seconds,
        max_retries=0,
    )
    structured_llm = llm.with_structured_output(QuestionSet, method="json_mode")
    return _prompt | structured_llm


async def request_question_set(chain: Runnable, inputs: dict, timeout: float) -> QuestionSet:
    """Invoke the chain and coerce its output into a QuestionSet."""
    try:
        result = await asyncio.wait_for(chain.ainvoke(inputs), timeout=timeout)
        return result if isinstance(result, QuestionSet) else QuestionSet.model_validate(result)
    except ValueError as error:
        # OutputParserException, pydantic ValidationError and JSONDecodeError
        raise MalformedUpstreamResponse(f"Question output is malformed: {error}") from error


def _to_questions(question_set: QuestionSet, max_questions: int) -> list[ClarifyingQuestion]:
    questions: list[ClarifyingQuestion] = []
    for raw in question_set.questions:
        if not raw.options:
            print(f"[Changescribe] 🔇 Dropping question {raw.id!r} with no options")
            continue
        questions.append(ClarifyingQuestion(id=raw.id, question=raw.question, options=raw.options))

    return questions[:max_questions]


async def run_question_generation(
    commits: list[Commit],
    context: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
    chain: Optional[Runnable] = None,
) -> QuestionOutcome:
    """
    Ask the model for up to max_questions clarifying questions.

    Never raises for model-side problems: timeouts, upstream errors and
    malformed JSON become a "failed" outcome with a reason.
    """
    settings = settings or PipelineSettings()

    if not commits:
        return QuestionOutcome(status="none_needed", reason="no commits")

    if chain is None:
        if not settings.openrouter_api_key:
            print("[Changescribe] ⚠️ OPENROUTER_API_KEY is not set, skipping clarifying questions")
            return QuestionOutcome(status="failed", reason="OPENROUTER_API_KEY is not set")
        chain = build_question_chain(settings)

    summary = build_summary(commits, settings)
    context_block = (
        f"Additional context from the maintainer:\n{context.strip()}"
        if context and context.strip()
        else "No additional context was provided."
    )

    try:
        question_set = await request_question_set(
            chain,
            {"summary": summary, "context": context_block},
            timeout=settings.question_timeout_seconds,
        )
    except asyncio.TimeoutError:
        print(f"[Changescribe] ⏱️ Question generation timed out after {settings.question_timeout_seconds}s")
        return QuestionOutcome(status="failed", reason="timeout")
    except (OpenAIError, httpx.HTTPError) as error:
        print(f"[Changescribe] ⚠️ Question generation upstream error: {error}")
        return QuestionOutcome(status="failed", reason=f"upstream: {error}")
    except MalformedUpstreamResponse as error:
        print(f"[Changescribe] ⚠️ Question generation returned malformed output: {error.message}")
        return QuestionOutcome(status="failed", reason="malformed response")

    questions = _to_questions(question_set, settings.max_questions)

    if not questions:
        return QuestionOutcome(status="none_needed")

    print(f"[Changescribe] ❓ Generated {len(questions)} clarifying questions")
    return QuestionOutcome(status="ok", questions=questions)


async def generate_clarifying_questions(
    commits: list[Commit],
    context: Optional[str] = None,
    settings: Optional[PipelineSettings] = None,
    chain: Optional[Runnable] = None,
) -> list[ClarifyingQuestion]:
    """Public contract: a list of 0-4 questions, empty on any failure."""
    outcome = await run_question_generation(commits, context, settings, chain)
    return outcome.questions
