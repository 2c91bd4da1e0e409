from __future__ import annotations
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

QuestionStatus = Literal["ok", "none_needed", "failed"]


class FileChange(BaseModel):
    """One file touched by a commit, as reported by the source-control host."""
    model_config = ConfigDict(frozen=True)

    path: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    patch: Optional[str] = None  # Unified diff, absent for binary or huge files

    @property
    def changed_lines(self) -> int:
        return self.additions + self.deletions


class Commit(BaseModel):
    """
    Normalized commit with its file-level diff.
    This is NOT GitHub-specific.
    """
    model_config = ConfigDict(frozen=True)

    sha: str
    message: str
    author_name: str = ""
    authored_at: Optional[str] = None
    files: tuple[FileChange, ...] = ()

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def changed_lines(self) -> int:
        return sum(file_change.changed_lines for file_change in self.files)

    @classmethod
    def from_github(cls, payload: dict) -> "Commit":
        """Build a Commit from a GitHub `GET /repos/{owner}/{repo}/commits/{sha}` payload."""
        commit_data = payload.get("commit") or {}
        author = commit_data.get("author") or {}
        files = tuple(
            FileChange(
                path=gh_file.get("filename") or "",
                status=gh_file.get("status") or "modified",
                additions=int(gh_file.get("additions") or 0),
                deletions=int(gh_file.get("deletions") or 0),
                patch=gh_file.get("patch"),
            )
            for gh_file in payload.get("files") or []
        )
        return cls(
            sha=payload["sha"],
            message=commit_data.get("message") or "",
            author_name=author.get("name") or "",
            authored_at=author.get("date"),
            files=files,
        )


class Repository(BaseModel):
    """A repository the current user can access."""
    id: int
    name: str
    full_name: str
    owner: str
    private: bool = False
    description: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_github(cls, payload: dict) -> "Repository":
        return cls(
            id=payload["id"],
            name=payload["name"],
            full_name=payload.get("full_name") or payload["name"],
            owner=(payload.get("owner") or {}).get("login") or "",
            private=bool(payload.get("private")),
            description=payload.get("description"),
            updated_at=payload.get("updated_at"),
        )


# =============================================================================
# CLARIFYING QUESTIONS
# =============================================================================
# The LLM returns RawQuestion objects; only questions with at least one
# option survive as ClarifyingQuestion.
# =============================================================================


class QuestionOption(BaseModel):
    label: str = Field(min_length=1, max_length=1)
    text: str
    description: Optional[str] = None


class RawQuestion(BaseModel):
    """LLM output. Options may be missing and are validated later in code."""
    id: str
    question: str
    options: list[QuestionOption] = Field(default_factory=list)


class QuestionSet(BaseModel):
    """Structured output schema for question generation."""
    questions: list[RawQuestion] = Field(default_factory=list)


class ClarifyingQuestion(BaseModel):
    """Multiple-choice question shown to the user before generation."""
    id: str
    question: str
    options: list[QuestionOption] = Field(min_length=1)


class QuestionOutcome(BaseModel):
    """Question generation result that keeps "nothing to ask" apart from "failed"."""
    status: QuestionStatus
    questions: list[ClarifyingQuestion] = Field(default_factory=list)
    reason: Optional[str] = None


ClarifyingAnswers = dict[str, str]


class GenerationRequest(BaseModel):
    """Parameters for one generation invocation. Never persisted."""
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    since: Optional[str] = None
    until: Optional[str] = None
    since_last: bool = False
    limit: Optional[int] = Field(default=None, ge=1)
    additional_context: Optional[str] = None
    clarifying_answers: Optional[ClarifyingAnswers] = None


# =============================================================================
# COLLABORATOR RECORDS
# =============================================================================


class Session(BaseModel):
    user_id: str


class ChangelogEntry(BaseModel):
    """A published changelog entry owned by the entry store."""
    id: str
    repo_id: str
    date: str
    content: str
    published: bool = True
    created_at: datetime
