"""
Candidate variants.

A candidate is whoever applies to a post: a teacher on the tutoring side or a
freelancer on the jobs side. Both share the same capabilities, so lifecycle code
only ever calls ``identify()`` and ``display_name()``.
"""
from enum import Enum
from typing import Annotated, ClassVar, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class CandidateRole(str, Enum):
    TEACHER = "teacher"
    FREELANCER = "freelancer"


class BaseCandidate(BaseModel):
    """Fields common to every candidate variant."""

    fallback_name: ClassVar[str] = "Unknown Candidate"

    id: str = Field(..., description="Candidate document id, stored on applications and post applicants")
    name: str | None = Field(None, description="Display name")
    custom_id: str | None = Field(None, description="Human-facing id such as T001 or F042")
    email: str | None = None

    def identify(self) -> str:
        return self.id

    def display_name(self) -> str:
        return self.name or self.fallback_name

    def public_id(self) -> str:
        return self.custom_id or self.id


class TeacherCandidate(BaseCandidate):
    fallback_name: ClassVar[str] = "Unknown Teacher"

    role: Literal["teacher"] = "teacher"


class FreelancerCandidate(BaseCandidate):
    fallback_name: ClassVar[str] = "Unknown Freelancer"

    role: Literal["freelancer"] = "freelancer"


Candidate = Annotated[Union[TeacherCandidate, FreelancerCandidate], Field(discriminator="role")]

_candidate_adapter: TypeAdapter = TypeAdapter(Candidate)


def build_candidate(role: str, candidate_id: str, **fields) -> TeacherCandidate | FreelancerCandidate:
    """
    Build the right candidate variant for a role.

    Raises:
        pydantic.ValidationError: If the role is not a candidate role.
    """
    return _candidate_adapter.validate_python({"role": role, "id": str(candidate_id), **fields})
