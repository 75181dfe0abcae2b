"""
Student model - the single record type held by the store.

Field types are checked here (strict, so "30" is not an age); the value
rules (8-digit id, non-empty name/email, positive age) are enforced by the
store before a record is admitted.
"""

from pydantic import BaseModel, Field, StrictInt, StrictStr

MIN_STUDENT_ID = 10_000_000
MAX_STUDENT_ID = 99_999_999


class Student(BaseModel):
    """A student profile, keyed by its 8-digit id."""

    id: StrictInt = Field(..., description="8-digit student identifier")
    name: StrictStr = Field(..., description="Student's full name")
    age: StrictInt = Field(..., description="Age in years, must be positive")
    email: StrictStr = Field(..., description="Contact email")

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', email='{self.email}')>"


class SummaryResponse(BaseModel):
    summary: str
