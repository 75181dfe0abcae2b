"""
Student API routes - CRUD on student records plus profile summaries.

Handlers are plain (sync) functions so FastAPI runs each request on its
worker thread pool; the store and the summary generator are shared across
those threads. Domain errors propagate to the application's exception
handler, which maps them to HTTP statuses.
"""

import re
from typing import List
from fastapi import APIRouter, Depends, Request, Response, status

from student_service.errors import InvalidInputError, SummaryUnavailableError
from student_service.models.student import Student, SummaryResponse
from student_service.services.student_store import INVALID_ID_MESSAGE, StudentStore
from student_service.services.summary import SummaryGenerator

router = APIRouter()

# Optional sign plus ASCII digits only; int() alone also takes "1_000",
# surrounding whitespace and non-ASCII digits
STUDENT_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


def get_store(request: Request) -> StudentStore:
    """FastAPI dependency returning the application's student store."""
    return request.app.state.store


def get_summary_generator(request: Request) -> SummaryGenerator:
    """FastAPI dependency returning the generator chosen at startup."""
    generator = getattr(request.app.state, "summary_generator", None)
    if generator is None:
        raise SummaryUnavailableError()
    return generator


def parse_student_id(raw: str) -> int:
    """Convert a path segment to a student id; non-integers are invalid input."""
    if not STUDENT_ID_PATTERN.fullmatch(raw):
        raise InvalidInputError(INVALID_ID_MESSAGE)
    return int(raw)


@router.post("/students", status_code=status.HTTP_201_CREATED, response_model=Student)
def create_student(student: Student, store: StudentStore = Depends(get_store)):
    """Create a student. 409 if the id is taken."""
    return store.create(student)


@router.get("/students", response_model=List[Student])
def list_students(store: StudentStore = Depends(get_store)):
    """All stored students, in no particular order."""
    return store.get_all()


@router.get("/students/{student_id}", response_model=Student)
def get_student(student_id: str, store: StudentStore = Depends(get_store)):
    return store.get(parse_student_id(student_id))


@router.put("/students/{student_id}", response_model=Student)
def update_student(student_id: str, student: Student, store: StudentStore = Depends(get_store)):
    """Replace a student. The body id must match the path id."""
    return store.update(parse_student_id(student_id), student)


@router.delete("/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_student(student_id: str, store: StudentStore = Depends(get_store)):
    store.delete(parse_student_id(student_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/students/{student_id}/summary", response_model=SummaryResponse)
def get_student_summary(
    student_id: str,
    store: StudentStore = Depends(get_store),
    generator: SummaryGenerator = Depends(get_summary_generator),
):
    """
    Natural-language summary of a student profile.

    Uses the remote generator or the local template, whichever was
    selected at startup. A failing remote call is a 500, never a
    template fallback.
    """
    student = store.get(parse_student_id(student_id))
    return SummaryResponse(summary=generator.generate(student))
