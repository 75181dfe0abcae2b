"""
Student Store Service - owns the in-memory collection of student records.

Implements the record lifecycle:
1. Create  - validate, reject duplicates, insert
2. Read    - single record or a snapshot of all records
3. Update  - validate, require matching body id, replace in place
4. Delete  - remove an existing record

Concurrency: a single reader/writer lock guards the whole collection.
Any number of reads may run together; a write excludes every other read
and write. All validation happens before the write lock is taken, so a
failed call never leaves a partially applied change behind.

The lock is global, not per-key: operations on unrelated ids still
serialize against each other.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, List

from student_service.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from student_service.logging_config import get_logger, log_with_context
from student_service.models.student import MAX_STUDENT_ID, MIN_STUDENT_ID, Student

logger = get_logger("store")

INVALID_ID_MESSAGE = "Invalid student ID: must be an 8-digit integer"
INVALID_DATA_MESSAGE = "Invalid student data"
ID_MISMATCH_MESSAGE = "Student ID in body does not match URL"
ALREADY_EXISTS_MESSAGE = "Student ID already exists"
NOT_FOUND_MESSAGE = "Student not found"


def is_valid_student_id(student_id: int) -> bool:
    """True if the id is an 8-digit integer (10000000..99999999)."""
    if isinstance(student_id, bool) or not isinstance(student_id, int):
        return False
    return MIN_STUDENT_ID <= student_id <= MAX_STUDENT_ID


def validate_student_id(student_id: int) -> None:
    if not is_valid_student_id(student_id):
        raise InvalidInputError(INVALID_ID_MESSAGE)


def validate_student(student: Student) -> None:
    """
    Check every field rule for a record about to be stored.

    Raises:
        InvalidInputError: id out of range, empty name/email, or age <= 0
    """
    validate_student_id(student.id)
    if not student.name or student.age <= 0 or not student.email:
        raise InvalidInputError(INVALID_DATA_MESSAGE)


class ReadWriteLock:
    """
    Many-readers / single-writer lock.

    Writers are given preference: once a writer is waiting, new readers
    block until it has finished.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class StudentStore(ABC):
    """Storage backend for student records. Routes depend only on this."""

    @abstractmethod
    def create(self, student: Student) -> Student:
        ...

    @abstractmethod
    def get_all(self) -> List[Student]:
        ...

    @abstractmethod
    def get(self, student_id: int) -> Student:
        ...

    @abstractmethod
    def update(self, student_id: int, student: Student) -> Student:
        ...

    @abstractmethod
    def delete(self, student_id: int) -> None:
        ...


class InMemoryStudentStore(StudentStore):
    """Dict-backed store guarded by one ReadWriteLock."""

    def __init__(self):
        self._students: Dict[int, Student] = {}
        self._lock = ReadWriteLock()

    def __len__(self):
        with self._lock.read_locked():
            return len(self._students)

    def create(self, student: Student) -> Student:
        validate_student(student)
        stored = student.model_copy()

        with self._lock.write_locked():
            if stored.id in self._students:
                raise AlreadyExistsError(ALREADY_EXISTS_MESSAGE)
            self._students[stored.id] = stored

        log_with_context(logger, "INFO", f"Student created: {stored.id}",
                         context={"student_id": stored.id})
        return stored.model_copy()

    def get_all(self) -> List[Student]:
        with self._lock.read_locked():
            return [student.model_copy() for student in self._students.values()]

    def get(self, student_id: int) -> Student:
        validate_student_id(student_id)

        with self._lock.read_locked():
            student = self._students.get(student_id)
            if student is None:
                raise NotFoundError(NOT_FOUND_MESSAGE)
            return student.model_copy()

    def update(self, student_id: int, student: Student) -> Student:
        validate_student_id(student_id)
        if student.id != student_id:
            raise InvalidInputError(ID_MISMATCH_MESSAGE)
        validate_student(student)
        stored = student.model_copy()

        with self._lock.write_locked():
            if student_id not in self._students:
                raise NotFoundError(NOT_FOUND_MESSAGE)
            self._students[student_id] = stored

        log_with_context(logger, "INFO", f"Student updated: {student_id}",
                         context={"student_id": student_id})
        return stored.model_copy()

    def delete(self, student_id: int) -> None:
        validate_student_id(student_id)

        with self._lock.write_locked():
            if student_id not in self._students:
                raise NotFoundError(NOT_FOUND_MESSAGE)
            del self._students[student_id]

        log_with_context(logger, "INFO", f"Student deleted: {student_id}",
                         context={"student_id": student_id})
