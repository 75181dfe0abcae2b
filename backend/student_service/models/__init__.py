from student_service.models.student import Student, SummaryResponse, MIN_STUDENT_ID, MAX_STUDENT_ID

__all__ = ["Student", "SummaryResponse", "MIN_STUDENT_ID", "MAX_STUDENT_ID"]
