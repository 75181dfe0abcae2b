"""Student Records Service - in-memory student CRUD API with profile summaries."""

__version__ = "1.0.0"
