"""
Summary Service - natural-language summaries of student profiles.

Two strategies sit behind SummaryGenerator.generate():
1. OllamaSummary   - asks a remote Ollama server to write the summary
2. TemplateSummary - fills a fixed sentence with name, age and email

Which one is used is decided once, at startup, by probing the Ollama
server (GET /api/tags, 5s deadline). The decision is never revisited:
a server that comes back later is not used, and a server that goes away
keeps being called, with each failing call reported as a
GenerationFailedError rather than a silent switch to the template.
"""

import json
import time
from typing import Optional

import httpx

from student_service import config
from student_service.errors import EmptySummaryError, GenerationFailedError
from student_service.logging_config import get_logger, log_with_context
from student_service.models.student import Student

logger = get_logger("summary")

TEMPLATE = "Student {name} is {age} years old and can be contacted at {email}."

PROMPT_TEMPLATE = (
    "Summarize this student profile using only the provided details. "
    "Be brief, accurate, and creative:\n\n"
    "Profile:\n"
    "- Name: {name}\n"
    "- Age: {age}\n"
    "- Email: {email}\n\n"
    "Note: Make the summary catchy and to the point without adding any extra information."
)


def read_until(response: httpx.Response, deadline: float) -> bytes:
    """
    Read a streamed response body, giving up once ``deadline`` (a
    time.monotonic() value) has passed.

    httpx timeouts apply per network operation, so a server that trickles
    bytes never trips them; this caps the whole call.
    """
    chunks = []
    if time.monotonic() > deadline:
        raise httpx.ReadTimeout("deadline exceeded waiting for response", request=response.request)
    for chunk in response.iter_bytes():
        chunks.append(chunk)
        if time.monotonic() > deadline:
            raise httpx.ReadTimeout("deadline exceeded reading response body", request=response.request)
    return b"".join(chunks)


class TemplateSummary:
    """Deterministic local summary. Cannot fail."""

    name = "template"

    def summarize(self, student: Student) -> str:
        return TEMPLATE.format(name=student.name, age=student.age, email=student.email)


class OllamaSummary:
    """
    Summary written by a remote Ollama server via POST /api/generate.

    Any transport error, non-200 status, undecodable body, or a missing,
    non-string or empty "response" field raises GenerationFailedError.
    """

    name = "ollama"

    def __init__(self, client: httpx.Client, host: str = config.OLLAMA_HOST,
                 model: str = config.OLLAMA_MODEL,
                 prompt_template: str = PROMPT_TEMPLATE,
                 timeout: float = config.GENERATE_TIMEOUT):
        self.client = client
        self.url = f"{host.rstrip('/')}/api/generate"
        self.model = model
        self.prompt_template = prompt_template
        self.timeout = timeout

    def build_prompt(self, student: Student) -> str:
        return self.prompt_template.format(name=student.name, age=student.age, email=student.email)

    def summarize(self, student: Student) -> str:
        payload = {
            "model": self.model,
            "prompt": self.build_prompt(student),
            "stream": False,
        }

        log_with_context(logger, "INFO", f"Sending request to Ollama API: {self.url}",
                         context={"student_id": student.id},
                         extra_data={"model": self.model})
        deadline = time.monotonic() + self.timeout
        try:
            with self.client.stream("POST", self.url, json=payload, timeout=self.timeout) as response:
                body = read_until(response, deadline)
        except httpx.HTTPError as e:
            raise GenerationFailedError(f"error making POST request to Ollama: {e}") from e

        log_with_context(logger, "INFO",
                         f"Received response from Ollama API. Status: {response.status_code}",
                         context={"student_id": student.id},
                         extra_data={"status_code": response.status_code})

        if response.status_code != httpx.codes.OK:
            raise GenerationFailedError(
                f"Ollama API returned non-200 status code: {response.status_code}, "
                f"body: {body.decode('utf-8', errors='replace')}"
            )

        try:
            result = json.loads(body)
        except ValueError as e:
            raise GenerationFailedError(f"error decoding Ollama response: {e}") from e

        summary = result.get("response") if isinstance(result, dict) else None
        if not isinstance(summary, str):
            raise GenerationFailedError(f"unexpected response format from Ollama: {result!r}")
        if not summary:
            raise GenerationFailedError("Ollama returned an empty summary")

        log_with_context(logger, "DEBUG", "Generated summary",
                         context={"student_id": student.id},
                         extra_data={"summary": summary})
        return summary


class SummaryGenerator:
    """Produces a summary with whichever strategy was chosen at startup."""

    def __init__(self, strategy):
        self.strategy = strategy

    @property
    def mode(self) -> str:
        return self.strategy.name

    def generate(self, student: Student) -> str:
        log_with_context(logger, "INFO", f"Generating summary for student ID: {student.id}",
                         context={"student_id": student.id},
                         extra_data={"mode": self.mode})
        try:
            summary = self.strategy.summarize(student)
        except GenerationFailedError as e:
            log_with_context(logger, "ERROR", f"Error generating summary: {e.cause}",
                             context={"student_id": student.id})
            raise

        if not summary:
            log_with_context(logger, "ERROR", f"Generated summary is empty for student ID: {student.id}",
                             context={"student_id": student.id})
            raise EmptySummaryError()

        log_with_context(logger, "INFO", f"Summary generated successfully for student ID: {student.id}",
                         context={"student_id": student.id})
        return summary


def probe_ollama(client: httpx.Client, host: str = config.OLLAMA_HOST,
                 timeout: float = config.PROBE_TIMEOUT) -> bool:
    """
    One-shot availability check against GET {host}/api/tags.

    Returns True only for a 200 response received in full within the
    timeout. Failures are logged, never raised.
    """
    url = f"{host.rstrip('/')}/api/tags"
    deadline = time.monotonic() + timeout
    try:
        with client.stream("GET", url, timeout=timeout) as response:
            read_until(response, deadline)
    except httpx.HTTPError as e:
        log_with_context(logger, "WARNING", f"Error checking Ollama availability: {e}",
                         extra_data={"url": url})
        return False
    return response.status_code == httpx.codes.OK


def build_summary_generator(client: httpx.Client, host: Optional[str] = None,
                            model: Optional[str] = None) -> SummaryGenerator:
    """Probe the Ollama server once and return a generator fixed to the result."""
    host = host or config.OLLAMA_HOST
    model = model or config.OLLAMA_MODEL

    if probe_ollama(client, host):
        log_with_context(logger, "INFO",
                         "Ollama is available and will be used for generating summaries.",
                         extra_data={"ollama_host": host, "model": model})
        return SummaryGenerator(OllamaSummary(client, host=host, model=model))

    log_with_context(logger, "INFO",
                     "Ollama is not available. Fallback mechanism will be used for generating summaries.",
                     extra_data={"ollama_host": host})
    return SummaryGenerator(TemplateSummary())
