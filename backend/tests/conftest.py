"""
Pytest configuration and fixtures
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from student_service.main import create_app
from student_service.models.student import Student
from student_service.services.student_store import InMemoryStudentStore
from student_service.services.summary import OllamaSummary, SummaryGenerator, TemplateSummary

OLLAMA_HOST = "http://ollama.test:11434"


def make_mock_client(handler) -> httpx.Client:
    """httpx client whose requests are answered by ``handler(request)``."""
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def ada():
    return Student(id=12345678, name="Ada", age=30, email="ada@x.com")


@pytest.fixture
def store():
    return InMemoryStudentStore()


@pytest.fixture
def template_generator():
    return SummaryGenerator(TemplateSummary())


@pytest.fixture
def client(store, template_generator):
    """Test client with an empty store and template summaries"""
    return TestClient(create_app(store=store, summary_generator=template_generator))


@pytest.fixture
def ollama_client_factory(store):
    """Build a test client whose summaries come from a mocked Ollama server."""
    def factory(handler):
        strategy = OllamaSummary(make_mock_client(handler), host=OLLAMA_HOST, model="llama2")
        return TestClient(create_app(store=store, summary_generator=SummaryGenerator(strategy)))
    return factory


@pytest.fixture
def ollama_host():
    return OLLAMA_HOST


@pytest.fixture
def mock_http_client():
    """Factory for httpx clients answered by a handler function."""
    return make_mock_client


@pytest.fixture
def ollama_generator(mock_http_client, ollama_host):
    """Factory for an Ollama-backed SummaryGenerator over a mocked server."""
    def factory(handler, timeout=60.0):
        strategy = OllamaSummary(mock_http_client(handler), host=ollama_host, model="llama2", timeout=timeout)
        return SummaryGenerator(strategy)
    return factory
