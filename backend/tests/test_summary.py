"""
Unit tests for summary generation.
The Ollama server is simulated with httpx.MockTransport.
"""
import json
import time

import httpx
import pytest

from student_service.errors import EmptySummaryError, GenerationFailedError
from student_service.services.summary import (
    OllamaSummary, SummaryGenerator, TemplateSummary, build_summary_generator, probe_ollama
)

ADA_TEMPLATE = "Student Ada is 30 years old and can be contacted at ada@x.com."


def refuse_connection(request):
    raise httpx.ConnectError("Connection refused", request=request)


def trickle(chunks, delay):
    """Response body that yields one chunk every ``delay`` seconds."""
    for chunk in chunks:
        time.sleep(delay)
        yield chunk


class TestTemplateSummary:
    """Test the local fallback strategy"""

    def test_template_text(self, ada):
        assert TemplateSummary().summarize(ada) == ADA_TEMPLATE

    def test_generator_uses_template(self, ada, template_generator):
        assert template_generator.mode == "template"
        assert template_generator.generate(ada) == ADA_TEMPLATE


class TestOllamaSummary:
    """Test the remote strategy against a mocked Ollama server"""

    def test_success_request_shape(self, ada, ollama_generator, ollama_host):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"model": "llama2", "response": "Ada, 30, reachable at ada@x.com!", "done": True})

        generator = ollama_generator(handler)
        assert generator.mode == "ollama"
        assert generator.generate(ada) == "Ada, 30, reachable at ada@x.com!"

        assert seen["method"] == "POST"
        assert seen["url"] == f"{ollama_host}/api/generate"
        assert seen["body"]["model"] == "llama2"
        assert seen["body"]["stream"] is False
        prompt = seen["body"]["prompt"]
        assert "Ada" in prompt and "30" in prompt and "ada@x.com" in prompt

    def test_custom_prompt_template(self, ada, mock_http_client, ollama_host):
        strategy = OllamaSummary(mock_http_client(refuse_connection), host=ollama_host,
                                 prompt_template="{name}|{age}|{email}")
        assert strategy.build_prompt(ada) == "Ada|30|ada@x.com"

    def test_non_200_status(self, ada, ollama_generator):
        generator = ollama_generator(lambda request: httpx.Response(503, text="model loading"))
        with pytest.raises(GenerationFailedError, match="non-200 status code: 503, body: model loading"):
            generator.generate(ada)

    def test_missing_response_field(self, ada, ollama_generator):
        generator = ollama_generator(lambda request: httpx.Response(200, json={"text": "Ada"}))
        with pytest.raises(GenerationFailedError, match="unexpected response format"):
            generator.generate(ada)

    def test_non_string_response_field(self, ada, ollama_generator):
        generator = ollama_generator(lambda request: httpx.Response(200, json={"response": 42}))
        with pytest.raises(GenerationFailedError, match="unexpected response format"):
            generator.generate(ada)

    def test_non_object_body(self, ada, ollama_generator):
        generator = ollama_generator(lambda request: httpx.Response(200, json=["Ada"]))
        with pytest.raises(GenerationFailedError):
            generator.generate(ada)

    def test_empty_response_field(self, ada, ollama_generator):
        generator = ollama_generator(lambda request: httpx.Response(200, json={"response": ""}))
        with pytest.raises(GenerationFailedError, match="empty summary"):
            generator.generate(ada)

    def test_unparseable_body(self, ada, ollama_generator):
        generator = ollama_generator(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(GenerationFailedError, match="error decoding"):
            generator.generate(ada)

    def test_transport_error(self, ada, ollama_generator):
        generator = ollama_generator(refuse_connection)
        with pytest.raises(GenerationFailedError, match="error making POST request") as excinfo:
            generator.generate(ada)
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)

    def test_timeout(self, ada, ollama_generator):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GenerationFailedError):
            ollama_generator(handler).generate(ada)

    def test_timeout_passed_to_request(self, ada, ollama_generator):
        seen = {}

        def handler(request):
            seen["timeout"] = request.extensions["timeout"]
            return httpx.Response(200, json={"response": "ok"})

        ollama_generator(handler).generate(ada)
        assert seen["timeout"]["read"] == 60.0

    def test_slow_body_hits_total_deadline(self, ada, ollama_generator):
        # 20 chunks at 0.2s each: every read is quick, the whole body is not
        body = [b'{"response": "'] + [b"a"] * 18 + [b'"}']

        def handler(request):
            return httpx.Response(200, content=trickle(body, 0.2))

        generator = ollama_generator(handler, timeout=0.5)
        start = time.monotonic()
        with pytest.raises(GenerationFailedError, match="deadline exceeded") as excinfo:
            generator.generate(ada)
        assert time.monotonic() - start < 2.0
        assert isinstance(excinfo.value.__cause__, httpx.TimeoutException)

    def test_body_within_deadline(self, ada, ollama_generator):
        body = [b'{"response": ', b'"Quick"}']

        def handler(request):
            return httpx.Response(200, content=trickle(body, 0.01))

        assert ollama_generator(handler, timeout=5.0).generate(ada) == "Quick"


class TestSummaryGenerator:
    """Test the strategy wrapper"""

    def test_empty_summary_rejected(self, ada):
        class Blank:
            name = "blank"

            def summarize(self, student):
                return ""

        with pytest.raises(EmptySummaryError, match="Generated summary is empty"):
            SummaryGenerator(Blank()).generate(ada)


class TestProbe:
    """Test the one-shot startup probe"""

    def test_probe_success(self, mock_http_client, ollama_host):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["timeout"] = request.extensions["timeout"]
            return httpx.Response(200, json={"models": []})

        assert probe_ollama(mock_http_client(handler), ollama_host) is True
        assert seen["url"] == f"{ollama_host}/api/tags"
        assert seen["timeout"]["connect"] == 5.0

    def test_probe_non_200(self, mock_http_client, ollama_host):
        assert probe_ollama(mock_http_client(lambda request: httpx.Response(500)), ollama_host) is False

    def test_probe_unreachable(self, mock_http_client, ollama_host):
        assert probe_ollama(mock_http_client(refuse_connection), ollama_host) is False

    def test_probe_slow_body_is_unavailable(self, mock_http_client, ollama_host):
        def handler(request):
            return httpx.Response(200, content=trickle([b"{"] * 20, 0.2))

        start = time.monotonic()
        assert probe_ollama(mock_http_client(handler), ollama_host, timeout=0.5) is False
        assert time.monotonic() - start < 2.0

    def test_probe_slow_headers_is_unavailable(self, mock_http_client, ollama_host):
        def handler(request):
            time.sleep(0.3)
            return httpx.Response(200, json={"models": []})

        assert probe_ollama(mock_http_client(handler), ollama_host, timeout=0.1) is False

    def test_build_uses_ollama_when_available(self, ada, mock_http_client, ollama_host):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            return httpx.Response(200, json={"response": "Remote summary"})

        generator = build_summary_generator(mock_http_client(handler), host=ollama_host)
        assert generator.mode == "ollama"
        assert generator.generate(ada) == "Remote summary"
        assert generator.generate(ada) == "Remote summary"
        # Probed exactly once
        assert calls == ["/api/tags", "/api/generate", "/api/generate"]

    def test_build_falls_back_when_unreachable(self, ada, mock_http_client, ollama_host):
        generator = build_summary_generator(mock_http_client(refuse_connection), host=ollama_host)
        assert generator.mode == "template"
        for _ in range(3):
            assert generator.generate(ada) == ADA_TEMPLATE

    def test_remote_failure_after_startup_does_not_fall_back(self, ada, mock_http_client, ollama_host):
        state = {"up": True}

        def handler(request):
            if request.url.path == "/api/tags":
                return httpx.Response(200)
            if state["up"]:
                return httpx.Response(200, json={"response": "Remote summary"})
            return httpx.Response(500, text="down")

        generator = build_summary_generator(mock_http_client(handler), host=ollama_host)
        assert generator.generate(ada) == "Remote summary"
        state["up"] = False
        with pytest.raises(GenerationFailedError):
            generator.generate(ada)
        assert generator.mode == "ollama"
