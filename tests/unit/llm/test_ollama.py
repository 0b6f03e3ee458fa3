"""
Tests for the Ollama completion service and the service factory.

requests is patched throughout; no test needs a running Ollama server.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from chunkforge.core.config import CompletionConfig, Config
from chunkforge.core.exceptions import CompletionError, CompletionUnavailableError
from chunkforge.llm import create_completion_service
from chunkforge.llm.base import CompletionOptions
from chunkforge.llm.ollama import OllamaCompletionService


def ollama_response(text="{}", status_code=200, prompt_tokens=12, completion_tokens=4):
    response = Mock(status_code=status_code)
    response.json.return_value = {
        "response": text,
        "prompt_eval_count": prompt_tokens,
        "eval_count": completion_tokens,
    }
    return response


@pytest.fixture
def mock_post():
    with patch("chunkforge.llm.ollama.requests.post") as post:
        yield post


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("chunkforge.core.retry.time.sleep") as sleep:
        yield sleep


class TestComplete:
    """Tests for OllamaCompletionService.complete()."""

    def test_returns_stripped_text(self, mock_post):
        mock_post.return_value = ollama_response('  {"primaryStrategy": "Smart"}\n')
        service = OllamaCompletionService(url="http://localhost:11434/", model="llama3")

        result = service.complete("Pick a strategy")

        assert result == '{"primaryStrategy": "Smart"}'
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        assert url == "http://localhost:11434/api/generate"
        assert payload["model"] == "llama3"
        assert payload["prompt"] == "Pick a strategy"
        assert payload["stream"] is False
        assert "format" not in payload

    def test_options_in_payload(self, mock_post):
        mock_post.return_value = ollama_response()
        options = CompletionOptions(
            max_tokens=200,
            temperature=0.0,
            timeout_seconds=3.0,
            json_mode=True,
            stop_sequences=["```"],
        )

        OllamaCompletionService().complete("prompt", options)

        payload = mock_post.call_args.kwargs["json"]
        assert payload["format"] == "json"
        assert payload["options"] == {"temperature": 0.0, "num_predict": 200, "stop": ["```"]}
        assert mock_post.call_args.kwargs["timeout"] == 3.0

    def test_default_timeout(self, mock_post):
        mock_post.return_value = ollama_response()

        OllamaCompletionService(timeout=7.5).complete("prompt")

        assert mock_post.call_args.kwargs["timeout"] == 7.5

    def test_usage_recorded(self, mock_post):
        mock_post.return_value = ollama_response(prompt_tokens=12, completion_tokens=4)
        service = OllamaCompletionService()

        service.complete("one")
        service.complete("two")

        assert service.get_usage() == {
            "prompt_tokens": 24,
            "completion_tokens": 8,
            "total_tokens": 32,
            "requests": 2,
        }
        service.reset_usage()
        assert service.get_usage()["requests"] == 0

    def test_error_status(self, mock_post):
        mock_post.return_value = ollama_response(status_code=404)

        with pytest.raises(CompletionError, match="status 404"):
            OllamaCompletionService().complete("prompt")

    def test_empty_response(self, mock_post):
        mock_post.return_value = ollama_response("   ")

        with pytest.raises(CompletionError, match="Empty response"):
            OllamaCompletionService().complete("prompt")


class TestFailures:
    """Connection failures are not retried; timeouts are."""

    def test_connection_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(CompletionUnavailableError):
            OllamaCompletionService(max_retries=3).complete("prompt")

        assert mock_post.call_count == 1

    def test_timeout_retried_then_succeeds(self, mock_post, no_sleep):
        mock_post.side_effect = [requests.Timeout("slow"), ollama_response("ok")]

        assert OllamaCompletionService(max_retries=2).complete("prompt") == "ok"
        assert no_sleep.call_count == 1

    def test_timeout_exhausted(self, mock_post):
        mock_post.side_effect = requests.Timeout("slow")

        with pytest.raises(CompletionError, match="timed out after 2 attempts"):
            OllamaCompletionService(max_retries=2).complete("prompt")

        assert mock_post.call_count == 2

    def test_other_request_error(self, mock_post):
        mock_post.side_effect = requests.TooManyRedirects("loop")

        with pytest.raises(CompletionError, match="request failed"):
            OllamaCompletionService().complete("prompt")

    def test_max_retries_validated(self):
        with pytest.raises(AssertionError):
            OllamaCompletionService(max_retries=0)


class TestAvailability:
    def test_available(self):
        with patch("chunkforge.llm.ollama.requests.get") as get:
            get.return_value = Mock(status_code=200)

            assert OllamaCompletionService(url="http://gpu:11434").is_available()
            assert get.call_args.args[0] == "http://gpu:11434/api/tags"

    def test_unreachable(self):
        with patch("chunkforge.llm.ollama.requests.get") as get:
            get.side_effect = requests.ConnectionError("refused")

            assert not OllamaCompletionService().is_available()


class TestFactory:
    def test_none_provider(self):
        assert create_completion_service(Config()) is None

    def test_ollama_provider(self):
        config = Config(
            llm=CompletionConfig(
                provider="ollama",
                url="http://gpu:11434",
                model="mistral",
                timeout_seconds=9.0,
                max_retries=3,
            )
        )

        service = create_completion_service(config)

        assert isinstance(service, OllamaCompletionService)
        assert service.model_name == "mistral"
        assert service.url == "http://gpu:11434"
        assert service.timeout == 9.0

    def test_unknown_provider(self):
        config = Config()
        config.llm.provider = "openai"

        assert create_completion_service(config) is None
