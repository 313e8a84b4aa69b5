"""Tests for the command-line interface."""

from unittest.mock import patch

import pytest
from conftest import FakeTransport, ok_json
from create_request import __version__
from create_request.cli import build_request, create_parser, main, parse_header, parse_query
from create_request.core.executor import RequestExecutor
from create_request.errors import ConfigurationError, NetworkError
from create_request.http.static import StaticResponse
from create_request.models.config import RetryPolicy
from create_request.models.request import HttpMethod

URL = "https://api.test/users"


class ScriptedAiohttpTransport(FakeTransport):
    """FakeTransport usable as an async context manager in place of AiohttpTransport."""

    settings = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


def run_cli(argv, *outcomes):
    transport = ScriptedAiohttpTransport(*outcomes)

    def factory(settings):
        transport.settings = settings
        return transport

    with patch("create_request.cli.AiohttpTransport", side_effect=factory):
        code = main(argv)
    return code, transport


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test default values."""
        args = create_parser().parse_args([URL])

        assert args.url == URL
        assert args.method == "GET"
        assert args.header == []
        assert args.query == []
        assert args.timeout is None
        assert args.retries == 0
        assert args.retry_delay is None
        assert not args.verbose
        assert not args.quiet

    def test_method_is_case_insensitive(self):
        """Test -X accepts lowercase method names."""
        args = create_parser().parse_args([URL, "-X", "post"])
        assert args.method == "POST"

    def test_unknown_method_rejected(self):
        """Test unsupported methods exit with an error."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([URL, "-X", "BREW"])

    def test_body_options_exclusive(self):
        """Test --data and --json cannot be combined."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([URL, "--data", "x", "--json", "{}"])

    def test_version(self, capsys):
        """Test --version prints the package version."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestArgumentHelpers:
    """Tests for header and query parsing."""

    def test_parse_header(self):
        """Test headers split on the first colon."""
        assert parse_header("Authorization: Bearer a:b") == ("Authorization", "Bearer a:b")
        assert parse_header("X-Empty:") == ("X-Empty", "")

    @pytest.mark.parametrize("value", ["no-colon", ": value"])
    def test_parse_header_invalid(self, value):
        """Test malformed headers are rejected."""
        with pytest.raises(ValueError, match="Invalid header"):
            parse_header(value)

    def test_parse_query(self):
        """Test query arguments split on the first equals sign."""
        assert parse_query("q=a=b") == ("q", "a=b")
        assert parse_query("flag=") == ("flag", "")

    @pytest.mark.parametrize("value", ["novalue", "=x"])
    def test_parse_query_invalid(self, value):
        """Test malformed query arguments are rejected."""
        with pytest.raises(ValueError, match="Invalid query parameter"):
            parse_query(value)


class TestBuildRequest:
    """Tests for translating arguments into a Request."""

    def build(self, argv):
        args = create_parser().parse_args(argv)
        return build_request(args, RequestExecutor(FakeTransport()))

    def test_full_request(self):
        """Test every option reaches the descriptor."""
        request = self.build(
            [
                URL,
                "-X",
                "POST",
                "-H",
                "X-Api-Key: abc",
                "--query",
                "page=2",
                "--json",
                '{"name": "Ada"}',
                "--graphql",
                "--timeout",
                "1500",
                "--retries",
                "2",
            ]
        )
        descriptor = request.descriptor

        assert descriptor.method is HttpMethod.POST
        assert descriptor.headers["x-api-key"] == "abc"
        assert descriptor.query.getall("page") == ["2"]
        assert descriptor.body == {"name": "Ada"}
        assert descriptor.graphql.throw_on_error is True
        assert descriptor.timeout_ms == 1500
        assert descriptor.retries == 2

    def test_retry_delay_builds_policy(self):
        """Test --retry-delay turns the count into a RetryPolicy."""
        request = self.build([URL, "--retries", "3", "--retry-delay", "200"])

        assert request.descriptor.retries == RetryPolicy(attempts=3, delay=200)

    def test_text_body(self):
        """Test --data sends the text as-is."""
        assert self.build([URL, "-X", "PUT", "-d", "hello"]).descriptor.body == "hello"

    def test_invalid_json(self):
        """Test malformed JSON bodies raise ValueError."""
        with pytest.raises(ValueError, match="Invalid JSON body"):
            self.build([URL, "-X", "POST", "--json", "{broken"])

    def test_body_on_get_rejected(self):
        """Test a body on GET is a configuration error."""
        with pytest.raises(ConfigurationError, match="GET requests cannot have a body"):
            self.build([URL, "-d", "hello"])

    def test_invalid_timeout(self):
        """Test non-positive timeouts are rejected."""
        with pytest.raises(ConfigurationError, match="Timeout must be a positive number"):
            self.build([URL, "--timeout", "0"])


class TestMain:
    """Tests for the main entry point."""

    def test_success_prints_status_and_body(self, capsys):
        """Test a successful request prints the status line and JSON body."""
        code, transport = run_cli([URL, "--query", "q=ada"], ok_json({"users": ["ada"]}))

        out = capsys.readouterr().out
        assert code == 0
        assert transport.requests[0].url == URL + "?q=ada"
        assert "200 OK" in out
        assert '"users"' in out

    def test_quiet_prints_only_body(self, capsys):
        """Test --quiet skips the status line."""
        code, _ = run_cli([URL, "-q"], lambda request: StaticResponse("plain body"))

        out = capsys.readouterr().out
        assert code == 0
        assert "plain body" in out
        assert "200" not in out

    def test_settings_passed_to_transport(self):
        """Test transport settings come from the arguments."""
        code, transport = run_cli([URL, "-q", "--user-agent", "tester/1.0"], ok_json({}))

        assert code == 0
        assert transport.settings.user_agent == "tester/1.0"

    def test_http_error_exit_code(self, capsys):
        """Test HTTP failures print the error class and exit with 1."""
        code, _ = run_cli([URL], lambda request: StaticResponse("missing", status=404))

        err = capsys.readouterr().err
        assert code == 1
        assert "HttpStatusError" in err

    def test_network_error_retried(self, capsys):
        """Test --retries re-sends after network failures."""
        code, transport = run_cli([URL, "-q", "--retries", "1"], NetworkError("reset"), ok_json({"ok": True}))

        assert code == 0
        assert transport.calls == 2

    def test_invalid_header_exit_code(self, capsys):
        """Test malformed arguments exit with 1 without sending."""
        code, transport = run_cli([URL, "-H", "broken"], ok_json({}))

        assert code == 1
        assert transport.calls == 0
        assert "Invalid header" in capsys.readouterr().err
