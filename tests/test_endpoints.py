"""Tests for endpoint file parsing."""

from pathlib import Path

import pytest

from uptimer.endpoints import (
    DEFAULT_EXPECTED_CODE,
    DEFAULT_INTERVAL,
    EndpointFileCreated,
    EndpointFileError,
    EndpointList,
    EndpointSpec,
    load_endpoints,
    parse_endpoint_line,
    parse_endpoints,
)


class TestParseEndpointLine:
    """Tests for parse_endpoint_line."""

    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("https://example.com", EndpointSpec("https://example.com", "200")),
            ("http://example.org/health 204", EndpointSpec("http://example.org/health", "204")),
            ("https://example.com:8443/api/v1?x=1 301", EndpointSpec("https://example.com:8443/api/v1?x=1", "301")),
            ("http://10.0.0.1:8080", EndpointSpec("http://10.0.0.1:8080", DEFAULT_EXPECTED_CODE)),
            ("https://example.com/", EndpointSpec("https://example.com/", "200")),
        ],
    )
    def test_valid_lines(self, line: str, expected: EndpointSpec) -> None:
        assert parse_endpoint_line(line) == expected

    @pytest.mark.parametrize(
        "line",
        [
            "example.com",
            "ftp://example.com",
            "https://example.com 20",
            "https://example.com 2000",
            "https://exa mple.com",
            "  https://example.com",
            "https://example.com \u0662\u0660\u0660",
            "https://example.com:\u0668\u0660",
            "",
        ],
    )
    def test_invalid_lines(self, line: str) -> None:
        assert parse_endpoint_line(line) is None


class TestParseEndpoints:
    """Tests for parse_endpoints."""

    def test_interval_and_endpoints(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("INFO", logger="uptimer.endpoints"):
            result = parse_endpoints(["30\n", "https://example.com\n", "http://example.org/health 204\n"])

        assert result == EndpointList(
            interval=30,
            endpoints=[EndpointSpec("https://example.com", "200"), EndpointSpec("http://example.org/health", "204")],
        )
        assert "Wait time is 30 seconds" in caplog.text

    def test_missing_interval_uses_default(self, caplog: pytest.LogCaptureFixture) -> None:
        """Without an interval line the first line is read as an endpoint."""
        result = parse_endpoints(["https://example.com\n", "https://example.org\n"])

        assert result.interval == DEFAULT_INTERVAL
        assert [e.url for e in result.endpoints] == ["https://example.com", "https://example.org"]
        assert "Wait time not found. Set to default 10 seconds" in caplog.text

    @pytest.mark.parametrize("first_line", ["0", "-5", "+0"])
    def test_non_positive_interval(self, first_line: str, caplog: pytest.LogCaptureFixture) -> None:
        """A zero or negative wait time falls back to the default and is not read as an endpoint."""
        result = parse_endpoints([first_line, "https://example.com"])

        assert result.interval == DEFAULT_INTERVAL
        assert [e.url for e in result.endpoints] == ["https://example.com"]
        assert "Wait time must be positive" in caplog.text
        assert "Set to default 10 seconds" in caplog.text
        assert "Wait time not found" not in caplog.text
        assert "line is incorrect" not in caplog.text

    @pytest.mark.parametrize("first_line", ["ten", "\u0663\u0660"])
    def test_non_integer_interval(self, first_line: str, caplog: pytest.LogCaptureFixture) -> None:
        """Anything other than an ASCII integer is not a wait time."""
        result = parse_endpoints([first_line, "https://example.com"])

        assert result.interval == DEFAULT_INTERVAL
        assert [e.url for e in result.endpoints] == ["https://example.com"]
        assert "Wait time not found. Set to default 10 seconds" in caplog.text
        assert f"{first_line} line is incorrect!" in caplog.text

    def test_skips_blank_and_malformed_lines(self, caplog: pytest.LogCaptureFixture) -> None:
        result = parse_endpoints(["15", "", "not a url", "https://example.com", "\n"])

        assert [e.url for e in result.endpoints] == ["https://example.com"]
        assert "not a url line is incorrect!" in caplog.text

    def test_duplicate_urls_keep_first(self, caplog: pytest.LogCaptureFixture) -> None:
        result = parse_endpoints(["15", "https://example.com", "https://example.com 404"])

        assert result.endpoints == [EndpointSpec("https://example.com", "200")]
        assert "listed more than once" in caplog.text

    def test_trailing_slash_is_a_different_url(self) -> None:
        result = parse_endpoints(["15", "https://example.com", "https://example.com/"])
        assert len(result.endpoints) == 2

    def test_windows_line_endings(self) -> None:
        result = parse_endpoints(["20\r\n", "https://example.com 200\r\n"])

        assert result.interval == 20
        assert result.endpoints == [EndpointSpec("https://example.com", "200")]

    def test_empty_file(self) -> None:
        result = parse_endpoints([])

        assert result.interval == DEFAULT_INTERVAL
        assert result.endpoints == []


class TestLoadEndpoints:
    """Tests for load_endpoints."""

    def test_loads_file(self, tmp_path: Path) -> None:
        path = tmp_path / "endpoints.txt"
        path.write_text("60\nhttps://example.com\nhttp://example.org 404\n")

        result = load_endpoints(str(path))

        assert result.interval == 60
        assert result.endpoints == [EndpointSpec("https://example.com", "200"), EndpointSpec("http://example.org", "404")]

    def test_creates_missing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "endpoints.txt"

        with pytest.raises(EndpointFileCreated, match="file was created"):
            load_endpoints(str(path))

        assert path.exists()
        assert path.read_text() == ""

    def test_created_is_endpoint_file_error(self) -> None:
        assert issubclass(EndpointFileCreated, EndpointFileError)

    def test_cannot_create_file(self, tmp_path: Path) -> None:
        path = tmp_path / "missing-dir" / "endpoints.txt"

        with pytest.raises(EndpointFileError, match="Cannot create"):
            load_endpoints(str(path))
