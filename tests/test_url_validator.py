"""Tests for the job posting URL guard."""

from __future__ import annotations

import socket
from unittest.mock import patch

import pytest

from resume_studio.utils.url_validator import SSRFError, validate_url


def _resolves_to(ip: str):
    return patch("socket.getaddrinfo", return_value=[(2, 1, 6, "", (ip, 0))])


class TestBlockedTargets:
    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost/admin",
            "http://LOCALHOST.localdomain/",
            "http://127.0.0.1/admin",
            "http://[::1]/admin",
            "http://10.0.0.1/jobs",
            "http://172.16.0.1/jobs",
            "http://192.168.1.1/jobs",
            "http://169.254.169.254/latest/meta-data",
            "http://0.0.0.0/",
        ],
    )
    def test_internal_addresses(self, url):
        with pytest.raises(SSRFError):
            validate_url(url)

    def test_hostname_resolving_to_private_ip(self):
        with _resolves_to("10.0.0.5"):
            with pytest.raises(SSRFError, match="resolves to blocked address"):
                validate_url("https://careers.internal.example/job/1")

    def test_literal_ip_checked_without_resolving(self):
        with patch("socket.getaddrinfo") as getaddrinfo:
            with pytest.raises(SSRFError):
                validate_url("http://192.168.0.10/job", resolve=False)
            getaddrinfo.assert_not_called()


class TestMalformed:
    @pytest.mark.parametrize("url", ["ftp://example.com/job.txt", "file:///etc/passwd", "jobs.example.com"])
    def test_scheme_must_be_http(self, url):
        with pytest.raises(ValueError, match="Unsupported URL scheme"):
            validate_url(url)

    def test_missing_hostname(self):
        with pytest.raises(ValueError, match="No hostname"):
            validate_url("https:///careers")

    def test_unresolvable_hostname(self):
        with patch("socket.getaddrinfo", side_effect=socket.gaierror("Name resolution failed")):
            with pytest.raises(ValueError, match="Cannot resolve hostname"):
                validate_url("https://no-such-board.invalid/job")


class TestAllowed:
    def test_public_posting(self):
        with _resolves_to("142.250.80.46"):
            assert validate_url("https://boards.example.com/acme/jobs/123") == (
                "https://boards.example.com/acme/jobs/123"
            )

    def test_surrounding_whitespace_is_trimmed(self):
        assert validate_url("  https://93.184.216.34/job  ") == "https://93.184.216.34/job"

    def test_resolve_false_skips_dns(self):
        with patch("socket.getaddrinfo") as getaddrinfo:
            assert validate_url("https://boards.example.com/1", resolve=False)
            getaddrinfo.assert_not_called()
