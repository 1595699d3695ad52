"""Unit tests for ping round-trip parsing (pure function tests).

Tests parse_round_trip_ms() across ping output formats without requiring
subprocess calls or OS-specific setup.
"""

import pytest

from netpulse.errors import ParseFailedError
from netpulse.probe_ping import parse_round_trip_ms


class TestParseRoundTripLinuxMacOS:
    """Test parsing Linux and macOS ping output formats."""

    def test_minimal_token(self):
        """Test the bare time=<float> ms token."""
        assert parse_round_trip_ms("time=12.3 ms") == 12.3

    def test_linux_standard_format(self):
        """Test standard Linux ping output line."""
        output = "64 bytes from example.com: icmp_seq=1 ttl=64 time=12.3 ms"
        assert parse_round_trip_ms(output) == 12.3

    def test_macos_multiline_output(self):
        """Test parsing from multi-line macOS output."""
        output = """
PING 1.1.1.1 (1.1.1.1): 56 data bytes
64 bytes from 1.1.1.1: icmp_seq=0 ttl=57 time=8.123 ms

--- 1.1.1.1 ping statistics ---
1 packets transmitted, 1 packets received, 0.0% packet loss
round-trip min/avg/max/stddev = 8.123/8.123/8.123/0.000 ms
"""
        assert parse_round_trip_ms(output) == 8.123

    def test_integer_latency(self):
        """Test parsing integer latency values."""
        assert parse_round_trip_ms("time=100 ms") == 100.0

    def test_sub_millisecond(self):
        """Test parsing very low latency values."""
        assert parse_round_trip_ms("time=0.045 ms") == 0.045

    def test_first_reply_wins(self):
        """Test that the first time= token is used."""
        output = "icmp_seq=1 time=5.5 ms\nicmp_seq=2 time=9.9 ms"
        assert parse_round_trip_ms(output) == 5.5


class TestParseRoundTripFailures:
    """Test that missing markers or non-numeric values fail to parse."""

    def test_empty_output(self):
        """Test that empty output fails to parse."""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms("")

    def test_none_output(self):
        """Test that missing output fails to parse."""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms(None)

    def test_missing_time_marker(self):
        """Test output with no time= token."""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms("Request timed out.")

    def test_missing_ms_marker(self):
        """Test output where time= is not followed by ' ms'."""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms("time=12.3")

    def test_windows_format_without_space(self):
        """Test that 'time=15ms' lacks the ' ms' marker."""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms("Reply from 8.8.8.8: bytes=32 time=15ms TTL=117")

    def test_non_numeric_value(self):
        """Test non-numeric content between the markers."""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms("time=fast ms")

    def test_unreachable_output(self):
        """Test destination unreachable output."""
        output = """
PING 192.168.1.254 (192.168.1.254) 56(84) bytes of data.
From 192.168.1.1 icmp_seq=1 Destination Host Unreachable

--- 192.168.1.254 ping statistics ---
1 packets transmitted, 0 received, +1 errors, 100% packet loss, time 0ms
"""
        with pytest.raises(ParseFailedError):
            parse_round_trip_ms(output)

    def test_error_kind(self):
        """Test that the error reports its kind for logs."""
        with pytest.raises(ParseFailedError) as exc_info:
            parse_round_trip_ms("garbage")
        assert exc_info.value.kind == "ParseFailed"
