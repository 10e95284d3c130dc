"""Tests for response line normalisation."""

import re

from pyobdcore.protocol.normalizer import contains_error_token, find_last_line, split_response_lines


class TestSplitResponseLines:
    def test_multi_frame_response_keeps_every_non_empty_line(self):
        assert split_response_lines("41 0C\r1A\rF8\r>") == ["41 0C", "1A", "F8", ">"]

    def test_empty_pieces_are_dropped(self):
        raw = "\r\r  SEARCHING...  \r\n\r\n41 0D 3C \n   \n"
        assert split_response_lines(raw) == ["SEARCHING...", "41 0D 3C"]

    def test_empty_and_missing_input(self):
        assert split_response_lines("") == []
        assert split_response_lines(None) == []
        assert split_response_lines("\r\n \r") == []

    def test_order_is_preserved(self):
        assert split_response_lines("010C\n41 0C 0F A0\n>") == ["010C", "41 0C 0F A0", ">"]


class TestFindLastLine:
    def test_last_matching_line_wins(self):
        lines = ["41 0C 00 00", "noise", "41 0C 0F A0", ">"]
        assert find_last_line(lines, r"41\s*0C") == "41 0C 0F A0"

    def test_string_patterns_ignore_case(self):
        assert find_last_line(["410c0fa0"], r"41\s*0C") == "410c0fa0"

    def test_compiled_pattern(self):
        assert find_last_line(["41 05 7B"], re.compile(r"41\s*05")) == "41 05 7B"

    def test_no_match(self):
        assert find_last_line(["NO DATA", ">"], r"41\s*0C") is None
        assert find_last_line([], r"41\s*0C") is None


class TestContainsErrorToken:
    def test_error_replies(self):
        assert contains_error_token("NO DATA")
        assert contains_error_token("CAN ERROR")
        assert contains_error_token("?")
        assert contains_error_token("unable to connect")

    def test_data_replies(self):
        assert not contains_error_token("41 0C 1A F8")
        assert not contains_error_token("")
        assert not contains_error_token(None)
