"""
Tests for statement location in multi-statement scripts
"""

import pytest

from filequery.core.errors import ValidationError
from filequery.core.statements import cursor_to_offset, locate_statement, split_segments, table_literals


class TestSplitSegments:
    """Test the segment scanner"""

    def test_empty_buffer_has_one_empty_segment(self):
        segments = split_segments("")
        assert len(segments) == 1
        assert (segments[0].start, segments[0].end, segments[0].text) == (0, 0, "")

    def test_trailing_segment_recorded_when_empty(self):
        segments = split_segments("SELECT 1;")
        assert [s.text for s in segments] == ["SELECT 1", ""]
        assert segments[1].start == 9

    def test_semicolon_in_string_literal(self):
        segments = split_segments("SELECT ';' ; SELECT 2;")
        assert [s.statement for s in segments] == ["SELECT ';'", "SELECT 2", ""]

    def test_semicolon_in_quoted_identifier(self):
        segments = split_segments('SELECT "a;b" FROM t; SELECT 2')
        assert segments[0].statement == 'SELECT "a;b" FROM t'

    def test_doubled_quote_escape(self):
        segments = split_segments("SELECT 'it''s;fine'; SELECT 2")
        assert segments[0].statement == "SELECT 'it''s;fine'"
        assert segments[1].statement == "SELECT 2"

    def test_doubled_double_quote_escape(self):
        segments = split_segments('SELECT "a"";b"; SELECT 2')
        assert segments[0].statement == 'SELECT "a"";b"'

    def test_line_comment(self):
        segments = split_segments("-- c;\nSELECT 1; SELECT 2;")
        assert [s.statement for s in segments] == ["-- c;\nSELECT 1", "SELECT 2", ""]

    def test_block_comment(self):
        segments = split_segments("SELECT /* ; */ 1; SELECT 2")
        assert segments[0].statement == "SELECT /* ; */ 1"

    def test_block_comment_needs_distinct_close(self):
        # "/*/" opens a comment but does not close it
        segments = split_segments("SELECT /*/ ; */ 1; SELECT 2")
        assert len(segments) == 2

    def test_unterminated_quote_extends_to_end(self):
        segments = split_segments("SELECT 1; SELECT 'abc; def")
        assert len(segments) == 2
        assert segments[1].statement == "SELECT 'abc; def"

    def test_unterminated_block_comment_extends_to_end(self):
        segments = split_segments("SELECT 1; /* open ; never closed")
        assert len(segments) == 2

    def test_quotes_inside_comment_ignored(self):
        segments = split_segments("-- don't\nSELECT 1; SELECT 2")
        assert [s.statement for s in segments] == ["-- don't\nSELECT 1", "SELECT 2"]


class TestLocateStatement:
    """Test cursor-aware statement selection"""

    def test_string_literal_semicolon(self):
        assert locate_statement("SELECT ';' ; SELECT 2;", 5) == "SELECT ';'"

    def test_comment_semicolon(self):
        script = "-- c;\nSELECT 1; SELECT 2;"
        pos = script.index("SELECT 2") + 3
        assert locate_statement(script, pos) == "SELECT 2"

    def test_plain_buffer_brackets_cursor(self):
        script = "SELECT 1; SELECT 2; SELECT 3"
        for pos in range(len(script) + 1):
            before = script.rfind(";", 0, pos)
            after = script.find(";", pos)
            start = before + 1 if before >= 0 else 0
            end = after if after >= 0 else len(script)
            # A cursor sitting right on ';' belongs to the statement before it
            if pos < len(script) and script[pos] == ";":
                start = script.rfind(";", 0, pos) + 1
                end = pos
            assert locate_statement(script, pos) == script[start:end].strip()

    def test_cursor_before_semicolon_belongs_to_statement(self):
        script = "SELECT 1;SELECT 2"
        assert locate_statement(script, 8) == "SELECT 1"
        assert locate_statement(script, 9) == "SELECT 2"
        assert locate_statement(script, 10) == "SELECT 2"

    def test_empty_segment_resolves_backward(self):
        script = "SELECT 1;;SELECT 2"
        assert locate_statement(script, 9) == "SELECT 1"

    def test_empty_leading_segment_resolves_forward(self):
        script = " ; SELECT 2"
        assert locate_statement(script, 0) == "SELECT 2"

    def test_cursor_at_end_after_trailing_semicolon(self):
        script = "SELECT 1; SELECT 2;\n"
        assert locate_statement(script, len(script)) == "SELECT 2"

    def test_cursor_clamped(self):
        script = "SELECT 1; SELECT 2"
        assert locate_statement(script, -10) == "SELECT 1"
        assert locate_statement(script, 10_000) == "SELECT 2"

    def test_only_separators_returns_empty(self):
        assert locate_statement(" ;; ; ", 2) == ""
        assert locate_statement("", 0) == ""

    def test_selection_wins(self):
        assert locate_statement("SELECT 1; SELECT 2", 0, selection="  SELECT 3 ") == "SELECT 3"

    def test_empty_selection_falls_back_to_scan(self):
        assert locate_statement("SELECT 1; SELECT 2", 12, selection="") == "SELECT 2"

    def test_whitespace_selection_rejected(self):
        with pytest.raises(ValidationError, match="Selection is empty"):
            locate_statement("SELECT 1", 0, selection="   \n")


class TestCursorToOffset:
    """Test editor location conversion"""

    def test_offsets(self):
        text = "ab\ncde\nf"
        assert cursor_to_offset(text, 0, 0) == 0
        assert cursor_to_offset(text, 1, 2) == 5
        assert cursor_to_offset(text, 2, 1) == 8

    def test_out_of_range(self):
        text = "ab\ncd"
        assert cursor_to_offset(text, 0, 99) == 2
        assert cursor_to_offset(text, 9, 0) == len(text)


class TestTableLiterals:
    """Test detection of quoted file paths used as tables"""

    def test_from_and_join(self):
        sql = "SELECT * FROM 'a.csv' a JOIN 'sub/b.csv' b ON a.id = b.id"
        assert [value for _, _, value in table_literals(sql)] == ["a.csv", "sub/b.csv"]

    def test_spans(self):
        sql = "SELECT 'x' FROM 'a.csv'"
        start, end, value = table_literals(sql)[0]
        assert sql[start:end] == "'a.csv'"
        assert value == "a.csv"

    def test_from_list(self):
        sql = "SELECT * FROM 'a.csv' a, 'b.csv' WHERE x IN ('c.csv', 'd.csv')"
        assert [value for _, _, value in table_literals(sql)] == ["a.csv", "b.csv"]

    def test_other_literals_ignored(self):
        sql = "SELECT 'a.csv' AS name, concat('a.csv', 'x') FROM t WHERE p = 'a.csv'"
        assert table_literals(sql) == []

    def test_comments_and_identifiers_ignored(self):
        sql = "-- FROM 'a.csv'\nSELECT \"from 'x'\" /* JOIN 'b.csv' */ FROM 'c.csv'"
        assert [value for _, _, value in table_literals(sql)] == ["c.csv"]

    def test_escaped_quote(self):
        assert table_literals("SELECT * FROM 'it''s.csv'")[0][2] == "it's.csv"

    def test_case_insensitive(self):
        assert [v for _, _, v in table_literals("select * from 'a.csv' left join 'b.csv' using (id)")] == [
            "a.csv",
            "b.csv",
        ]

    def test_function_call_not_table(self):
        assert table_literals("SELECT * FROM read_csv('a.csv')") == []
