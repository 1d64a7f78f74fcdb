"""Tests for tuple-file parsing and the tuple membership index."""

import logging

import pytest

from tuples import (
    DEGREES,
    NO_FLAGS,
    TupleFlags,
    TupleIndex,
    TupleIndexBuilder,
    build_tuple_index,
    default_tuple_files,
    parse_tuple_line,
)


class TestParseTupleLine:

    @pytest.mark.parametrize("line, expected", [
        ("(5, 7)\n", ["5", "7"]),
        ("  (11, 13, 17)  ", ["11", "13", "17"]),
        ("101, 103, 107, 109", ["101", "103", "107", "109"]),
        ("\n", []),
        ("()", []),
    ])
    def test_parse(self, line, expected):
        assert parse_tuple_line(line) == expected


class TestBuildIndex:

    def test_degree_is_tuple_length(self, tmp_path, twin_file):
        quad = tmp_path / "quad.txt"
        quad.write_text("(5, 7, 11, 13)\n")
        index = build_tuple_index({"twin": str(twin_file), "quad": str(quad)})
        assert index.degrees(5) == frozenset({2, 4})
        assert index.degrees("19") == frozenset({2})
        assert index.degrees(23) == frozenset()

    def test_duplicates_recorded_once(self, tmp_path):
        """Same (key, degree) from several lines and files collapses to one entry."""
        a = tmp_path / "a.txt"
        b = tmp_path / "b.txt"
        a.write_text("(5, 7)\n(5, 7)\n(3, 5)\n")
        b.write_text("(7, 5)\n")
        index = build_tuple_index({"a": str(a), "b": str(b)})
        assert index.degrees(5) == frozenset({2})
        assert index.degrees(7) == frozenset({2})
        assert len(index) == 3

    def test_order_independent(self, tmp_path):
        lines = ["(5, 7)", "(5, 7, 11)", "(5, 11, 17, 23, 29, 41)"]
        a = tmp_path / "fwd.txt"
        b = tmp_path / "rev.txt"
        a.write_text("\n".join(lines))
        b.write_text("\n".join(reversed(lines)))
        fwd = build_tuple_index({"x": str(a)})
        rev = build_tuple_index({"x": str(b)})
        assert {k: fwd.degrees(k) for k in fwd} == {k: rev.degrees(k) for k in rev}

    def test_missing_file_is_not_fatal(self, tmp_path, twin_file, caplog):
        with caplog.at_level(logging.ERROR):
            index = build_tuple_index({"twin": str(twin_file), "sexy": str(tmp_path / "nope.txt")})
        assert 7 in index
        assert "nope.txt" in caplog.text

    def test_malformed_lines_skipped(self, tmp_path, caplog):
        path = tmp_path / "bad.txt"
        path.write_text("(5, 7)\n(x, 9)\n(11, 13)\n")
        with caplog.at_level(logging.WARNING):
            index = build_tuple_index({"twin": str(path)})
        assert sorted(index, key=int) == ["5", "7", "11", "13"]
        assert "malformed" in caplog.text

    def test_no_files(self):
        assert len(build_tuple_index({})) == 0


class TestTupleIndex:

    def test_flags(self):
        index = TupleIndex({"5": frozenset({2, 3}), "7": frozenset({6})})
        assert index.flags(5) == TupleFlags(twin=True, triplet=True)
        assert index.flags(7).sexy
        assert index.flags(9) is NO_FLAGS

    def test_read_only(self):
        index = TupleIndex({"5": frozenset({2})})
        with pytest.raises(TypeError):
            index._entries["9"] = frozenset({2})

    def test_freeze_detaches_from_builder(self):
        builder = TupleIndexBuilder()
        builder.insert("5", 2)
        index = builder.freeze()
        builder.insert("5", 3)
        assert index.degrees(5) == frozenset({2})

    def test_default_files_cover_every_family(self):
        files = default_tuple_files("somewhere")
        assert set(files) == set(DEGREES)
        assert files["twin"].startswith("somewhere")
