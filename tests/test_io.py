"""
Tests for the token reader of the text format.
"""

import pytest
from numpy.testing import assert_allclose, assert_array_equal

from watfNURBS.errors import NURBSTopologyError
from watfNURBS.io.text import TokenStream, format_values


class TestTokenStream:

    def test_header_and_comments(self):
        stream = TokenStream("MFEM NURBS mesh v1.0\n# comment\ndimension 2 # trailing\n")
        assert stream.tokens == ["dimension", "2"]

    def test_numbers(self):
        stream = TokenStream("3 1 2 3 0.5 1e-3")
        assert_array_equal(stream.next_ints(stream.next_int()), [1, 2, 3])
        assert_allclose(stream.next_floats(2), [0.5, 1e-3])
        assert stream.at_end()
        assert stream.peek() is None

    def test_expect_and_accept(self):
        stream = TokenStream("edges 4")
        assert not stream.accept("vertices")
        assert stream.accept("edges")
        with pytest.raises(NURBSTopologyError):
            stream.expect("vertices")

    def test_bad_number(self):
        with pytest.raises(NURBSTopologyError):
            TokenStream("abc").next_int()
        with pytest.raises(NURBSTopologyError):
            TokenStream("1.5.2").next_float()

    def test_end_of_input(self):
        with pytest.raises(NURBSTopologyError):
            TokenStream("").next()

    def test_from_file(self, tmp_path):
        filename = tmp_path / "tokens.txt"
        filename.write_text("knotvectors\n1\n")
        stream = TokenStream.from_file(str(filename))
        assert stream.next() == "knotvectors"
        assert stream.next_int() == 1

    def test_from_lines(self):
        stream = TokenStream.from_lines(["a b", "c"])
        assert stream.tokens == ["a", "b", "c"]


def test_format_values():
    assert format_values([1.0, 0.5, 2]) == "1 0.5 2"
    assert format_values([0.1]) == repr(0.1)
