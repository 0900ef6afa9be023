"""Tests for gora.http.query: QueryParams."""

from gora.http.query import QueryParams


class TestQueryParams:
    def test_first_value(self) -> None:
        query = QueryParams(b"a=1&a=2&b=x")
        assert query["a"] == "1"
        assert query.get_list("a") == ["1", "2"]
        assert query.get("b") == "x"

    def test_accepts_str(self) -> None:
        assert QueryParams("q=hello%20world")["q"] == "hello world"

    def test_blank_values_kept(self) -> None:
        query = QueryParams(b"flag=")
        assert "flag" in query
        assert query.get("flag") == ""

    def test_missing(self) -> None:
        query = QueryParams()
        assert query.get("x") is None
        assert query.get_list("x") == []
        assert len(query) == 0

    def test_raw(self) -> None:
        assert QueryParams(b"a=1").raw == b"a=1"
