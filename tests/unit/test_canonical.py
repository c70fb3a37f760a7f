"""Tests for canonical request serialisation."""

from __future__ import annotations

import pytest

from mvpbridge.signing.canonical import (
    canonical_headers,
    canonical_query_string,
    canonical_request,
    canonical_uri,
    payload_hash,
)
from mvpbridge.signing.encoding import EMPTY_SHA256, sha256_hex, uri_encode
from mvpbridge.signing.errors import EncodingError


class TestUriEncode:
    def test_unreserved_untouched(self) -> None:
        assert uri_encode("AZaz09-_.~") == "AZaz09-_.~"

    def test_space_is_percent_20(self) -> None:
        assert uri_encode("value with spaces") == "value%20with%20spaces"

    def test_uppercase_hex(self) -> None:
        assert uri_encode("a/b=c") == "a%2Fb%3Dc"

    def test_slash_kept_when_requested(self) -> None:
        assert uri_encode("a/b", encode_slash=False) == "a/b"

    def test_utf8_bytes(self) -> None:
        assert uri_encode("é") == "%C3%A9"


class TestCanonicalQuery:
    def test_empty(self) -> None:
        assert canonical_query_string("") == ""
        assert canonical_query_string([]) == ""

    def test_single(self) -> None:
        assert canonical_query_string("Action=ListUsers") == "Action=ListUsers"

    def test_sorted_by_name(self) -> None:
        result = canonical_query_string("Version=2010-05-08&Action=ListUsers")
        assert result == "Action=ListUsers&Version=2010-05-08"

    def test_multi_value_sorted(self) -> None:
        assert canonical_query_string([("filter", "b"), ("filter", "a")]) == "filter=a&filter=b"

    def test_grouped_by_name(self) -> None:
        result = canonical_query_string([("b", "2"), ("a", "z"), ("b", "1"), ("a", "y")])
        assert result == "a=y&a=z&b=1&b=2"

    def test_order_independent(self) -> None:
        one = canonical_query_string("z=1&a=2&m=3&a=1")
        two = canonical_query_string("a=1&m=3&a=2&z=1")
        assert one == two

    def test_percent_case_normalised(self) -> None:
        lower = canonical_query_string("path=%2ffoo%2fbar")
        upper = canonical_query_string("path=%2Ffoo%2Fbar")
        assert lower == upper == "path=%2Ffoo%2Fbar"

    def test_space_encoding(self) -> None:
        assert canonical_query_string([("param", "value with spaces")]) == (
            "param=value%20with%20spaces"
        )
        assert canonical_query_string("param=value+with+spaces") == (
            "param=value%20with%20spaces"
        )

    def test_blank_value_kept(self) -> None:
        assert canonical_query_string("flag=&a=1") == "a=1&flag="

    def test_non_utf8_escapes_kept_byte_exact(self) -> None:
        assert canonical_query_string("k=%FF") == "k=%FF"
        assert canonical_query_string("k=%FE") == "k=%FE"
        assert canonical_query_string("%C3%28=%80") == "%C3%28=%80"

    def test_utf8_escape_and_literal_agree(self) -> None:
        assert canonical_query_string("name=%C3%A9") == canonical_query_string("name=é")

    def test_sorted_by_encoded_name(self) -> None:
        assert canonical_query_string([("b", "1"), ("A", "2"), ("a-b", "3")]) == (
            "A=2&a-b=3&b=1"
        )



class TestCanonicalHeaders:
    def test_basic(self) -> None:
        block, signed = canonical_headers(
            {
                "Host": "amplify.us-east-1.amazonaws.com",
                "X-Amz-Date": "20230101T120000Z",
                "Content-Type": "application/json",
            }
        )
        assert block == (
            "content-type:application/json\n"
            "host:amplify.us-east-1.amazonaws.com\n"
            "x-amz-date:20230101T120000Z\n"
        )
        assert signed == "content-type;host;x-amz-date"

    def test_whitespace_trimmed(self) -> None:
        block, signed = canonical_headers(
            {"Host": "  example.com  ", "X-Amz-Date": "20230101T120000Z"}
        )
        assert block == "host:example.com\nx-amz-date:20230101T120000Z\n"
        assert signed == "host;x-amz-date"

    def test_unsignable_excluded(self) -> None:
        _, signed = canonical_headers(
            [
                ("Host", "example.com"),
                ("User-Agent", "test-agent"),
                ("Accept", "*/*"),
                ("X-Amz-Content-Sha256", "abc123"),
                ("X-Custom", "nope"),
            ]
        )
        assert signed == "host;x-amz-content-sha256"

    def test_repeated_headers_merge(self) -> None:
        block, signed = canonical_headers(
            [("X-Amz-Meta", " one "), ("host", "example.com"), ("x-amz-meta", "two")]
        )
        assert block == "host:example.com\nx-amz-meta:one,two\n"
        assert signed.count("x-amz-meta") == 1

    def test_case_insensitive_names(self) -> None:
        a = canonical_headers([("HOST", "example.com"), ("X-AMZ-DATE", "d")])
        b = canonical_headers([("x-amz-date", "d"), ("host", "example.com")])
        assert a == b

    def test_no_signable_headers(self) -> None:
        assert canonical_headers({"Accept": "*/*"}) == ("", "")

    def test_line_break_rejected(self) -> None:
        with pytest.raises(EncodingError):
            canonical_headers({"X-Amz-Meta": "a\r\nInjected: 1"})


class TestPayloadHash:
    def test_absent_body(self) -> None:
        assert payload_hash(None) == EMPTY_SHA256

    def test_empty_body(self) -> None:
        assert payload_hash(b"") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_json_body(self) -> None:
        body = b'{"name":"test-app"}'
        assert payload_hash(body) == sha256_hex(body)

    def test_body_untouched(self) -> None:
        body = b'{"name":"test-app"}'
        original = bytes(body)
        payload_hash(body)
        assert body == original


class TestCanonicalRequest:
    def test_structure(self) -> None:
        cr = canonical_request(
            "get",
            "/apps",
            "",
            {"Host": "amplify.us-east-1.amazonaws.com", "X-Amz-Date": "20230615T120000Z"},
            EMPTY_SHA256,
        )
        lines = cr.render().split("\n")
        assert lines[0] == "GET"
        assert lines[1] == "/apps"
        assert lines[2] == ""
        assert "host:amplify.us-east-1.amazonaws.com" in lines
        assert "x-amz-date:20230615T120000Z" in lines
        assert lines[-2] == "host;x-amz-date"
        assert lines[-1] == EMPTY_SHA256

    def test_empty_path_is_root(self) -> None:
        assert canonical_uri("") == "/"
        assert canonical_uri("/a%20b") == "/a%20b"

    def test_minimal_request_well_formed(self) -> None:
        cr = canonical_request("GET", "", "", {}, EMPTY_SHA256)
        assert cr.render() == f"GET\n/\n\n\n\n{EMPTY_SHA256}"

    def test_empty_method_rejected(self) -> None:
        with pytest.raises(EncodingError):
            canonical_request("", "/", "", {}, EMPTY_SHA256)

    def test_reference_request(self) -> None:
        cr = canonical_request(
            "GET",
            "/",
            "Version=2010-05-08&Action=ListUsers",
            {
                "X-Amz-Date": "20150830T123600Z",
                "Host": "iam.amazonaws.com",
                "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
            },
            EMPTY_SHA256,
        )
        assert cr.render() == (
            "GET\n"
            "/\n"
            "Action=ListUsers&Version=2010-05-08\n"
            "content-type:application/x-www-form-urlencoded; charset=utf-8\n"
            "host:iam.amazonaws.com\n"
            "x-amz-date:20150830T123600Z\n"
            "\n"
            "content-type;host;x-amz-date\n"
            f"{EMPTY_SHA256}"
        )
        assert sha256_hex(cr.render().encode()) == (
            "f536975d06c0309214f805bb90ccff089219ecd68b2577efef23edd43b7e1a59"
        )
