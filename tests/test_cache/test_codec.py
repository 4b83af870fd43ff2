"""Tests for the cache file codec."""

from __future__ import annotations

import io

import pytest

from httpecho.cache.codec import (
    FILE_HEADER,
    decode_request,
    decode_response,
    encode_exchange,
    encode_request,
    encode_response,
    read_cache_file,
    read_exchanges,
    write_cache_file,
)
from httpecho.exceptions import BadCacheFileError
from httpecho.messages import Exchange, HeaderFields, RecordedRequest, RecordedResponse


def _encoded_response(response: RecordedResponse) -> bytes:
    buffer = io.BytesIO()
    encode_response(response, buffer)
    return buffer.getvalue()


def _cache_file(body: bytes) -> io.BytesIO:
    return io.BytesIO(FILE_HEADER + body)


SIMPLE_RECORD = (
    b"GET https://example.com/\r\n"
    b"Accept: */*\r\n"
    b"\r\n"
    b"200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Content-Length: 9\r\n"
    b"\r\n"
    b"Mock data"
)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncode:
    def test_request_layout(self, make_req) -> None:
        buffer = io.BytesIO()
        encode_request(make_req(), buffer)
        assert buffer.getvalue() == b"GET https://example.com/\r\nAccept: */*\r\n\r\n"

    def test_response_layout(self, make_resp) -> None:
        assert _encoded_response(make_resp()) == (
            b"200 OK\r\nContent-Type: text/plain\r\nContent-Length: 9\r\n\r\nMock data"
        )

    def test_multi_values_joined_with_comma(self, make_req) -> None:
        request = make_req(headers=[("Accept-Encoding", "gzip, deflate"), ("Accept-Encoding", "br")])
        buffer = io.BytesIO()
        encode_request(request, buffer)
        assert b"Accept-Encoding: gzip,deflate,br\r\n" in buffer.getvalue()

    def test_unsplit_headers_written_one_line_per_value(self, make_resp) -> None:
        response = make_resp(
            headers=[("Set-Cookie", "a=1; Expires=Wed, 21 Oct 2099 07:28:00 GMT"), ("Set-Cookie", "b=2")]
        )
        data = _encoded_response(response)
        assert b"Set-Cookie: a=1; Expires=Wed, 21 Oct 2099 07:28:00 GMT\r\nSet-Cookie: b=2\r\n" in data

    def test_missing_content_length_is_computed(self) -> None:
        response = RecordedResponse(200, "OK", content=b"abc")
        assert b"Content-Length: 3\r\n\r\nabc" in _encoded_response(response)

    def test_content_headers_without_body_get_zero_length(self) -> None:
        response = RecordedResponse(
            204,
            "No Content",
            content_headers=HeaderFields.from_pairs([("Content-Type", "text/plain")]),
        )
        assert _encoded_response(response).endswith(b"Content-Length: 0\r\n\r\n")

    def test_no_body_no_content_headers(self) -> None:
        assert _encoded_response(RecordedResponse(304, "Not Modified")) == b"304 Not Modified\r\n\r\n"

    def test_mismatched_content_length_rejected(self) -> None:
        response = RecordedResponse(
            200,
            "OK",
            content_headers=HeaderFields.from_pairs([("Content-Length", "5")]),
            content=b"abc",
        )
        with pytest.raises(ValueError, match="Content-Length"):
            _encoded_response(response)

    def test_line_break_in_header_rejected(self, make_req) -> None:
        request = make_req(headers=[("X-Evil", "a\r\nInjected: yes")])
        with pytest.raises(ValueError, match="Line breaks"):
            encode_request(request, io.BytesIO())

    def test_write_cache_file_separates_records(self, make_ex) -> None:
        buffer = io.BytesIO()
        count = write_cache_file([make_ex("https://a.example/"), make_ex("https://b.example/")], buffer)
        data = buffer.getvalue()
        assert count == 2
        assert data.startswith(FILE_HEADER)
        assert b"Mock data\r\nGET https://b.example/" in data
        assert data.endswith(b"Mock data")

    def test_binary_body_preserved(self, make_req, make_resp) -> None:
        body = bytes(range(256)) + b"\r\n\r\n"
        buffer = io.BytesIO()
        write_cache_file([Exchange(make_req(), make_resp(body))], buffer)
        buffer.seek(0)
        [exchange] = read_cache_file(buffer)
        assert exchange.response.content == body


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class TestDecode:
    def test_round_trip_equals_original(self, make_req, make_resp) -> None:
        request = make_req(
            method="POST",
            headers=[("Accept", "application/json"), ("X-Trace", "a, b")],
            content=b'{"a": 1}',
            content_headers=[("Content-Type", "application/json")],
        )
        response = make_resp(b"[]", status_code=201, reason_phrase="Created", headers=[("ETag", '"x"')])
        buffer = io.BytesIO()
        encode_exchange(Exchange(request, response), buffer)
        buffer.seek(0)
        [exchange] = list(read_exchanges(buffer))
        assert exchange.request == request
        assert exchange.response == response

    def test_lf_only_line_endings_accepted(self) -> None:
        stream = _cache_file(SIMPLE_RECORD.replace(b"\r\n", b"\n"))
        [exchange] = read_cache_file(stream)
        assert exchange.request.url == "https://example.com/"
        assert exchange.response.content == b"Mock data"

    def test_blank_lines_between_records_skipped(self) -> None:
        stream = _cache_file(SIMPLE_RECORD + b"\r\n\r\n\n" + SIMPLE_RECORD + b"\r\n")
        assert len(read_cache_file(stream)) == 2

    def test_content_headers_split_from_message_headers(self) -> None:
        [exchange] = read_cache_file(_cache_file(SIMPLE_RECORD))
        response = exchange.response
        assert "content-type" in response.content_headers
        assert "Content-Type" not in response.headers
        assert response.content_headers.get("content-length") == ("9",)

    def test_date_and_cookie_values_kept_whole(self) -> None:
        response = decode_response(
            io.BytesIO(
                b"200 OK\r\n"
                b"Date: Tue, 15 Nov 1994 08:12:31 GMT\r\n"
                b"Set-Cookie: a=1; Expires=Wed, 21 Oct 2099 07:28:00 GMT\r\n"
                b"set-cookie: b=2\r\n"
                b"Last-Modified: Mon, 14 Nov 1994 08:12:31 GMT\r\n"
                b"Content-Length: 0\r\n"
                b"\r\n"
            )
        )
        assert response.headers.get("date") == ("Tue, 15 Nov 1994 08:12:31 GMT",)
        assert response.headers.get("set-cookie") == (
            "a=1; Expires=Wed, 21 Oct 2099 07:28:00 GMT",
            "b=2",
        )
        assert response.content_headers.get("last-modified") == ("Mon, 14 Nov 1994 08:12:31 GMT",)

    def test_any_content_prefixed_header_is_a_content_header(self) -> None:
        response = decode_response(
            io.BytesIO(b"200 OK\r\nContent-Security-Policy: default-src 'self'\r\nContent-Length: 0\r\n\r\n")
        )
        assert "content-security-policy" in response.content_headers
        assert "content-security-policy" not in response.headers

    def test_reason_phrase_may_contain_spaces_or_be_empty(self) -> None:
        assert decode_response(io.BytesIO(b"404 Not Found\r\n\r\n")).reason_phrase == "Not Found"
        assert decode_response(io.BytesIO(b"200 \r\n\r\n")).reason_phrase == ""

    def test_header_value_trimmed_and_split_at_first_colon(self) -> None:
        request = decode_request(io.BytesIO(b"GET https://example.com/\r\nX-Url:  http://x:1/  \r\n\r\n"))
        assert request is not None
        assert request.headers.get("x-url") == ("http://x:1/",)

    def test_decode_request_at_end_of_stream(self) -> None:
        assert decode_request(io.BytesIO(b"")) is None

    def test_body_without_content_headers_is_none(self) -> None:
        request = decode_request(io.BytesIO(b"GET https://example.com/\r\n\r\n"))
        assert request is not None
        assert request.content is None


class TestDecodeErrors:
    @pytest.mark.parametrize(
        "data, message",
        [
            (b"GEThttps://example.com/\r\n\r\n", "Missing space"),
            (b"GET https://example.com/ extra\r\n\r\n", "Expected HTTP method"),
            (b"G(T https://example.com/\r\n\r\n", "Expected HTTP method"),
            (b"GET /relative\r\n\r\n", "Failed to parse URL"),
            (b"GET https://example.com/\r\nNoColon\r\n\r\n", "Missing colon"),
            (b"GET https://example.com/\r\nAccept: */*\r\n", "Unexpected end of stream"),
        ],
    )
    def test_bad_request(self, data: bytes, message: str) -> None:
        with pytest.raises(BadCacheFileError, match=message):
            decode_request(io.BytesIO(data))

    @pytest.mark.parametrize(
        "data, message",
        [
            (b"200\r\n\r\n", "Missing space"),
            (b"OK 200\r\n\r\n", "Failed to parse status code"),
            (b"200 OK\r\nContent-Length: abc\r\n\r\n", "Failed to parse Content-Length"),
            (b"200 OK\r\nContent-Length: 1,2\r\n\r\nab", "Failed to parse Content-Length"),
            (b"200 OK\r\nContent-Type: text/plain\r\n\r\n", "Missing Content-Length"),
            (b"200 OK\r\nContent-Length: 10\r\n\r\nshort", "Unexpected end of stream"),
            (b"", "Unexpected end of stream"),
        ],
    )
    def test_bad_response(self, data: bytes, message: str) -> None:
        with pytest.raises(BadCacheFileError, match=message):
            decode_response(io.BytesIO(data))

    def test_request_without_response(self) -> None:
        stream = _cache_file(b"GET https://example.com/\r\n\r\n")
        with pytest.raises(BadCacheFileError, match="Unexpected end of stream"):
            read_cache_file(stream)

    def test_request_line_cut_short(self) -> None:
        with pytest.raises(BadCacheFileError, match="Unexpected end of stream"):
            list(read_exchanges(io.BytesIO(b"\r\nGET https://exa")))

    @pytest.mark.parametrize(
        "header",
        [
            b"",
            b"httpecho cache v1\r\n\r\n",
            b"httpecho cache v1\n\n",
            b"something else entirely\n",
        ],
    )
    def test_wrong_file_header(self, header: bytes) -> None:
        with pytest.raises(BadCacheFileError, match="Unrecognized cache file header"):
            read_cache_file(io.BytesIO(header + SIMPLE_RECORD))

    def test_header_only_file_has_no_records(self) -> None:
        with pytest.raises(BadCacheFileError, match="No cached responses found"):
            read_cache_file(io.BytesIO(FILE_HEADER))

    def test_every_truncation_of_a_record_fails(self, make_req, make_resp) -> None:
        buffer = io.BytesIO()
        write_cache_file([Exchange(make_req(), make_resp())], buffer)
        data = buffer.getvalue()
        for length in range(len(data)):
            with pytest.raises(BadCacheFileError):
                read_cache_file(io.BytesIO(data[:length]))
        assert len(read_cache_file(io.BytesIO(data))) == 1

    def test_request_method_is_kept_verbatim(self) -> None:
        request = decode_request(io.BytesIO(b"PATCH https://example.com/x\r\n\r\n"))
        assert request == RecordedRequest("PATCH", "https://example.com/x")
