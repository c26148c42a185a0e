"""Tests for the CSV sheet source."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from pi_perle_stack.database.models import make_perla_id
from pi_perle_stack.errors import ConfigurationError, SourceUnavailable
from pi_perle_stack.services.sheet_source import SheetSource, parse_csv_row

SHEET_URL = "https://example.test/sheet.csv"


def http_response(body: bytes, content_type: str, url: str = SHEET_URL) -> requests.Response:
    """A real Response, decoded by requests the way a live fetch would be."""
    resp = requests.Response()
    resp.status_code = 200
    resp._content = body
    resp.headers["Content-Type"] = content_type
    resp.encoding = requests.utils.get_encoding_from_headers(resp.headers)
    resp.url = url
    return resp


class TestParseCsvRow:
    def test_plain(self):
        assert parse_csv_row("a,b,c") == ["a", "b", "c"]

    def test_quoted_comma_preserved(self):
        assert parse_csv_row('"Frase, con virgola",Scuola,Anna') == [
            "Frase, con virgola",
            "Scuola",
            "Anna",
        ]

    def test_escaped_quote(self):
        assert parse_csv_row('"Ha detto ""ciao"" a tutti",x') == ['Ha detto "ciao" a tutti', "x"]

    def test_fields_are_trimmed(self):
        assert parse_csv_row("  a , b ,") == ["a", "b", ""]

    def test_custom_delimiter(self):
        assert parse_csv_row("a;b,c", delimiter=";") == ["a", "b,c"]


class TestParse:
    def test_example_payload(self):
        source = SheetSource(csv_url="https://example.test/sheet.csv")
        items = source.parse('testo,categoria,autore\n"Frase, con virgola",Scuola,Anna\n')

        assert len(items) == 1
        assert items[0].text == "Frase, con virgola"
        assert items[0].category == "Scuola"
        assert items[0].author == "Anna"

    def test_header_only(self):
        assert SheetSource(csv_url="x").parse("testo,categoria,autore\n") == []

    def test_short_rows_skipped(self):
        payload = "testo\nciao\n\nQuesta invece va bene\n"
        items = SheetSource(csv_url="x").parse(payload)
        assert [i.text for i in items] == ["Questa invece va bene"]

    def test_missing_optional_columns(self):
        items = SheetSource(csv_url="x").parse("testo\nSolo il testo della perla\n")
        assert items[0].category is None
        assert items[0].author is None

    def test_ids_stable_and_deduplicated(self):
        payload = "testo\nLa stessa perla ripetuta\nLa stessa perla ripetuta\n"
        source = SheetSource(csv_url="x")
        first = source.parse(payload)
        assert len(first) == 1
        assert source.parse(payload)[0].id == first[0].id

    def test_crlf_line_endings(self):
        items = SheetSource(csv_url="x").parse("testo\r\nPerla con fine riga windows\r\n")
        assert items[0].text == "Perla con fine riga windows"


class TestFetch:
    def test_missing_url_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            SheetSource(csv_url="").fetch()

    @patch("pi_perle_stack.services.sheet_source.requests.get")
    def test_fetch_parses_response(self, mock_get):
        mock_get.return_value = http_response(
            b"testo,categoria\nUna perla dal foglio,Asilo\n", "text/csv; charset=utf-8"
        )

        items = SheetSource(csv_url=SHEET_URL).fetch()

        assert len(items) == 1
        assert items[0].source_url == SHEET_URL

    @patch("pi_perle_stack.services.sheet_source.requests.get")
    def test_utf8_without_charset_header(self, mock_get):
        text = "Perch\u00e9 la maestra \u00e8 gi\u00e0 in gita?"
        body = f"testo\n{text}\n".encode("utf-8")
        mock_get.return_value = http_response(body, "text/csv")

        items = SheetSource(csv_url=SHEET_URL).fetch()

        assert items[0].text == text
        assert items[0].id == make_perla_id(text)

    @patch("pi_perle_stack.services.sheet_source.requests.get")
    def test_utf8_bom_dropped(self, mock_get):
        body = "\ufefftesto,categoria\nCos\u00ec non va bene,Scuola\n".encode("utf-8")
        mock_get.return_value = http_response(body, "text/csv")

        items = SheetSource(csv_url=SHEET_URL).fetch()

        assert [i.text for i in items] == ["Cos\u00ec non va bene"]

    @patch("pi_perle_stack.services.sheet_source.requests.get")
    def test_declared_charset_honoured(self, mock_get):
        body = "testo\nPerch\u00e9 domani si esce prima?\n".encode("latin-1")
        mock_get.return_value = http_response(body, "text/csv; charset=ISO-8859-1")

        items = SheetSource(csv_url=SHEET_URL).fetch()

        assert items[0].text == "Perch\u00e9 domani si esce prima?"

    @patch("pi_perle_stack.services.sheet_source.requests.get")
    def test_network_error_is_source_unavailable(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        with pytest.raises(SourceUnavailable):
            SheetSource(csv_url="https://example.test/sheet.csv").fetch()

    @patch("pi_perle_stack.services.sheet_source.requests.get")
    def test_http_error_is_source_unavailable(self, mock_get):
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.HTTPError("404")
        mock_get.return_value = resp
        with pytest.raises(SourceUnavailable):
            SheetSource(csv_url="https://example.test/sheet.csv").fetch()
