"""Tests for the listing page scraper."""

from unittest.mock import patch

import pytest
import requests

from pi_perle_stack.database.models import make_perla_id
from pi_perle_stack.errors import SourceUnavailable
from pi_perle_stack.services.page_scraper import PageScraper


def http_response(body: bytes, content_type: str) -> requests.Response:
    """A real Response, decoded by requests the way a live fetch would be."""
    resp = requests.Response()
    resp.status_code = 200
    resp._content = body
    resp.headers["Content-Type"] = content_type
    resp.encoding = requests.utils.get_encoding_from_headers(resp.headers)
    resp.url = "https://gruppoclasse.it/perle/"
    return resp


LISTING = """
<html><body>
  <div class="sidebar"><p>Iscriviti alla newsletter del sito</p></div>
  <article>
    <h2><a href="/perle/mamma-e-la-gita/">Titolo</a></h2>
    <p>La maestra chiede chi porta le merendine per la gita di domani</p>
  </article>
  <article>
    <a href="https://gruppoclasse.it/perle/1234">Leggi</a>
    <div class="content">Qualcuno sa se domani c'e' scuola?</div>
  </article>
  <article><p>corto</p></article>
  <article><p>Perla senza link ma con testo sufficiente</p></article>
</body></html>
"""


@pytest.fixture
def scraper():
    return PageScraper(url="https://gruppoclasse.it/perle/")


class TestExtract:
    def test_extracts_articles(self, scraper):
        items = scraper.extract(LISTING)
        assert [i.text for i in items] == [
            "La maestra chiede chi porta le merendine per la gita di domani",
            "Qualcuno sa se domani c'e' scuola?",
            "Perla senza link ma con testo sufficiente",
        ]

    def test_id_from_link_slug(self, scraper):
        items = scraper.extract(LISTING)
        assert items[0].id == "mamma-e-la-gita"
        assert items[0].source_url == "https://gruppoclasse.it/perle/mamma-e-la-gita/"
        assert items[1].id == "1234"

    def test_id_falls_back_to_content_hash(self, scraper):
        items = scraper.extract(LISTING)
        assert items[2].id == make_perla_id("Perla senza link ma con testo sufficiente")
        assert items[2].source_url is None

    def test_ids_stable_across_fetches(self, scraper):
        assert [i.id for i in scraper.extract(LISTING)] == [i.id for i in scraper.extract(LISTING)]

    def test_fallback_selector(self, scraper):
        html = '<div class="post"><p>Perla trovata dal secondo selettore</p></div>'
        items = scraper.extract(html)
        assert len(items) == 1

    def test_no_nodes(self, scraper):
        assert scraper.extract("<html><body><p>niente</p></body></html>") == []

    def test_text_truncated(self):
        scraper = PageScraper(url="https://gruppoclasse.it/", max_text_length=20)
        items = scraper.extract("<article><p>" + "parola " * 20 + "</p></article>")
        assert len(items[0].text) <= 20

    def test_duplicate_links_skipped(self, scraper):
        html = (
            '<article><a href="/p/uno">x</a><p>Prima versione della perla</p></article>'
            '<article><a href="/p/uno">x</a><p>Seconda versione della perla</p></article>'
        )
        items = scraper.extract(html)
        assert len(items) == 1
        assert items[0].text == "Prima versione della perla"


class TestFetch:
    @patch("pi_perle_stack.services.page_scraper.requests.get")
    def test_fetch(self, mock_get, scraper):
        mock_get.return_value = http_response(LISTING.encode("utf-8"), "text/html; charset=utf-8")

        items = scraper.fetch()

        assert len(items) == 3
        headers = mock_get.call_args.kwargs["headers"]
        assert "User-Agent" in headers

    @patch("pi_perle_stack.services.page_scraper.requests.get")
    def test_meta_charset_used_without_header_charset(self, mock_get, scraper):
        text = "Perché la maestra è già in gita?"
        page = (
            '<html><head><meta charset="utf-8"></head><body>'
            f'<article><a href="/perle/gita">x</a><p>{text}</p></article>'
            "</body></html>"
        )
        mock_get.return_value = http_response(page.encode("utf-8"), "text/html")

        items = scraper.fetch()

        assert items[0].text == text

    @patch("pi_perle_stack.services.page_scraper.requests.get")
    def test_header_charset_honoured(self, mock_get, scraper):
        text = "Così domani si esce prima"
        page = f"<article><p>{text}</p></article>"
        mock_get.return_value = http_response(
            page.encode("latin-1"), "text/html; charset=ISO-8859-1"
        )

        items = scraper.fetch()

        assert items[0].text == text
        assert items[0].id == make_perla_id(text)

    @patch("pi_perle_stack.services.page_scraper.requests.get")
    def test_timeout_is_source_unavailable(self, mock_get, scraper):
        mock_get.side_effect = requests.Timeout("slow")
        with pytest.raises(SourceUnavailable):
            scraper.fetch()
