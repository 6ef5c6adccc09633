import pytest
from bs4 import BeautifulSoup

from conftest import article_html
from downloader.errors import ExtractionError
from downloader.extractor import (
    SelectorStrategy,
    extract_article,
    get_strategy,
    register_strategy,
    to_long_text,
)
from downloader.extractor.article_parser import DEFAULT_STRATEGY, _STRATEGIES
from downloader.models.article import Article


def test_extract_article_reads_metadata_and_body():
    article = extract_article(
        article_html(title="Test Article Title", author="Jane Doe", body="This is a paragraph."),
        "https://mp.weixin.qq.com/s/abc",
        placeholder_date="2026-01-09",
    )

    assert isinstance(article, Article)
    assert article.title == "Test Article Title"
    assert article.author == "Jane Doe"
    assert article.date == "2026-01-09"
    assert "This is a paragraph." in article.content


def test_extract_article_keeps_structure_and_drops_noise():
    article = extract_article(article_html())

    assert "## Section" in article.content
    assert "first point" in article.content
    assert "second point" in article.content
    assert "should not appear" not in article.content
    assert "color: red" not in article.content


def test_missing_title_is_empty_not_an_error():
    html = "<html><body><div id='js_content'><p>Body only</p></div></body></html>"

    article = extract_article(html)

    assert article.title == ""
    assert article.author == ""
    assert "Body only" in article.content


def test_article_is_immutable():
    article = extract_article(article_html())
    with pytest.raises(Exception):
        article.title = "changed"


@pytest.mark.parametrize("markup", ["", "   \n", b""])
def test_empty_markup_raises(markup):
    with pytest.raises(ExtractionError):
        extract_article(markup)


def test_markup_without_elements_raises():
    with pytest.raises(ExtractionError):
        extract_article("just some text, no tags at all")


def test_to_long_text_does_not_modify_tree():
    soup = BeautifulSoup("<html><body><h1>Heading</h1><p>Para</p></body></html>", "html.parser")
    before = str(soup)

    text = to_long_text(soup.body)

    assert text.startswith("# Heading")
    assert "Para" in text
    assert str(soup) == before


def test_strategy_lookup_falls_back_to_default():
    assert get_strategy(None) is DEFAULT_STRATEGY
    assert get_strategy("unknown.example.com") is DEFAULT_STRATEGY


def test_registered_strategy_is_used_for_its_host():
    custom = SelectorStrategy("h2.headline", "span.byline")
    register_strategy("news.example.com", custom)
    try:
        html = (
            "<html><body><h2 class='headline'> Custom </h2>"
            "<span class='byline'>Someone</span><p>Text</p></body></html>"
        )
        article = extract_article(html, "https://news.example.com/post/1")
        assert get_strategy("NEWS.example.com") is custom
        assert article.title == "Custom"
        assert article.author == "Someone"
    finally:
        _STRATEGIES.pop("news.example.com", None)


def test_failing_strategy_raises_extraction_error():
    register_strategy("broken.example.com", SelectorStrategy("h2[", "span"))
    try:
        with pytest.raises(ExtractionError):
            extract_article(article_html(), "https://broken.example.com/post/1")
    finally:
        _STRATEGIES.pop("broken.example.com", None)
