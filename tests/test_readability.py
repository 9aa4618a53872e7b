# File: tests/test_readability.py
from contact_scout.parser.html_parser import parse_markup
from contact_scout.parser.readability import (
    score_candidates,
    score_element,
    select_main_content,
)
from contact_scout.rendering.renderer import rendered_markdown

PARAGRAPH = "Acme has been building reliable widgets for industrial customers since 1952. "


def article_page() -> str:
    paragraphs = "".join(f"<p>{PARAGRAPH} Paragraph {i}.</p>" for i in range(40))
    nav = "".join(f'<li><a href="/p{i}">Link {i}</a></li>' for i in range(10))
    return (
        "<html><body>"
        f'<div class="navigation"><ul>{nav}</ul></div>'
        f'<div id="story"><h2>Our history</h2>{paragraphs}</div>'
        '<div class="sidebar">Subscribe to the newsletter</div>'
        "</body></html>"
    )


def test_article_beats_navigation():
    soup = parse_markup(article_page())
    best = select_main_content(soup)
    assert best is not None
    assert best.get("id") == "story"


def test_navigation_is_penalized():
    soup = parse_markup(article_page())
    nav = soup.select_one(".navigation")
    story = soup.select_one("#story")
    assert score_element(nav)[0] < score_element(story)[0]


def test_short_pages_have_no_candidate():
    soup = parse_markup("<body><div><p>Hello</p></div></body>")
    assert score_candidates(soup) == []
    assert select_main_content(soup) is None


def test_score_counts_structure():
    soup = parse_markup("<div><h1>T</h1><p>a</p><p>b</p><ul><li>x</li></ul><img src='i.png'></div>")
    score, length = score_element(soup.div)
    # 2 paragraphs, 1 heading, 1 list, 1 image, no text points
    assert score == 2 * 2 + 3 + 2 + 1
    assert length == len("Tabx")


def test_rendered_markdown_uses_main_content():
    text = rendered_markdown(article_page(), "https://acme.test/")
    assert text.startswith("## Our history")
    assert "Paragraph 39." in text
    assert "Subscribe" not in text


def test_rendered_markdown_falls_back_to_body():
    text = rendered_markdown("<body><p>Phone: 555-0100</p><script>x()</script></body>", "https://acme.test/")
    assert text == "Phone: 555-0100"
