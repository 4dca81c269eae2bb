"""Shared HTML builders for the chapter pipeline tests."""

from __future__ import annotations

import pytest

PARAGRAPH = (
    "Klein sat by the window of his rented room in Tingen and read the old "
    "notebook again, line by line."
)


def chapter_html(
    number: int = 1,
    title: str = "Crimson",
    paragraphs: int = 8,
    container: str = '<div id="chr-content">{body}</div>',
    extra: str = "",
) -> str:
    """A realistic chapter page; ``paragraphs`` lines of ~100 chars each."""
    body = "".join(f"<p>{PARAGRAPH}</p>" for _ in range(paragraphs))
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>Chapter {number} {title} - Lord of the Mysteries - NovelBin</title>"
        "</head><body>"
        f'<h3 class="chr-title"><span>Chapter {number}: {title}</span></h3>'
        f"{container.format(body=body)}{extra}"
        "</body></html>"
    )


CHALLENGE_HTML = """\
<!DOCTYPE html>
<html><head><title>Just a moment...</title></head>
<body>
  <div id="challenge-running">Checking your browser before accessing novelbin.com.</div>
  <form id="challenge-form" action="/cdn-cgi/challenge"></form>
</body></html>
"""


@pytest.fixture()
def make_chapter():
    return chapter_html
