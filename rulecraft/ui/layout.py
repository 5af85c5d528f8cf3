from __future__ import annotations

from html import escape

APP_NAME = "Rulecraft"

_CSS = """
body { font-family: system-ui, sans-serif; margin: 0; color: #1E1F26; background: #FAFAFA; }
header { background: #1E1F26; padding: 0.8rem 2rem; }
header a { color: #FAFAFA; margin-right: 1.5rem; text-decoration: none; font-weight: 600; }
main { max-width: 860px; margin: 2rem auto; padding: 0 1rem; }
.rule-card { background: #FFFFFF; border: 1px solid #DDDDE3; border-radius: 10px;
  padding: 1rem; margin-bottom: 1rem; }
.rule-meta { color: #6B6B76; font-size: 0.9rem; }
.rule-content { white-space: pre-wrap; }
.ruling { background: #FFFFFF; border-left: 4px solid #4B6BFB; padding: 1rem;
  white-space: pre-wrap; }
.search-wrapper { position: relative; }
.search-suggestions { position: absolute; background: #FFFFFF; border: 1px solid #DDDDE3;
  width: 100%; display: none; z-index: 10; }
.search-suggestions.active { display: block; }
.suggestion-item { padding: 0.5rem; cursor: pointer; }
.suggestion-item:hover { background: #EEF1FF; }
input[type=search], textarea { width: 100%; padding: 0.5rem; font-size: 1rem; }
.suggestion-item.active { background: #EEF1FF; }
.no-results, .suggestion-view-all { padding: 0.5rem; }
mark { background: #FFE08A; padding: 0; }
.bookmark-btn { float: right; background: none; border: 1px solid #DDDDE3; border-radius: 16px;
  padding: 0.2rem 0.7rem; cursor: pointer; color: #6B6B76; }
.bookmark-btn.bookmarked { border-color: #4B6BFB; color: #4B6BFB; }
.bookmarks-modal { position: fixed; inset: 0; background: rgba(30, 31, 38, 0.6);
  display: flex; justify-content: center; align-items: center; z-index: 1000; }
.bookmarks-content { background: #FFFFFF; border-radius: 10px; padding: 1.5rem; width: 90%;
  max-width: 500px; max-height: 80vh; overflow-y: auto; }
.bookmarks-header { display: flex; justify-content: space-between; align-items: center; }
.bookmark-item { display: flex; justify-content: space-between; padding: 0.5rem 0;
  border-bottom: 1px solid #DDDDE3; }
.bookmarks-actions { display: flex; gap: 0.5rem; margin-top: 1rem; }
.close-btn { background: none; border: none; font-size: 1.5rem; cursor: pointer; }
"""


def esc(value: object) -> str:
    return escape(str(value), quote=True)


def page(title: str, body: str) -> str:
    """Wrap a body fragment in the shared page shell."""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{esc(title)} | {APP_NAME}</title>
  <style>{_CSS}</style>
</head>
<body>
  <header>
    <a href="/">{APP_NAME}</a>
    <a href="/rules">Rules</a>
    <a href="/search">Search</a>
    <a href="/scenario">Ask a question</a>
    <a href="#" id="bookmarks-link">Bookmarks</a>
  </header>
  <main>
{body}
  </main>
  <script src="/static/search.js"></script>
  <script src="/static/bookmarks.js"></script>
</body>
</html>
"""


def search_form(query: str = "") -> str:
    return f"""<form action="/search" method="get">
  <input type="search" name="q" id="search-input" class="search-input"
         placeholder="Search rules, e.g. grapple or opportunity attack"
         value="{esc(query)}" autocomplete="off">
</form>"""
