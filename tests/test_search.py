from pathlib import Path

from skillshelf.core import SkillIndex, tokenize
from skillshelf.skills import SkillDocument


def _skill(name: str, description: str, body: str = "") -> SkillDocument:
    return SkillDocument(name=name, path=Path(name) / "SKILL.md", description=description, content=body, body=body)


SKILLS = [
    _skill("oauth-setup", "Configure OAuth 2.0 authorization with PKCE.", "Exchange the authorization code for an access token."),
    _skill("webhook-handling", "Receive and verify webhook deliveries.", "Check the signature and store the event id for idempotency."),
    _skill("sql-generation", "Generate SQL queries from questions.", "Inspect the schema before writing a query."),
]


def test_tokenize_drops_stop_words_and_short_tokens() -> None:
    assert tokenize("Use the OAuth 2.0 flow, a PKCE-based one") == ["oauth", "flow", "pkce", "based", "one"]


def test_search_ranks_best_match_first() -> None:
    index = SkillIndex().build(SKILLS)

    results = index.search("access token for oauth")

    assert len(index) == 3
    assert results[0][0].name == "oauth-setup"
    assert 0 < results[0][1] <= 1.0


def test_search_uses_body_text() -> None:
    index = SkillIndex().build(SKILLS)
    names = [skill.name for skill, _ in index.search("idempotency signature")]
    assert names == ["webhook-handling"]


def test_search_limits_and_thresholds() -> None:
    index = SkillIndex().build(SKILLS)

    assert index.search("query schema", k=0) == []
    assert len(index.search("the", k=5)) == 0
    assert index.search("nothing matches xyz") == []
    assert index.search("oauth", min_score=1.01) == []


def test_empty_index_returns_nothing() -> None:
    index = SkillIndex().build([])
    assert len(index) == 0
    assert index.search("oauth") == []
