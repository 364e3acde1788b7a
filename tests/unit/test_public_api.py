from __future__ import annotations

import gitscribe
import gitscribe.parsers
import gitscribe.services


def test_top_level_exports_resolve() -> None:
    for module in (gitscribe, gitscribe.parsers, gitscribe.services):
        missing = [name for name in module.__all__ if not hasattr(module, name)]
        assert missing == [], module.__name__


def test_parse_from_top_level() -> None:
    report = gitscribe.parse_status_v2("# branch.head main\n? new.txt\n")

    assert report.branch == "main"
    assert report.files[0].is_untracked
