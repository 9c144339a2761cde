from chat_optimizer.shrinker import collapse_whitespace, compact_text, dedupe_lines


def test_collapse_whitespace_limits_newlines_and_spaces():
    content = "  first   line\n\n\n\nsecond  line  "
    assert collapse_whitespace(content) == "first line\n\nsecond line"


def test_dedupe_drops_repeated_long_lines_case_insensitively():
    content = "This sentence is long enough to count.\nother\nTHIS SENTENCE IS LONG ENOUGH TO COUNT.  "
    assert dedupe_lines(content) == "This sentence is long enough to count.\nother"


def test_dedupe_keeps_short_repeated_lines():
    content = "- item\n- item\n}\n}"
    assert dedupe_lines(content) == content


def test_compact_text_runs_whitespace_then_dedupe():
    content = "Repeated status line goes here\n\n\n\nRepeated  status line goes here\n- ok\n- ok"
    assert compact_text(content) == "Repeated status line goes here\n\n- ok\n- ok"
