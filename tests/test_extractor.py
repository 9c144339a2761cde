import json
import time

from chat_optimizer.cache import ContentStore
from chat_optimizer.extractor import ContentExtractor, find_brace_regions, find_fenced_blocks


def _big_code(lines: int = 600) -> str:
    return "\n".join(f"const value{i} = compute({i});" for i in range(lines))


def _big_json(items: int = 80) -> str:
    return json.dumps({"rows": [{"id": i, "label": f"row-{i}", "note": "a } inside a string"} for i in range(items)]})


def test_find_fenced_blocks_tracks_language_and_bounds():
    lines = ["intro", "```python", "print(1)", "```", "middle", "```", "plain", "```"]
    blocks = list(find_fenced_blocks(lines))
    assert [(b.start_line, b.end_line, b.language, b.body) for b in blocks] == [
        (1, 3, "python", "print(1)"),
        (5, 7, "text", "plain"),
    ]


def test_unclosed_fence_is_ignored():
    assert list(find_fenced_blocks(["```js", "let a = 1;"])) == []


def test_large_code_block_replaced_with_marker_and_stored():
    store = ContentStore()
    extractor = ContentExtractor(store)
    code = _big_code()
    message = f"Please look at this:\n```javascript\n{code}\n```\nThanks!"

    result = extractor.extract_code_blocks(message)

    lines = result.content.split("\n")
    assert lines[0] == "Please look at this:"
    assert lines[1].startswith("[Code: javascript (")
    assert lines[2] == "Thanks!"
    assert len(lines) == 3
    content_id = result.extracted_ids[0]
    assert lines[1].endswith(f"- ID: {content_id}]")
    assert store.get(content_id) == code
    assert result.savings > 0


def test_small_code_block_left_inline():
    extractor = ContentExtractor(ContentStore())
    message = "```python\nprint('hi')\n```"
    result = extractor.extract_code_blocks(message)
    assert result.content == message
    assert not result.fired


def test_brace_regions_are_balanced_and_respect_strings():
    payload = _big_json()
    text = f"prefix {{ unmatched brace then data: {payload} and a tail"
    start = text.index(payload)
    assert list(find_brace_regions(text)) == [(start, start + len(payload))]


def test_large_json_block_replaced_with_marker():
    store = ContentStore()
    extractor = ContentExtractor(store)
    payload = _big_json()
    message = f"Here is the API response: {payload} -- what is wrong?"

    result = extractor.extract_json_blocks(message)

    assert result.fired
    assert result.content.startswith("Here is the API response: [JSON Data (")
    assert result.content.endswith("] -- what is wrong?")
    assert store.get(result.extracted_ids[0]) == payload


def test_short_json_left_inline():
    extractor = ContentExtractor(ContentStore())
    message = 'config: {"debug": true}'
    assert extractor.extract_json_blocks(message).content == message


def test_oversized_block_stays_inline_without_raising():
    store = ContentStore(max_item_bytes=1024)
    extractor = ContentExtractor(store)
    message = f"```\n{_big_code()}\n```"
    result = extractor.extract_code_blocks(message)
    assert result.content == message
    assert len(store) == 0


def test_balanced_region_inside_unclosed_brace_is_found():
    payload = _big_json()
    text = "{ outer never closes " + payload + " trailing {"
    start = text.index(payload)
    assert list(find_brace_regions(text)) == [(start, start + len(payload))]


def test_many_unmatched_braces_scan_in_linear_time():
    started = time.perf_counter()
    assert list(find_brace_regions("{" * 200_000)) == []
    assert time.perf_counter() - started < 2.0
