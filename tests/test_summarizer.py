from chat_optimizer.summarizer import first_sentence, partition, summarize_messages


def test_first_sentence_skips_short_fragments():
    assert first_sentence("Ok. Sure! The deploy failed on staging. Retrying now.") == "The deploy failed on staging"
    assert first_sentence("Hi. Yes.") == ""


def test_summary_joins_first_five_sentences():
    messages = [{"role": "user", "content": f"Question number {i} about the cache. More detail."} for i in range(7)]
    summary = summarize_messages(messages)
    assert summary == ". ".join(f"Question number {i} about the cache" for i in range(5)) + "."


def test_summary_truncated_when_over_budget():
    long_sentence = "word " * 200
    messages = [{"role": "user", "content": long_sentence}]
    summary = summarize_messages(messages)
    assert len(summary) == 603
    assert summary.endswith("...")


def test_summary_of_messages_without_sentences_is_empty():
    assert summarize_messages([{"role": "user", "content": "ok"}]) == ""


def test_partition_keeps_system_and_recent_window():
    messages = [{"role": "system", "content": "rules"}] + [
        {"role": "user" if i % 2 else "assistant", "content": f"turn {i}"} for i in range(12)
    ]
    parts = partition(messages, max_recent=4)
    assert parts.system == [messages[0]]
    assert parts.recent == messages[-4:]
    assert parts.old == messages[1:-4]
