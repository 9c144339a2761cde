import asyncio
import json
import random
import textwrap
import time

from chat_optimizer import ChatOptimizer


def _build_synthetic_conversation() -> list[dict]:
    user_chatter = [
        "We need a plan to scale the ingestion pipeline before the next release.",
        "I'll audit the tools and surface blockers as a report.",
        "What were the previous diagnostics on the payment queue?",
        "The earlier logs showed intermittent disk pressure.",
    ]
    messages = [{"role": "system", "content": "You are a senior backend engineer. Answer with concrete steps."}]
    for idx, line in enumerate(user_chatter * 6):
        role = "user" if idx % 2 == 0 else "assistant"
        messages.append({"role": role, "content": f"{line} Note {random.randint(1, 100)}."})
    return messages


def _build_message() -> str:
    code = "\n".join(
        textwrap.dedent(
            f"""
            def process_{i}(event):
                if event.retry_count > MAX:
                    logger.error("Retry exceeded")
                    return False
                return scheduler.enqueue(event)
            """
        ).strip()
        for i in range(40)
    )
    payload = json.dumps({"events": [{"id": i, "status": "failed", "node": f"node-{i % 5}"} for i in range(60)]})
    return f"The queue is stuck.\n\n\n\n```python\n{code}\n```\n\nLast response: {payload}"


def _timed(label: str, fn):
    start = time.perf_counter()
    result = fn()
    latency = (time.perf_counter() - start) * 1000
    print(f"  {label:<10} {latency:7.2f} ms  {result.original_tokens:>6} -> {result.optimized_tokens:<6} "
          f"({result.savings_percent:.1f}% saved, {result.strategy})")
    return result


def run():
    optimizer = ChatOptimizer()
    print("Benchmark results:")
    _timed("prompt", lambda: optimizer.optimize_prompt(
        "You review Python code for performance problems in a large Django monolith and suggest fixes."
    ))
    _timed("message", lambda: optimizer.optimize_message(_build_message()))
    _timed("session", lambda: optimizer.optimize_session(_build_synthetic_conversation(), max_recent=6))
    _timed("file", lambda: asyncio.run(
        optimizer.optimize_file_attachment("timestamp,value\n" * 5000, "metrics.csv", "text/csv")
    ))
    print(f"  Stats: {optimizer.get_stats().to_dict()}")


if __name__ == "__main__":
    run()
