"""Request-level plumbing: connect deadline, retry, Ollama handler."""

from ollama_stream.llm.retry import RetryPolicy, with_retry
from ollama_stream.llm.timeout import guard

__all__ = ["RetryPolicy", "guard", "with_retry"]
