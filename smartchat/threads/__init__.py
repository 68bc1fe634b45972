"""Thread-link lifecycle: URL rules, the thread-line codec, and per-codeblock sessions."""
