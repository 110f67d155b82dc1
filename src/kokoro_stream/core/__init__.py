"""
Core Infrastructure for kokoro-stream.

    - config.py: Configuration loading and validation
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics per engine
"""
