"""External process execution with hard timeouts and streamed output."""
from __future__ import annotations

from tremor.process.runner import OutputCallback, ProcessRunner

__all__ = ["OutputCallback", "ProcessRunner"]
