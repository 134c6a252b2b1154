from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class Message:
    """One published chat line; lives only while it is in transit."""

    sender: str
    content: str
