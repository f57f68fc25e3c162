"""
KeepWise — Abstract Summarizer Interface
=========================================

What:  Contract for anything that can condense highlighted text.
How:   Concrete summarizers implement `availability()` and `summarize()`.
Who:   Called by CaptureSession when the user asks for a summary.

The browser's on-device summarizer is one such implementation (outside this
repository); GeminiSummarizer is the one shipped here. CaptureSession only
sees this interface, so tests drive it with a stub.
"""

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel

Availability = Literal["available", "downloadable", "unavailable"]


class SummaryOptions(BaseModel):
    """
    How a summary should look.

    type:   key-points (bulleted list), tldr, teaser or headline
    length: short, medium or long
    format: markdown or plain-text
    """
    type: Literal["key-points", "tldr", "teaser", "headline"] = "key-points"
    length: Literal["short", "medium", "long"] = "medium"
    format: Literal["markdown", "plain-text"] = "markdown"


class Summarizer(ABC):
    """
    Abstract summarization capability.

    Contract:
        - availability() never raises
        - summarize() returns the summary text, or raises LLMServiceError /
          CircuitBreakerOpenError; provider-specific errors are wrapped
    """

    @abstractmethod
    async def availability(self) -> Availability:
        """
        Whether summarize() can be called now.

        `downloadable` means the capability exists but must fetch a model
        before first use; callers may still call summarize().
        """
        ...

    @abstractmethod
    async def summarize(self, text: str, options: SummaryOptions) -> str:
        ...
