"""
KeepWise Client — Page Selection Message Contract
==================================================

The capture UI asks the page for its current selection with a one-shot
message and gets back either the text or an error:

    request:  {"type": "GET_SELECTION"}
    response: {"ok": true, "text": "..."} | {"ok": false, "error": "..."}

The transport (browser runtime messaging in the extension) is injected as a
SelectionSource: an async callable taking the request dict and returning the
response dict.
"""

from typing import Any, Awaitable, Callable, Dict, Literal, Optional

from pydantic import BaseModel, model_validator

SelectionSource = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


class SelectionRequest(BaseModel):
    type: Literal["GET_SELECTION"] = "GET_SELECTION"


class SelectionResponse(BaseModel):
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _text_when_ok(self) -> "SelectionResponse":
        if self.ok and self.text is None:
            # An empty selection is still a successful read
            self.text = ""
        return self
