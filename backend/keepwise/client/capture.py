"""
KeepWise Client — Capture & Summarize Session
==============================================

What:  View-model behind the capture panel: read the page selection,
       summarize it, show the result, and save the note.
How:   One CaptureSession per panel holds all UI state (input text, summary,
       progress and save messages) and moves through an explicit state
       machine. Collaborators are injected: summarizer, NotesClient,
       selection source and current-page-URL provider.

State machine:
    idle ──grab/set_text──▶ selection-loaded ──summarize──▶ summarizing
    summarizing ──ok──▶ summary-ready        summarizing ──error──▶ idle
    summary-ready ──save──▶ saving ──▶ saved | save-failed
    saved / save-failed ──save──▶ saving (saving again is allowed)
    any ──reset──▶ idle
"""

import enum
import html
import logging
import re
from typing import Awaitable, Callable, Optional

from keepwise.client.api_client import (
    ApiError,
    AuthenticationRequiredError,
    NotesClient,
    ServerUnreachableError,
)
from keepwise.client.selection import SelectionRequest, SelectionResponse, SelectionSource
from keepwise.schemas.note import NoteId
from keepwise.services.summarizer_base import Summarizer, SummaryOptions

logger = logging.getLogger(__name__)

UrlProvider = Callable[[], Awaitable[str]]

_BULLET = re.compile(r"^\s*[-*]\s+", re.MULTILINE)


def render_summary(text: str, markdown: bool) -> str:
    """
    Render a summary for display.

    Plain text is returned unchanged. Markdown is HTML-escaped, leading
    "-" / "*" bullets become "• ", and newlines become <br>.
    """
    if not markdown:
        return text
    escaped = html.escape(text, quote=False)
    return _BULLET.sub("• ", escaped).replace("\n", "<br>")


class CaptureState(str, enum.Enum):
    IDLE = "idle"
    SELECTION_LOADED = "selection-loaded"
    SUMMARIZING = "summarizing"
    SUMMARY_READY = "summary-ready"
    SAVING = "saving"
    SAVED = "saved"
    SAVE_FAILED = "save-failed"


_SAVABLE = {CaptureState.SUMMARY_READY, CaptureState.SAVED, CaptureState.SAVE_FAILED}


class CaptureSession:
    """
    Attributes exposed to the UI:
        state:            current CaptureState
        text:             the input text (selection or manual edit)
        summary:          raw summary text as returned by the summarizer
        rendered_summary: summary prepared for display (see render_summary)
        progress:         progress / error line under the summarize button
        save_status:      result line of the last save attempt
        last_note_id:     id of the last note saved
    """

    def __init__(
        self,
        summarizer: Summarizer,
        notes_client: NotesClient,
        selection_source: SelectionSource,
        url_provider: UrlProvider,
        options: Optional[SummaryOptions] = None,
    ):
        self._summarizer = summarizer
        self._notes = notes_client
        self._selection_source = selection_source
        self._url_provider = url_provider
        self.options = options or SummaryOptions()
        self.reset()

    def reset(self) -> None:
        self.state = CaptureState.IDLE
        self.text = ""
        self.summary = ""
        self.rendered_summary = ""
        self.progress = ""
        self.save_status = ""
        self.last_note_id: Optional[NoteId] = None

    def _clear_summary(self) -> None:
        self.summary = ""
        self.rendered_summary = ""
        self.save_status = ""

    # ── Input ─────────────────────────────────────────────────────────────

    async def grab_selection(self) -> bool:
        """Load the page selection into the input. Returns True on success."""
        try:
            raw = await self._selection_source(SelectionRequest().model_dump())
            response = SelectionResponse.model_validate(raw)
        except Exception as e:
            logger.warning("Reading selection failed: %s", str(e))
            self.progress = "Failed to read selection."
            return False

        if not response.ok:
            logger.warning("Page reported selection error: %s", response.error)
            self.progress = "Failed to read selection."
            return False

        self.set_text(response.text or "")
        return True

    def set_text(self, text: str) -> None:
        """Replace the input text; any previous summary no longer applies."""
        self.text = text
        self._clear_summary()
        self.progress = ""
        self.state = CaptureState.SELECTION_LOADED if text.strip() else CaptureState.IDLE

    # ── Summarize ─────────────────────────────────────────────────────────

    @property
    def can_save(self) -> bool:
        return bool(self.summary.strip()) and self.state in _SAVABLE

    async def summarize(self, options: Optional[SummaryOptions] = None) -> Optional[str]:
        """
        Summarize the input text. Returns the summary, or None on failure.

        Failures never propagate: they show "Failed to summarize." and
        return the session to idle with saving disabled.
        """
        if options is not None:
            self.options = options

        text = self.text.strip()
        if not text:
            self.progress = "No text to summarize."
            return None

        self._clear_summary()
        self.state = CaptureState.SUMMARIZING
        self.progress = "Summarizing…"

        try:
            result = await self._summarizer.summarize(text, self.options)
        except Exception as e:
            logger.warning("Summarization failed: %s", str(e))
            result = ""

        if not result or not result.strip():
            self.progress = "Failed to summarize."
            self.state = CaptureState.IDLE
            return None

        self.summary = result
        self.rendered_summary = render_summary(result, self.options.format == "markdown")
        self.progress = ""
        self.state = CaptureState.SUMMARY_READY
        return result

    # ── Save ──────────────────────────────────────────────────────────────

    async def _page_url(self) -> str:
        try:
            return (await self._url_provider()) or ""
        except Exception as e:
            logger.warning("Reading page URL failed: %s", str(e))
            return ""

    async def save(self) -> bool:
        """Save the current text and summary as a note. Returns True on success."""
        if not self.can_save:
            self.save_status = "Please summarize text first"
            return False

        url = await self._page_url()
        if not url:
            self.save_status = "Unable to get page URL"
            return False

        self.state = CaptureState.SAVING
        self.save_status = "Saving..."
        server = self._notes.server_url

        try:
            note_id = await self._notes.create_note(url, self.text.strip(), self.summary.strip())
        except AuthenticationRequiredError:
            self.state = CaptureState.SAVE_FAILED
            self.save_status = f"Please sign in at {server} to save notes"
            return False
        except ServerUnreachableError:
            self.state = CaptureState.SAVE_FAILED
            self.save_status = f"Unable to connect to server. Make sure it's running on {server}"
            return False
        except ApiError as e:
            logger.warning("Saving note failed: %s", e.message)
            self.state = CaptureState.SAVE_FAILED
            self.save_status = "Failed to save note"
            return False

        self.last_note_id = note_id
        self.state = CaptureState.SAVED
        self.save_status = f"Note saved successfully! You can view it at {server}"
        return True
