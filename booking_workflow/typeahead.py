"""Search-as-you-type controller for the patient and doctor fields.

Each controller owns its field's debounce timer and a request sequence
number. Every edit, settle, selection or clear bumps the sequence; a lookup
only applies its result if the sequence is unchanged when it returns, so a
slow response for an old search term can never overwrite a newer one.
"""
from typing import Awaitable, Callable, List, Optional

from booking_workflow import config
from booking_workflow.debounce import Debouncer
from booking_workflow.logging_config import get_logger
from booking_workflow.models import CandidateOption
from booking_workflow.notifications import Notifier, Severity
from booking_workflow.services import describe_error
from booking_workflow.state import WorkflowState

logger = get_logger(__name__)

SearchFunction = Callable[[str], Awaitable[List[CandidateOption]]]


class TypeaheadController:
    """Input, suggestions, selection and loading flag of one search field."""

    def __init__(
        self,
        name: str,
        state: WorkflowState,
        search: SearchFunction,
        notifier: Notifier,
        min_length: Optional[int] = None,
        delay_ms: int = config.SEARCH_DEBOUNCE_MS,
        debouncer: Optional[Debouncer] = None,
    ):
        """
        Args:
            name: "patient" or "doctor"
            state: Workflow state holding the field
            search: Directory lookup coroutine
            notifier: Receives lookup failures
            min_length: Shortest trimmed term that triggers a lookup
                        (defaults to config.MIN_SEARCH_LENGTH[name])
            delay_ms: Debounce quiet period
            debouncer: Timer owner (a private one by default)
        """
        self.name = name
        self.state = state
        self.field = state.search_field(name)
        self.min_length = min_length if min_length is not None else config.MIN_SEARCH_LENGTH[name]
        self.delay_ms = delay_ms
        self._search = search
        self._notifier = notifier
        self._debouncer = debouncer or Debouncer()
        self._sequence = 0
        self._log = logger.bind(field=name)

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def lookup_pending(self) -> bool:
        """True while a debounced lookup is waiting to fire."""
        return self._debouncer.is_pending(self.name)

    def on_input_changed(self, text: str):
        """The user edited the input: any previous selection is void."""
        self._supersede()
        self.field.raw_input_text = text
        self.field.clear_selection()
        self.field.candidate_list = []
        self.field.is_loading = False
        self.state.changed(self.name)

    def on_input_settled(self, text: Optional[str] = None):
        """
        Schedule a lookup for the current input.

        A new search always voids the current selection. Terms shorter than
        min_length clear suggestions immediately without calling the directory.
        """
        raw = self.field.raw_input_text if text is None else text
        term = raw.strip()
        self._supersede()
        self.field.is_loading = False

        if len(term) < self.min_length:
            self.field.candidate_list = []
            self.field.clear_selection()
            self.state.changed(self.name)
            return

        if self.field.has_selection:
            self.field.clear_selection()
            self.state.changed(self.name)

        sequence = self._sequence
        self._debouncer.schedule(
            self.name, self.delay_ms, lambda: self._lookup(term, sequence)
        )

    def on_candidate_selected(self, entity_id: str) -> bool:
        """
        Fix the selection to a suggestion.

        Returns:
            False when entity_id is not in the current suggestions (stale click)
        """
        match = next(
            (c for c in self.field.candidate_list if c.id == entity_id), None
        )
        if match is None:
            self._log.debug("selection_ignored", entity_id=entity_id)
            return False

        self._supersede()
        self.field.selected_entity_id = match.id
        self.field.selected_entity_label = match.label
        self.field.raw_input_text = ""
        self.field.candidate_list = []
        self.field.is_loading = False
        self.state.changed(self.name)
        return True

    def clear(self):
        """Drop pending and in-flight lookups and empty the field."""
        self._supersede()
        self.field.clear()

    async def settle(self):
        """Wait for lookups already dispatched by the debounce timer."""
        await self._debouncer.drain()

    def _supersede(self):
        self._debouncer.cancel(self.name)
        self._sequence += 1

    def _is_stale(self, sequence: int) -> bool:
        return sequence != self._sequence

    async def _lookup(self, term: str, sequence: int):
        if self._is_stale(sequence):
            return

        self.field.is_loading = True
        self.state.changed(self.name)
        self._log.debug("lookup_started", term=term, sequence=sequence)

        try:
            results = await self._search(term)
        except Exception as e:
            if self._is_stale(sequence):
                self._log.debug("stale_lookup_failure_discarded", term=term, sequence=sequence)
                return
            self._log.warning("lookup_failed", term=term, error=str(e))
            self.field.candidate_list = []
            self.field.is_loading = False
            self.state.changed(self.name)
            self._notifier.notify("Error", describe_error(e), Severity.ERROR)
            return

        if self._is_stale(sequence):
            self._log.debug("stale_lookup_discarded", term=term, sequence=sequence)
            return

        self.field.candidate_list = list(results)
        self.field.is_loading = False
        self.state.changed(self.name)
        self._log.debug("lookup_applied", term=term, count=len(self.field.candidate_list))
