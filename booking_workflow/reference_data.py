"""Loads the service and visit-reason picklists."""
import asyncio

from booking_workflow.logging_config import get_logger
from booking_workflow.notifications import Notifier, Severity
from booking_workflow.services import ReferenceData, describe_error
from booking_workflow.state import WorkflowState

logger = get_logger(__name__)


class ReferenceDataLoader:
    """Fetches both picklists concurrently; one failing never blocks the other."""

    def __init__(self, state: WorkflowState, reference_data: ReferenceData, notifier: Notifier):
        self.state = state
        self.reference_data = reference_data
        self.notifier = notifier

    async def load(self):
        await asyncio.gather(self.load_services(), self.load_reasons())

    async def load_services(self):
        self.state.is_service_loading = True
        self.state.changed("reference")
        try:
            options = await self.reference_data.list_services()
        except Exception as e:
            logger.warning("services_load_failed", error=str(e))
            self.state.service_options = []
            self.notifier.notify("Error", describe_error(e), Severity.ERROR)
        else:
            self.state.service_options = list(options)
            logger.debug("services_loaded", count=len(self.state.service_options))
        finally:
            self.state.is_service_loading = False
            self.state.changed("reference")

    async def load_reasons(self):
        self.state.is_reason_loading = True
        self.state.changed("reference")
        try:
            options = await self.reference_data.list_reasons()
        except Exception as e:
            logger.warning("reasons_load_failed", error=str(e))
            self.state.reason_options = []
            self.notifier.notify("Error", describe_error(e), Severity.ERROR)
        else:
            self.state.reason_options = list(options)
            logger.debug("reasons_loaded", count=len(self.state.reason_options))
        finally:
            self.state.is_reason_loading = False
            self.state.changed("reference")
