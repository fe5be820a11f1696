# urlcompare/services/catalog.py
import asyncio
import logging
from typing import Optional

import httpx

from urlcompare.core.baseline import (
    CatalogLoadFailed,
    DatesLoaded,
    Effect,
    Event,
    FetchDates,
    FetchRuns,
    FetchServices,
    RunsLoaded,
    ServicesLoaded,
    WorkflowState,
    transition,
)
from urlcompare.exceptions import CatalogLoadError
from urlcompare.services import http_client

logger = logging.getLogger(__name__)


class BaselineController:
    """Applies workflow events and carries out the catalog fetches they call for."""

    def __init__(self, client: httpx.AsyncClient, state: Optional[WorkflowState] = None):
        self.client = client
        self.state = state or WorkflowState()

    async def dispatch(self, event: Event) -> WorkflowState:
        self.state, effects = transition(self.state, event)
        if effects:
            await asyncio.gather(*(self._perform(effect) for effect in effects))
        return self.state

    async def _perform(self, effect: Effect) -> None:
        try:
            if isinstance(effect, FetchServices):
                services = await http_client.list_services(self.client)
                follow_up = ServicesLoaded(effect.stamp, tuple(services))
            elif isinstance(effect, FetchDates):
                dates = await http_client.list_dates(self.client, effect.service)
                follow_up = DatesLoaded(effect.stamp, tuple(dates))
            elif isinstance(effect, FetchRuns):
                runs = await http_client.list_runs(self.client, effect.service, effect.date)
                follow_up = RunsLoaded(effect.stamp, tuple(runs))
            else:
                raise TypeError(f"Unknown workflow effect: {effect!r}")
        except CatalogLoadError as e:
            logger.error(f"Error loading baseline catalog: {e}")
            follow_up = CatalogLoadFailed(effect.stamp)
        await self.dispatch(follow_up)
