"""
Resource pipeline.

Each resource owns ordered PRE and POST plugin lists per HTTP method plus a
core handler per method. ``run`` executes PRE plugins, the handler and then
POST plugins; the first failure skips every remaining stage and is reported
once as a PipelineResult.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from ..models import PipelineResult
from .events import Event, EventBus, Handler
from .exceptions import ImageServerError, MethodNotAllowedError

logger = logging.getLogger("image_server.pipeline")

CoreHandler = Callable[[Event], None]

# HEAD requests share the GET plugin lists.
METHOD_ALIASES = {"HEAD": "GET"}


class Phase(str, Enum):
    PRE = "pre"
    POST = "post"


class ResourcePipeline:
    """
    Plugin chain for one resource type (e.g. ``image``).

    Plugin lists are stored as EventBus subscriptions named
    ``<resource>.<phase>.<method>``, so ordering follows the bus rules.
    """

    def __init__(
        self,
        resource_name: str,
        handlers: Mapping[str, CoreHandler],
        bus: Optional[EventBus] = None,
    ):
        self.resource_name = resource_name
        self._handlers: Dict[str, CoreHandler] = {
            method.upper(): handler for method, handler in handlers.items()
        }
        self.bus = bus if bus is not None else EventBus()

    @property
    def allowed_methods(self) -> Tuple[str, ...]:
        return tuple(sorted(self._handlers))

    def event_name(self, phase: Phase, method: str) -> str:
        method = method.upper()
        method = METHOD_ALIASES.get(method, method)
        return f"{self.resource_name}.{Phase(phase).value}.{method.lower()}"

    def register_plugin(
        self, phase: Phase, method: str, priority: int, plugin: Handler
    ) -> "ResourcePipeline":
        self.bus.subscribe(self.event_name(phase, method), plugin, priority)
        return self

    def register_plugins(
        self, registrations: Iterable[Tuple[Phase, str, int, Handler]]
    ) -> "ResourcePipeline":
        for phase, method, priority, plugin in registrations:
            self.register_plugin(phase, method, priority, plugin)
        return self

    def plugins(self, phase: Phase, method: str) -> Tuple[Handler, ...]:
        return self.bus.listeners(self.event_name(phase, method))

    def run(self, method: str, event: Event) -> PipelineResult:
        """
        Run the full chain for ``method``.

        Returns a successful result carrying the response status, or the
        first failure with the stage it happened in.
        """
        method = method.upper()
        stage = "dispatch"

        try:
            handler = self._handlers.get(method)
            if handler is None:
                raise MethodNotAllowedError(self.resource_name, method)

            stage = Phase.PRE.value
            self.bus.dispatch(self.event_name(Phase.PRE, method), event)

            stage = "handler"
            handler(event)

            stage = Phase.POST.value
            self.bus.dispatch(self.event_name(Phase.POST, method), event)

        except ImageServerError as e:
            log = logger.error if e.status_code >= 500 else logger.info
            log(
                f"{event.name} aborted in {stage}: {e}",
                extra={"event": event.name, "stage": stage, "kind": e.kind},
            )
            return PipelineResult(
                success=False,
                status_code=e.status_code,
                error=e.message,
                error_kind=e.kind,
                stage=stage,
            )
        except Exception as e:
            logger.exception(f"Unexpected error in {event.name} ({stage}): {e}")
            return PipelineResult(
                success=False,
                status_code=500,
                error=f"Internal Processing Error: {str(e)}",
                error_kind="internal_error",
                stage=stage,
            )

        return PipelineResult(success=True, status_code=event.response.status_code)
