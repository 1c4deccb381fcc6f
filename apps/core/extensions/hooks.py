"""
Hook registrar: binds hook extensions to cron schedules and bus events
"""

import inspect
import logging
from typing import Any, Callable, Iterable, List, Mapping

from emitter import EventEmitter
from scheduler import TaskScheduler, validate_cron

from .loader import ModuleRegistry, get_module_default
from .types import (
    CRON_KEY_REGEX,
    Extension,
    ExtensionContext,
    ExtensionType,
    HookRegistration,
    OnEvent,
    RegisteredCronHook,
    RegisteredEventHook,
    RegisteredHook,
    Scheduled,
)

logger = logging.getLogger(__name__)


def normalize_hook_registrations(events: Any) -> List[HookRegistration]:
    """
    Turn what a hook's register function returned into registration values.

    Accepts an iterable of Scheduled/OnEvent, or a mapping of event name to
    handler where "cron(<expression>)" keys become Scheduled entries.
    """
    if events is None:
        return []

    if isinstance(events, Mapping):
        registrations: List[HookRegistration] = []
        for key, handler in events.items():
            if key.startswith("cron("):
                match = CRON_KEY_REGEX.match(key)
                registrations.append(Scheduled(cron=match.group(1).strip() if match else "", handler=handler))
            else:
                registrations.append(OnEvent(event=key, handler=handler))
        return registrations

    registrations = list(events)
    for registration in registrations:
        if not isinstance(registration, (Scheduled, OnEvent)):
            raise TypeError(f"Unsupported hook registration: {registration!r}")
    return registrations


class HookRegistrar:
    """
    Registers hook extensions.

    Cron handlers are wrapped so they only run while scheduling is enabled and
    never raise into the scheduler. Event handlers go on the bus unwrapped.
    """

    def __init__(
        self,
        emitter: EventEmitter,
        scheduler: TaskScheduler,
        modules: ModuleRegistry,
        context_factory: Callable[[Extension], ExtensionContext],
        is_schedule_enabled: Callable[[], bool],
    ):
        self.emitter = emitter
        self.scheduler = scheduler
        self.modules = modules
        self.context_factory = context_factory
        self.is_schedule_enabled = is_schedule_enabled

    def register_all(self, extensions: Iterable[Extension], records: List[RegisteredHook]) -> None:
        """Register every hook extension, isolating failures per extension"""
        for extension in extensions:
            if extension.type != ExtensionType.HOOK:
                continue

            try:
                self.register(extension, records)
            except Exception as e:
                logger.warning(f"Couldn't register hook \"{extension.name}\": {e}")

    def register(self, extension: Extension, records: List[RegisteredHook]) -> None:
        hook_path = str(extension.entry_path)
        registered_before = len(records)

        try:
            self._register(extension, hook_path, records)
        finally:
            # Nothing will unload it on teardown, so don't keep it cached
            if len(records) == registered_before:
                self.modules.unload(hook_path)

    def _register(self, extension: Extension, hook_path: str, records: List[RegisteredHook]) -> None:
        module = self.modules.load(hook_path)
        register = get_module_default(module)

        if not callable(register):
            raise TypeError(f"Hook \"{extension.name}\" does not export a register function")

        events = register(self.context_factory(extension))

        for registration in normalize_hook_registrations(events):
            if isinstance(registration, Scheduled):
                if not validate_cron(registration.cron):
                    logger.warning(
                        f"Couldn't register cron hook. Provided cron is invalid: {registration.cron}"
                    )
                    continue

                task = self.scheduler.schedule(
                    registration.cron,
                    self._cron_callback(extension, registration.handler),
                    name=f"{extension.name}:{registration.cron}",
                )
                records.append(RegisteredCronHook(path=hook_path, task=task))
            else:
                self.emitter.on(registration.event, registration.handler)
                records.append(
                    RegisteredEventHook(path=hook_path, event=registration.event, handler=registration.handler)
                )

    def _cron_callback(self, extension: Extension, handler: Callable[[], Any]):
        async def run_cron_hook() -> None:
            if not self.is_schedule_enabled():
                return
            try:
                result = handler()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in cron hook \"{extension.name}\": {e}")

        return run_cron_hook

    def unregister_all(self, records: List[RegisteredHook]) -> None:
        """Destroy cron tasks, unsubscribe handlers and evict hook modules"""
        for record in records:
            if isinstance(record, RegisteredCronHook):
                record.task.destroy()
            else:
                self.emitter.off(record.event, record.handler)

            self.modules.unload(record.path)

        records.clear()
