"""
Scheduler — repeating timers and the fetch task registry.

Every fetcher is declared as a TaskSpec: what to run and which triggers
(startup, timer, state change, manual) re-arm it. The registry owns all the
asyncio tasks it spawns and tears them down on stop().
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Set
import logging

from core.state import StateStore, TrackerState

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
TaskFn = Callable[[], Awaitable[None]]


class Trigger(Enum):
    STARTUP = "STARTUP"
    TIMER = "TIMER"
    STATE_CHANGE = "STATE_CHANGE"
    MANUAL = "MANUAL"


@dataclass(frozen=True)
class TaskSpec:
    name: str
    run: TaskFn
    triggers: FrozenSet[Trigger]
    interval_sec: Optional[float] = None
    # Re-run when the selected value differs between old and new state
    watch: Optional[Callable[[TrackerState], Any]] = None

    def __post_init__(self):
        if Trigger.TIMER in self.triggers and not self.interval_sec:
            raise ValueError(f"{self.name}: TIMER trigger needs interval_sec")
        if Trigger.STATE_CHANGE in self.triggers and self.watch is None:
            raise ValueError(f"{self.name}: STATE_CHANGE trigger needs watch")


class RepeatingTask:
    """
    Calls `callback` every `interval` seconds until stopped.
    The first call happens one interval after start(). A failing callback
    is logged and the timer keeps going.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: TaskFn,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.name = name
        self.interval = interval
        self._callback = callback
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"timer:{self.name}")
        logger.info(f"[SCHED] {self.name}: every {self.interval:g}s")

    async def stop(self):
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"[SCHED] {self.name}: stopped")

    async def _loop(self):
        while True:
            await self._sleep(self.interval)
            try:
                await self._callback()
            except Exception as e:
                logger.error(f"[SCHED] {self.name}: tick error: {e}", exc_info=True)


class TaskRegistry:
    """Dispatches registered fetch tasks according to their triggers."""

    def __init__(self, store: StateStore, sleep: SleepFn = asyncio.sleep):
        self.store = store
        self._sleep = sleep
        self._specs: Dict[str, TaskSpec] = {}
        self._timers: List[RepeatingTask] = []
        self._pending: Set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._started = False

    def register(self, spec: TaskSpec):
        if spec.name in self._specs:
            raise ValueError(f"Task already registered: {spec.name}")
        self._specs[spec.name] = spec

    @property
    def names(self) -> List[str]:
        return list(self._specs)

    def start(self):
        """Arm timers and state-change watches. Calling it again is a no-op."""
        if self._started:
            return
        self._started = True
        for spec in self._specs.values():
            if Trigger.TIMER in spec.triggers:
                timer = RepeatingTask(spec.name, spec.interval_sec, spec.run, sleep=self._sleep)
                timer.start()
                self._timers.append(timer)
        self._unsubscribe = self.store.subscribe(self._on_state_change)

    async def run_startup(self):
        """Run STARTUP tasks one after another, in registration order."""
        for spec in self._specs.values():
            if Trigger.STARTUP in spec.triggers:
                logger.info(f"[BOOT] Running {spec.name}...")
                await self._run_guarded(spec)

    def trigger(self, name: str) -> asyncio.Task:
        """Manually fire a task. Returns the spawned asyncio task."""
        spec = self._specs.get(name)
        if spec is None:
            raise KeyError(f"Unknown task: {name}")
        if Trigger.MANUAL not in spec.triggers:
            raise ValueError(f"Task {name} is not manually triggerable")
        logger.info(f"[SCHED] {name}: manual trigger")
        return self._spawn(spec)

    async def stop(self):
        self._started = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        for timer in self._timers:
            await timer.stop()
        self._timers.clear()

        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

    def _on_state_change(self, old: TrackerState, new: TrackerState):
        for spec in self._specs.values():
            if Trigger.STATE_CHANGE not in spec.triggers:
                continue
            if spec.watch(old) != spec.watch(new):
                logger.info(f"[SCHED] {spec.name}: dependency changed")
                self._spawn(spec)

    def _spawn(self, spec: TaskSpec) -> asyncio.Task:
        task = asyncio.create_task(self._run_guarded(spec), name=f"task:{spec.name}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_guarded(self, spec: TaskSpec):
        try:
            await spec.run()
        except Exception as e:
            logger.error(f"[SCHED] {spec.name}: unhandled error: {e}", exc_info=True)
