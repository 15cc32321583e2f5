"""Keeps the current EmotionalState in line with the latest affect parameters.

Every parameter change issues one recomputation tagged with a sequence
number. Requests are never cancelled; when one completes, its result is only
applied if nothing issued later has already been applied. A slow response
to an old vector therefore cannot overwrite a newer one. Failures never
advance the applied number.
"""

import asyncio
import logging

from affect_sync.models import CollaboratorError, EmotionalState

logger = logging.getLogger(__name__)


class EmotionSyncController:
    def __init__(self, store, connectivity, compute, initial_state=None):
        self._store = store
        self._connectivity = connectivity
        self._compute = compute
        self._state = initial_state or EmotionalState()
        self._issued_seq = 0
        self._applied_seq = 0
        self._tasks = set()

    @property
    def state(self):
        return self._state

    @property
    def pending(self):
        """Number of recomputations still in flight."""
        return len(self._tasks)

    def snapshot(self):
        """Immutable copy of the current state, for stamping on messages."""
        return EmotionalState(anger=self._state.anger, sadness=self._state.sadness)

    def on_parameters_changed(self, parameters):
        """Store subscriber. Must be called from the running loop."""
        seq = self._issue()
        task = asyncio.get_running_loop().create_task(self._run(seq, parameters))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def refresh(self):
        """Recompute for the current parameters and wait for the outcome."""
        seq = self._issue()
        await self._run(seq, self._store.get())
        return self._state

    async def settle(self):
        """Wait until every outstanding recomputation has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _issue(self):
        self._issued_seq += 1
        return self._issued_seq

    async def _run(self, seq, parameters):
        logger.debug(f"Emotion request #{seq} issued")
        try:
            result = await self._compute(parameters)
        except CollaboratorError as e:
            self._settle_failure(seq, e)
        except Exception as e:
            logger.exception(f"Emotion request #{seq} raised unexpectedly")
            self._settle_failure(seq, e)
        else:
            self._settle_success(seq, result)

    def _is_stale(self, seq):
        if seq <= self._applied_seq:
            logger.debug(
                f"Discarding emotion result #{seq}; #{self._applied_seq} already applied"
            )
            return True
        return False

    def _settle_success(self, seq, state):
        if self._is_stale(seq):
            return
        self._applied_seq = seq
        self._state = state
        if self._connectivity.failed:
            logger.info("Emotion backend reachable again")
        self._connectivity.mark_ok()

    def _settle_failure(self, seq, error):
        if self._is_stale(seq):
            return
        logger.warning(f"Emotion request #{seq} failed, keeping previous state: {error}")
        self._connectivity.mark_failed(error)
