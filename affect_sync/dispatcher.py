"""One chat round-trip per submission.

The user's message goes into the log before the backend is called. The
assistant entry follows once the call resolves: the reply on success, the
fallback text on failure. Both carry the emotional snapshot taken when the
submission started. A busy flag keeps at most one submission in flight;
extra attempts are dropped, not queued.
"""

import logging

from affect_sync.models import CollaboratorError, Message
from config import Config

logger = logging.getLogger(__name__)


class MessageDispatcher:
    def __init__(self, store, controller, log, connectivity, reply,
                 fallback_text=None):
        self._store = store
        self._controller = controller
        self._log = log
        self._connectivity = connectivity
        self._reply = reply
        self.fallback_text = fallback_text or Config.FALLBACK_REPLY
        self._busy = False

    @property
    def busy(self):
        return self._busy

    @property
    def can_submit(self):
        return not self._busy and not self._connectivity.failed

    async def submit(self, text, force=False):
        """Run one round-trip. Returns the assistant Message, or None if rejected.

        `force` lets a submission through while the backend is marked offline,
        which is how the user retries after an outage.
        """
        if not text or not text.strip():
            return None
        if self._busy:
            logger.debug("Submission rejected: another message is in flight")
            return None
        if self._connectivity.failed and not force:
            logger.debug("Submission rejected: backend marked offline")
            return None

        self._busy = True
        try:
            parameters = self._store.get()
            snapshot = self._controller.snapshot()
            self._log.append(Message(text=text, is_user=True))

            try:
                reply = await self._reply(text, parameters)
            except CollaboratorError as e:
                return self._fail(e, snapshot)
            except Exception as e:
                logger.exception("Reply request raised unexpectedly")
                return self._fail(e, snapshot)

            self._connectivity.mark_ok()
            answer = Message(text=reply, is_user=False, emotional_state=snapshot)
            self._log.append(answer)
            return answer
        finally:
            self._busy = False

    def _fail(self, error, snapshot):
        logger.warning(f"Reply request failed, sending fallback: {error}")
        self._connectivity.mark_failed(error)
        answer = Message(text=self.fallback_text, is_user=False, emotional_state=snapshot)
        self._log.append(answer)
        return answer
