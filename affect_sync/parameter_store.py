"""Owner of the current affect-parameter vector.

Edits never mutate the stored record: each one builds a new frozen
AffectParameters and swaps it in whole, so any reader sees either the old
vector or the new one. Out-of-range values are rejected, not clamped.
"""

import logging

from affect_sync.models import AffectParameters, resolve_param_name

logger = logging.getLogger(__name__)


class ParameterStore:
    def __init__(self, initial=None):
        self._current = initial or AffectParameters()
        self._subscribers = []

    def get(self):
        return self._current

    def set(self, name, value):
        """Replace one field. Raises KeyError/ValueError and leaves the store untouched."""
        return self._commit(self._current.replace(name, value))

    def update(self, values):
        """Apply several edits as a single new record and a single notification."""
        changes = {resolve_param_name(name): value for name, value in values.items()}
        candidate = self._current
        for name, value in changes.items():
            candidate = candidate.replace(name, value)
        return self._commit(candidate)

    def subscribe(self, callback):
        self._subscribers.append(callback)

    def unsubscribe(self, callback):
        self._subscribers.remove(callback)

    def _commit(self, parameters):
        self._current = parameters
        logger.debug(f"Affect parameters now {parameters.to_payload()}")
        for callback in list(self._subscribers):
            callback(parameters)
        return parameters
