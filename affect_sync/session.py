"""A single chat session: the owned state behind one conversation.

Parameters have one writer (the store), the emotional state has one writer
(the sync controller), and the log is only appended to by the dispatcher.
All coroutines here are expected to run on the same event loop.
"""

from affect_sync import psi_client
from affect_sync.classifier import describe
from affect_sync.conversation_log import ConversationLog
from affect_sync.dispatcher import MessageDispatcher
from affect_sync.emotion_sync import EmotionSyncController
from affect_sync.models import ConnectivityStatus
from affect_sync.parameter_store import ParameterStore


class ChatSession:
    def __init__(self, compute=None, reply=None, parameters=None,
                 initial_state=None, fallback_text=None):
        self.store = ParameterStore(parameters)
        self.connectivity = ConnectivityStatus()
        self.log = ConversationLog()
        self.controller = EmotionSyncController(
            self.store,
            self.connectivity,
            compute or psi_client.compute_emotions_async,
            initial_state=initial_state,
        )
        self.dispatcher = MessageDispatcher(
            self.store,
            self.controller,
            self.log,
            self.connectivity,
            reply or psi_client.send_message_async,
            fallback_text=fallback_text,
        )
        self.store.subscribe(self.controller.on_parameters_changed)

    async def set_parameter(self, name, value):
        return self.store.set(name, value)

    async def update_parameters(self, values):
        return self.store.update(values)

    async def refresh(self):
        return await self.controller.refresh()

    async def submit(self, text, force=False):
        return await self.dispatcher.submit(text, force=force)

    async def settle(self):
        await self.controller.settle()

    def state_view(self):
        """Everything the UI needs to draw the header, sliders and input box."""
        state = self.controller.state
        return {
            "parameters": self.store.get().to_payload(),
            "emotional_state": state.to_dict(),
            "description": describe(state),
            "backend_error": self.connectivity.failed,
            "last_error": self.connectivity.last_error,
            "busy": self.dispatcher.busy,
            "can_submit": self.dispatcher.can_submit,
            "message_count": len(self.log),
        }
