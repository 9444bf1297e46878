# ============================================================
#   CITEMARK — HOST LIFECYCLE
# ============================================================
#
# Two explicit steps instead of a readiness callback:
#
#   pane = TaskPane()
#   if pane.initialize(HostInfo(HostType.WORD)) is ReadyState.READY:
#       pane.register_trigger(action)
#       pane.trigger()

import logging
import os
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class HostType(str, Enum):
    WORD = "Word"
    EXCEL = "Excel"
    POWERPOINT = "PowerPoint"
    UNKNOWN = "Unknown"


class ReadyState(str, Enum):
    READY = "ready"
    NOT_APPLICABLE = "not_applicable"


class HostNotReadyError(RuntimeError):
    """A trigger was registered or fired before the host was ready."""


@dataclass(frozen=True)
class HostInfo:
    host: HostType


_HOST_BY_EXTENSION = {
    ".docx": HostType.WORD,
    ".xlsx": HostType.EXCEL,
    ".pptx": HostType.POWERPOINT,
}


def host_info_for_upload(filename: str | None) -> HostInfo:
    """
    Work out which application an uploaded file belongs to from its
    extension. Anything we don't recognise is HostType.UNKNOWN.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    return HostInfo(_HOST_BY_EXTENSION.get(ext, HostType.UNKNOWN))


class ActionEvent:
    """Handed to a trigger action; the action (or the pane) marks it completed."""

    def __init__(self):
        self.is_completed = False

    def completed(self):
        self.is_completed = True


class TaskPane:
    expected_host = HostType.WORD

    def __init__(self):
        self.state: ReadyState | None = None
        self.host: HostInfo | None = None
        self._action = None
        self.last_event: ActionEvent | None = None

    def initialize(self, info: HostInfo) -> ReadyState:
        self.host = info
        if info.host == self.expected_host:
            self.state = ReadyState.READY
        else:
            self.state = ReadyState.NOT_APPLICABLE
            logger.info("Host %s is not %s; staying inactive", info.host.value, self.expected_host.value)
        return self.state

    @property
    def is_ready(self) -> bool:
        return self.state is ReadyState.READY

    def register_trigger(self, action):
        """`action` takes no arguments; its return value is passed back by trigger()."""
        if not self.is_ready:
            raise HostNotReadyError("Cannot register a trigger before the host is ready")
        self._action = action

    def trigger(self):
        """
        Run the registered action and signal completion to the host,
        whether or not the action raised.
        """
        if not self.is_ready or self._action is None:
            raise HostNotReadyError("No trigger registered")
        event = self.last_event = ActionEvent()
        try:
            return self._action()
        finally:
            event.completed()
            logger.debug("Trigger completed")
