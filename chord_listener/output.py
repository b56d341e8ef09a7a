"""
Output handler classes for CLI and web interfaces.
"""
import time
from abc import ABC, abstractmethod

from chord_listener.common import clear_line
from chord_listener.chroma import format_notes, format_chroma
from chord_listener.result import INITIALIZING, ACTIVE, IDLE


class OutputHandler(ABC):
    """
    Abstract base class for output handling.
    Receives detection results and session state changes from the pipeline.
    """

    @abstractmethod
    def result_updated(self, result):
        """Output a new DetectionResult."""
        pass

    @abstractmethod
    def state_changed(self, state, result):
        """
        Output a session state change.

        Args:
            state: INITIALIZING, ACTIVE or IDLE
            result: the current DetectionResult
        """
        pass


class ConsoleOutputHandler(OutputHandler):
    """
    Output handler for CLI - prints to stdout.
    """

    def __init__(self, config):
        self.config = config
        self.log_mode = config.get('log', False)
        self.show_chroma = config.get('show_chroma', False)

    def _get_timestamp(self):
        return time.strftime("%Y-%m-%d %H:%M:%S")

    def result_updated(self, result):
        output = f"Chord: {result.chord} | Notes: {format_notes(result.notes)}"
        if self.show_chroma and result.chroma is not None:
            output += f" | Chroma: {format_chroma(result.chroma)}"

        if self.log_mode:
            print(f"[{self._get_timestamp()}] {output}")
        else:
            clear_line()
            print(output, end='\r', flush=True)

    def state_changed(self, state, result):
        if state == INITIALIZING:
            print("Initializing...")
        elif state == ACTIVE:
            print("🎤 Listening... Press Ctrl+C to stop.")
        elif state == IDLE:
            if not self.log_mode:
                clear_line()
            print(f"Last Detected Chord: {result.chord} | Notes: {format_notes(result.notes)}")


class DictOutputHandler(OutputHandler):
    """
    Output handler for web - collects messages as dictionaries for JSON
    serialization. The caller drains them with pop_messages().
    """

    def __init__(self, config=None):
        self.config = config
        self.include_chroma = bool(config.get('show_chroma', False)) if config is not None else False
        self.messages = []

    def result_updated(self, result):
        self.messages.append(result.to_dict(include_chroma=self.include_chroma))

    def state_changed(self, state, result):
        message = {
            "type": "state",
            "state": state,
            "timestamp": time.time(),
        }
        if state == IDLE:
            message["last_result"] = result.to_dict()
        self.messages.append(message)

    def pop_messages(self):
        """Return and clear the pending messages."""
        messages, self.messages = self.messages, []
        return messages
