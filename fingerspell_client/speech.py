"""
Speech output for accepted signs.

speak() never blocks the caller: text is queued and synthesized on a
background thread.
"""

import logging
import queue
import threading
from typing import Optional

import pyttsx3

logger = logging.getLogger(__name__)


class NullSpeaker:
    """Speaker that discards all text (speech disabled)."""

    def start(self) -> None:
        pass

    def speak(self, text: str) -> None:
        logger.debug(f"Speech disabled, skipping: {text}")

    def stop(self) -> None:
        pass


class Pyttsx3Speaker:
    """
    Text-to-speech via pyttsx3 on a daemon worker thread.

    The engine is created on the worker thread, since pyttsx3 drivers are
    bound to the thread that initialized them.
    """

    def __init__(self, rate: int = 160, max_queue: int = 16):
        """
        Initialize speaker.

        Args:
            rate: Speech rate in words per minute
            max_queue: Maximum queued utterances before new ones are dropped
        """
        self.rate = rate
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=max_queue)
        self._thread: Optional[threading.Thread] = None
        self._spoken = 0
        self._dropped = 0
        self._unavailable = threading.Event()

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._worker, name="speech", daemon=True)
        self._thread.start()

    def speak(self, text: str) -> None:
        """Queue text for speech synthesis without blocking."""
        if self._unavailable.is_set():
            return
        try:
            self._queue.put_nowait(text)
        except queue.Full:
            self._dropped += 1
            logger.warning(f"Speech queue full, dropping: {text}")

    def stop(self, timeout: float = 2.0) -> None:
        """Signal the worker to exit and wait briefly for it."""
        if self._thread is None:
            return
        try:
            self._queue.put(None, timeout=timeout)
        except queue.Full:
            logger.warning("Speech queue full at shutdown")
        self._thread.join(timeout=timeout)
        self._thread = None

    def _worker(self) -> None:
        try:
            engine = pyttsx3.init()
            engine.setProperty("rate", self.rate)
        except Exception as e:
            logger.error(f"Text-to-speech unavailable: {e}")
            self._unavailable.set()
            return

        while True:
            text = self._queue.get()
            if text is None:
                break
            try:
                engine.say(text)
                engine.runAndWait()
                self._spoken += 1
            except Exception as e:
                logger.warning(f"TTS error: {e}")

    def get_stats(self) -> dict:
        """Get speech statistics."""
        return {
            "spoken": self._spoken,
            "dropped": self._dropped,
            "queued": self._queue.qsize(),
        }
