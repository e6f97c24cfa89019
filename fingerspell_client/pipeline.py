"""
Sign Pipeline - Drives one recognition session end to end.

detector hands -> normalize -> dispatch gate -> (async) classifier
    -> sign decision -> word composer -> observers

All state lives on the SignPipeline instance and is only touched from the
event loop thread. Classifier calls run as tasks; their responses may
finish out of order, so each dispatch carries a sequence number and any
response not newer than the last applied one is discarded.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Protocol, Sequence, Set

import numpy as np

from .composer import WordComposer
from .decision import SignDecider
from .exceptions import ClassifierError, MalformedResponseError
from .landmarks import flatten_hands, normalize_landmarks
from .throttle import DispatchGate, DispatchTicket

logger = logging.getLogger(__name__)

SignUpdateCallback = Callable[[Optional[str], float], None]
WordResolvedCallback = Callable[[str], None]


class Classifier(Protocol):
    async def predict(self, features: np.ndarray) -> Sequence[Any]:
        ...


class Speaker(Protocol):
    def speak(self, text: str) -> None:
        ...


@dataclass(frozen=True)
class SignUpdate:
    """Result of one applied classifier response."""
    seq: int
    sign: Optional[str]
    probability: float
    word: Optional[str] = None


@dataclass
class PipelineStats:
    """Counters for one session."""
    detection_events: int = 0
    dispatched: int = 0
    applied: int = 0
    stale: int = 0
    failed: int = 0
    accepted: int = 0
    rejected: int = 0
    words_resolved: int = 0


class SignPipeline:
    """
    Recognition session owning the gate, decider, composer and sequence state.

    Exposes:
    - on_sign_update(sign, probability) after every applied response
      (sign is None when no sign cleared the threshold)
    - on_word_resolved(word) when a sign pair resolves
    - reset() to clear the pending sign
    """

    def __init__(
        self,
        classifier: Classifier,
        decider: Optional[SignDecider] = None,
        composer: Optional[WordComposer] = None,
        gate: Optional[DispatchGate] = None,
        speaker: Optional[Speaker] = None,
        on_sign_update: Optional[SignUpdateCallback] = None,
        on_word_resolved: Optional[WordResolvedCallback] = None,
        speak_signs: bool = True,
    ):
        """
        Initialize the pipeline.

        Args:
            classifier: Object with an async predict(features) method
            decider: Sign decision engine (default threshold 0.5)
            composer: Word composer (default dictionary)
            gate: Dispatch gate (default 2 requests/s)
            speaker: Optional speech port; each accepted sign is spoken
            on_sign_update: Observer for sign updates
            on_word_resolved: Observer for resolved words
            speak_signs: Whether accepted signs are sent to the speaker
        """
        self.classifier = classifier
        self.decider = decider if decider is not None else SignDecider()
        self.composer = composer if composer is not None else WordComposer()
        self.gate = gate if gate is not None else DispatchGate()
        self.speaker = speaker
        self.speak_signs = speak_signs

        self._sign_observers: List[SignUpdateCallback] = []
        self._word_observers: List[WordResolvedCallback] = []
        if on_sign_update:
            self._sign_observers.append(on_sign_update)
        if on_word_resolved:
            self._word_observers.append(on_word_resolved)

        # Session state
        self._last_applied_seq = 0
        self._inflight: Set[asyncio.Task] = set()
        self.current_sign: Optional[str] = None
        self.current_probability: float = 0.0
        self.current_word: str = ""

        self.stats = PipelineStats()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_sign_observer(self, callback: SignUpdateCallback) -> None:
        self._sign_observers.append(callback)

    def add_word_observer(self, callback: WordResolvedCallback) -> None:
        self._word_observers.append(callback)

    # ------------------------------------------------------------------
    # Detection events
    # ------------------------------------------------------------------

    def process_hands(
        self,
        hands: Iterable[Sequence[Any]],
        now_ms: Optional[float] = None,
    ) -> Optional[asyncio.Task]:
        """
        Handle one detection event.

        Must be called from a running event loop. Returns immediately; the
        classifier round trip runs as a task.

        Args:
            hands: Detector output, one 21-landmark sequence per hand
            now_ms: Event timestamp in ms (defaults to the monotonic clock)

        Returns:
            The classification task if a request was dispatched, else None
        """
        landmarks = flatten_hands(hands)
        if not landmarks:
            return None

        self.stats.detection_events += 1
        features = normalize_landmarks(landmarks)

        ticket = self.gate.maybe_dispatch(features, now_ms)
        if ticket is None:
            return None

        self.stats.dispatched += 1
        task = asyncio.get_running_loop().create_task(self._classify(ticket))
        self._inflight.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def _classify(self, ticket: DispatchTicket) -> Optional[SignUpdate]:
        """Run one classifier round trip and apply the result."""
        try:
            probabilities = await self.classifier.predict(ticket.features)
        except ClassifierError as e:
            self.stats.failed += 1
            logger.warning(f"Classification #{ticket.seq} failed: {e}")
            return None
        return self.apply_response(ticket.seq, probabilities)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.stats.failed += 1
            logger.error(f"Unexpected classifier error: {exc!r}")

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def apply_response(
        self,
        seq: int,
        probabilities: Sequence[Any],
    ) -> Optional[SignUpdate]:
        """
        Apply a classifier response for dispatch number seq.

        Stale responses (seq not greater than the last applied one) and
        malformed responses are dropped without notifying observers.

        Returns:
            The applied SignUpdate, or None if the response was dropped
        """
        if seq <= self._last_applied_seq:
            self.stats.stale += 1
            logger.debug(
                f"Dropping stale response #{seq} (last applied #{self._last_applied_seq})"
            )
            return None

        try:
            candidate = self.decider.decide(probabilities)
        except MalformedResponseError as e:
            self.stats.failed += 1
            logger.warning(f"Malformed classifier response #{seq}: {e}")
            return None

        self._last_applied_seq = seq
        self.stats.applied += 1

        if candidate is None:
            self.stats.rejected += 1
            best = max(float(p) for p in probabilities)
            self.current_sign = None
            self.current_probability = best
            logger.debug(f"No sign detected (best {best:.2f})")
            self._notify_sign(None, best)
            return SignUpdate(seq=seq, sign=None, probability=best)

        self.stats.accepted += 1
        self.current_sign = candidate.sign
        self.current_probability = candidate.probability
        logger.info(f"Sign accepted: {candidate.sign} ({candidate.probability:.2%})")
        self._notify_sign(candidate.sign, candidate.probability)

        if self.speaker is not None and self.speak_signs:
            self.speaker.speak(candidate.sign)

        word = self.composer.accept(candidate.sign)
        if word is not None:
            self.stats.words_resolved += 1
            self.current_word = word
            logger.info(f"Word resolved: {word}")
            self._notify_word(word)

        return SignUpdate(
            seq=seq,
            sign=candidate.sign,
            probability=candidate.probability,
            word=word,
        )

    def _notify_sign(self, sign: Optional[str], probability: float) -> None:
        for callback in self._sign_observers:
            try:
                callback(sign, probability)
            except Exception as e:
                logger.error(f"Sign observer failed: {e}")

    def _notify_word(self, word: str) -> None:
        for callback in self._word_observers:
            try:
                callback(word)
            except Exception as e:
                logger.error(f"Word observer failed: {e}")

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    @property
    def last_applied_seq(self) -> int:
        return self._last_applied_seq

    @property
    def inflight(self) -> int:
        """Number of classifier calls still outstanding."""
        return len(self._inflight)

    def reset(self) -> None:
        """Clear the word composer's pending sign."""
        self.composer.reset()
        logger.info("Pending sign cleared")

    async def wait_idle(self) -> None:
        """Wait for all outstanding classifier calls to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def snapshot(self) -> dict:
        """Externally observable state: current sign, confidence and word."""
        return {
            "sign": self.current_sign,
            "probability": self.current_probability,
            "word": self.current_word,
            "pending": self.composer.pending,
        }

    def get_stats(self) -> dict:
        """Get session statistics."""
        return {
            "detection_events": self.stats.detection_events,
            "dispatched": self.stats.dispatched,
            "applied": self.stats.applied,
            "stale": self.stats.stale,
            "failed": self.stats.failed,
            "accepted": self.stats.accepted,
            "rejected": self.stats.rejected,
            "words_resolved": self.stats.words_resolved,
            "inflight": self.inflight,
            "last_applied_seq": self._last_applied_seq,
            "gate": self.gate.get_stats(),
        }
