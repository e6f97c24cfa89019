"""
Client configuration.

Defaults can be overridden through environment variables; command line
flags in main.py override both.

Environment Variables:
    FINGERSPELL_CLASSIFIER_URL: Classifier base URL (default: http://127.0.0.1:8000)
    FINGERSPELL_REQUESTS_PER_SECOND: Classifier request rate (default: 2)
    FINGERSPELL_CONFIDENCE_THRESHOLD: Sign acceptance threshold (default: 0.5)
    FINGERSPELL_REQUEST_TIMEOUT: Classifier timeout in seconds (default: 5)
    FINGERSPELL_WORDS_FILE: JSON word dictionary (default: built-in words)
    FINGERSPELL_MODEL_PATH: MediaPipe hand landmarker model (default: hand_landmarker.task)
    FINGERSPELL_NUM_HANDS: Maximum hands to detect (default: 2)
    FINGERSPELL_SPEAK_SIGNS: Speak each accepted sign, 1/0 (default: 1)
    FINGERSPELL_READY_PHRASE: Phrase spoken at startup (default: 準備完了)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "FINGERSPELL_"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class ClientConfig:
    """Settings for one client session."""
    classifier_url: str = "http://127.0.0.1:8000"
    requests_per_second: float = 2.0
    confidence_threshold: float = 0.5
    request_timeout: float = 5.0
    words_file: Optional[str] = None
    model_path: str = "hand_landmarker.task"
    num_hands: int = 2
    speak_signs: bool = True
    ready_phrase: str = "準備完了"

    def __post_init__(self):
        if self.requests_per_second <= 0:
            raise ValueError(
                f"requests_per_second must be positive, got {self.requests_per_second}"
            )
        if not 0.0 <= self.confidence_threshold < 1.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 1), got {self.confidence_threshold}"
            )
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.num_hands < 1:
            raise ValueError(f"num_hands must be at least 1, got {self.num_hands}")

    @property
    def request_interval_ms(self) -> float:
        """Minimum spacing between classifier requests."""
        return 1000.0 / self.requests_per_second

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ClientConfig':
        """Build a config from FINGERSPELL_* environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        words_file = get("WORDS_FILE")
        speak = get("SPEAK_SIGNS")
        return cls(
            classifier_url=get("CLASSIFIER_URL") or defaults.classifier_url,
            requests_per_second=float(get("REQUESTS_PER_SECOND") or defaults.requests_per_second),
            confidence_threshold=float(
                get("CONFIDENCE_THRESHOLD") or defaults.confidence_threshold
            ),
            request_timeout=float(get("REQUEST_TIMEOUT") or defaults.request_timeout),
            words_file=words_file,
            model_path=get("MODEL_PATH") or defaults.model_path,
            num_hands=int(get("NUM_HANDS") or defaults.num_hands),
            speak_signs=_env_bool(speak) if speak is not None else defaults.speak_signs,
            ready_phrase=env.get(ENV_PREFIX + "READY_PHRASE", defaults.ready_phrase),
        )
