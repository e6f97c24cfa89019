#!/usr/bin/env python3
"""
Fingerspelling Client - Main Entry Point

This client processes camera/stream frames locally with MediaPipe, sends
normalized hand landmarks to a remote sign classifier over HTTP, and
combines accepted signs into two-character words.

Usage:
    python -m fingerspell_client.main --classifier http://127.0.0.1:8000 --camera 0 --preview
    python -m fingerspell_client.main --stream rtsp://10.0.0.5:8554/handcam --events-port 8765
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .classifier_client import HttpClassifier
from .composer import WordComposer, load_word_dictionary
from .config import ClientConfig
from .decision import SignDecider, romanize
from .detector import MediaPipeHandDetector
from .events_server import EventsServer
from .landmarks import Landmark, flatten_hands
from .pipeline import SignPipeline
from .speech import NullSpeaker, Pyttsx3Speaker
from .throttle import DispatchGate

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def word_key_label(resolved: Optional[Tuple[str, str]]) -> str:
    """Preview label for the last resolved word; shows the romanized key (kanji cannot be drawn)."""
    if resolved is None:
        return "Word key: -"
    return f"Word key: {romanize(resolved[0])}"


class FingerspellClient:
    """
    Main client that integrates all components:
    - Camera/stream capture
    - MediaPipe hand landmark detection
    - Sign pipeline (normalize, throttle, classify, decide, compose)
    - Speech output
    - Optional WebSocket events server
    """

    def __init__(
        self,
        config: ClientConfig,
        camera_index: int = 0,
        stream_url: Optional[str] = None,
        rate: float = 30.0,
        show_preview: bool = False,
        enable_speech: bool = True,
        events_host: str = "127.0.0.1",
        events_port: Optional[int] = None,
        events_token: Optional[str] = None,
    ):
        """
        Initialize the fingerspelling client.

        Args:
            config: Pipeline and classifier settings
            camera_index: Camera device index (used if stream_url is None)
            stream_url: Video stream URL (overrides camera_index if set)
            rate: Capture loop rate (Hz)
            show_preview: Whether to show OpenCV preview window
            enable_speech: Whether to speak accepted signs
            events_host: Bind address for the events server
            events_port: Events server port (None disables the server)
            events_token: Optional bearer token for events clients
        """
        self.config = config
        self.camera_index = camera_index
        self.stream_url = stream_url
        self.rate = rate
        self.show_preview = show_preview
        self.events_host = events_host
        self.events_port = events_port

        words = load_word_dictionary(config.words_file) if config.words_file else None

        # Components
        self.classifier = HttpClassifier(config.classifier_url, timeout=config.request_timeout)
        self.speaker = Pyttsx3Speaker() if enable_speech else NullSpeaker()
        self.detector = MediaPipeHandDetector(
            model_path=config.model_path,
            num_hands=config.num_hands,
        )
        self.pipeline = SignPipeline(
            classifier=self.classifier,
            decider=SignDecider(threshold=config.confidence_threshold),
            composer=WordComposer(words),
            gate=DispatchGate(requests_per_second=config.requests_per_second),
            speaker=self.speaker,
            speak_signs=config.speak_signs,
        )
        self.events_server: Optional[EventsServer] = None
        if events_port is not None:
            self.events_server = EventsServer(self.pipeline, token=events_token)

        # Camera
        self.cap: Optional[cv2.VideoCapture] = None

        # State
        self._running = False
        self._events_task: Optional[asyncio.Task] = None
        self._last_hands: List[List[Landmark]] = []

        # UI font
        self.font = cv2.FONT_HERSHEY_SIMPLEX

    async def start(self) -> None:
        """Start the client."""
        logger.info("Starting Fingerspell Client...")

        if not self._init_camera():
            raise RuntimeError("Failed to initialize camera")

        self.detector.start()
        self.speaker.start()
        if self.config.ready_phrase:
            self.speaker.speak(self.config.ready_phrase)

        if self.events_server is not None:
            self._events_task = asyncio.create_task(
                self.events_server.serve(self.events_host, self.events_port)
            )

        self._running = True
        logger.info(
            f"Fingerspell Client started (classifier={self.classifier.url}, "
            f"interval={self.config.request_interval_ms:.0f}ms, "
            f"threshold={self.config.confidence_threshold})"
        )

    async def stop(self) -> None:
        """Stop the client and clean up resources."""
        logger.info("Stopping Fingerspell Client...")
        self._running = False

        await self.pipeline.wait_idle()

        if self._events_task:
            self._events_task.cancel()
            try:
                await self._events_task
            except asyncio.CancelledError:
                pass
            self._events_task = None

        if self.cap:
            self.cap.release()
            self.cap = None

        self.detector.close()
        self.speaker.stop()
        self.classifier.close()

        if self.show_preview:
            cv2.destroyAllWindows()

        logger.info(f"Session stats: {self.pipeline.get_stats()}")
        logger.info("Fingerspell Client stopped")

    def request_stop(self) -> None:
        """Ask the capture loop to exit after the current frame."""
        self._running = False

    async def run(self) -> None:
        """Main capture loop."""
        target_dt = 1.0 / self.rate

        while self._running:
            loop_start = time.time()

            try:
                self._process_frame()
            except Exception as e:
                logger.error(f"Error in capture loop: {e}")

            if self.show_preview:
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord('q')):
                    logger.info("Quit requested")
                    self._running = False
                elif key in (ord('r'), ord('R')):
                    self.pipeline.reset()

            # Yield to classifier tasks even when the frame took longer than target_dt
            elapsed = time.time() - loop_start
            await asyncio.sleep(max(target_dt - elapsed, 0.0))

    def _process_frame(self) -> None:
        """Process a single frame through the pipeline."""
        ok, frame = self.cap.read()
        if not ok or frame is None or frame.size == 0:
            logger.debug("Frame read failed")
            return

        frame = cv2.flip(frame, 1)
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

        now_ms = time.monotonic() * 1000
        hands = self.detector.detect(rgb, now_ms)
        if self.detector.is_stream_problematic():
            logger.warning("Hand detection keeps failing on this stream")

        self._last_hands = hands
        if hands:
            self.pipeline.process_hands(hands, now_ms)

        if self.show_preview:
            self._draw_preview(frame)
            cv2.imshow("Fingerspell Client", frame)

    def _init_camera(self) -> bool:
        """Initialize video capture."""
        if self.stream_url:
            logger.info(f"Opening stream: {self.stream_url}")
            self.cap = cv2.VideoCapture(self.stream_url)
        else:
            logger.info(f"Opening camera index: {self.camera_index}")
            self.cap = cv2.VideoCapture(self.camera_index)

        if not self.cap.isOpened():
            logger.error("Failed to open camera source")
            return False

        width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        fps = self.cap.get(cv2.CAP_PROP_FPS)
        logger.info(f"Camera opened: {width}x{height} @ {fps:.1f} fps")

        return True

    def _draw_preview(self, frame: np.ndarray) -> None:
        """Draw landmarks and recognition overlay."""
        h, w = frame.shape[:2]

        for lm in flatten_hands(self._last_hands):
            center = (int(lm.x * w), int(lm.y * h))
            cv2.circle(frame, center, 5, (0, 0, 255), -1)
            cv2.circle(frame, center, 5, (0, 255, 0), 2)

        state = self.pipeline.snapshot()
        if state["sign"] is not None:
            sign_text = f"Sign: {romanize(state['sign'])} ({state['probability'] * 100:.2f}%)"
            sign_color = (0, 255, 0)
        else:
            sign_text = "Sign: -"
            sign_color = (0, 165, 255)
        cv2.putText(frame, sign_text, (20, 40), self.font, 0.9, sign_color, 2)

        word_text = word_key_label(self.pipeline.composer.last_resolved)
        cv2.putText(frame, word_text, (20, 75), self.font, 0.9, (255, 0, 0), 2)

        if state["pending"]:
            cv2.putText(
                frame,
                f"Pending: {romanize(state['pending'])}",
                (20, h - 40),
                self.font, 0.6, (0, 200, 0), 2
            )

        failed = self.pipeline.stats.failed
        if failed > 0:
            cv2.putText(
                frame,
                f"Classifier errors: {failed}",
                (w - 250, 30),
                self.font, 0.5, (0, 0, 255), 1
            )


async def main_async(args: argparse.Namespace) -> None:
    """Async main entry point."""
    env_config = ClientConfig.from_env()
    config = ClientConfig(
        classifier_url=args.classifier or env_config.classifier_url,
        requests_per_second=args.requests_per_second or env_config.requests_per_second,
        confidence_threshold=(
            args.threshold if args.threshold is not None else env_config.confidence_threshold
        ),
        request_timeout=args.timeout or env_config.request_timeout,
        words_file=args.words or env_config.words_file,
        model_path=args.model or env_config.model_path,
        num_hands=args.num_hands or env_config.num_hands,
        speak_signs=env_config.speak_signs and not args.no_speech,
        ready_phrase=env_config.ready_phrase,
    )

    client = FingerspellClient(
        config=config,
        camera_index=args.camera,
        stream_url=args.stream,
        rate=args.rate,
        show_preview=args.preview,
        enable_speech=not args.no_speech,
        events_host=args.events_host,
        events_port=args.events_port,
        events_token=args.events_token,
    )

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown signal received")
        client.request_stop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await client.start()
        await client.run()
    except Exception as e:
        logger.error(f"Client error: {e}")
    finally:
        await client.stop()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Fingerspelling Sign-to-Word Client",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--classifier",
        type=str,
        default=None,
        help="Classifier base URL (POST <url>/predict); env FINGERSPELL_CLASSIFIER_URL",
    )
    parser.add_argument(
        "--camera",
        type=int,
        default=0,
        help="Camera device index",
    )
    parser.add_argument(
        "--stream",
        type=str,
        default=None,
        help="Video stream URL (overrides --camera if set)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="MediaPipe hand_landmarker.task path",
    )
    parser.add_argument(
        "--num-hands",
        type=int,
        default=None,
        help="Maximum number of hands to detect",
    )
    parser.add_argument(
        "--requests-per-second",
        type=float,
        default=None,
        help="Classifier request rate",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum probability (exclusive) to accept a sign",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Classifier request timeout (s)",
    )
    parser.add_argument(
        "--words",
        type=str,
        default=None,
        help="JSON word dictionary file",
    )
    parser.add_argument(
        "--rate",
        type=float,
        default=30.0,
        help="Capture loop rate (Hz)",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Show preview window",
    )
    parser.add_argument(
        "--no-speech",
        action="store_true",
        help="Disable text-to-speech",
    )
    parser.add_argument(
        "--events-port",
        type=int,
        default=None,
        help="Serve recognition events on ws://<host>:<port>/events",
    )
    parser.add_argument(
        "--events-host",
        type=str,
        default="127.0.0.1",
        help="Events server bind address",
    )
    parser.add_argument(
        "--events-token",
        type=str,
        default=None,
        help="Bearer token required from events clients",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
