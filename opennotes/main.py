"""Main application entry point for OpenNotes."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from .audio import AudioSourceAcquirer, PyAudioSourceFactory, Recorder, StreamMixer
from .config import OpenNotesConfig
from .errors import ConfigurationError
from .models import ErrorEvent, ErrorState, ProgressEvent, TranscriptResult, TranscriptionConfig
from .services import SessionController
from .services.event_channel import ERROR_TOPIC, PROGRESS_TOPIC
from .storage import ArtifactStore
from .summarization import GeminiSummarizationEngine, SummarizationOrchestrator, format_transcript
from .transcription import AssemblyAIBackend, TranscriptionOrchestrator

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = OpenNotesConfig(config_path)
        # Set up logging (override config with command line if specified)
        log_level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, log_level)
        self.console = Console()
        self.source_factory: Optional[PyAudioSourceFactory] = None
        self.controller: Optional[SessionController] = None

    def init(self) -> None:
        """Build the pipeline. Raises ConfigurationError before any audio is touched."""
        logger.info("Initializing services...")

        transcription_key = self.config.get_transcription_api_key()
        summarization_key = self.config.get_summarization_api_key()

        sample_rate = self.config.get('audio.sample_rate', 48000)
        logger.info(f"Audio settings: {sample_rate}Hz, {self.config.get('audio.chunk_size')} samples/chunk")

        self.source_factory = PyAudioSourceFactory(
            sample_rate=sample_rate,
            chunk_size=self.config.get('audio.chunk_size', 1024),
            stall_timeout=self.config.get('audio.stall_timeout_seconds', 2.0),
            loopback_hints=self.config.get('audio.loopback_device_hints', []),
        )

        transcriber = TranscriptionOrchestrator(
            AssemblyAIBackend(transcription_key, base_url=self.config.get('transcription.base_url')),
            config=TranscriptionConfig(
                min_speakers=self.config.get('transcription.min_speakers', 2),
                max_speakers=self.config.get('transcription.max_speakers', 6),
            ),
            poll_interval=self.config.get('transcription.poll_interval_seconds', 3.0),
            max_polls=self.config.get('transcription.max_polls', 200),
        )

        summarizer = SummarizationOrchestrator(
            GeminiSummarizationEngine(
                summarization_key,
                model=self.config.get('summarization.model'),
                base_url=self.config.get('summarization.base_url'),
                temperature=self.config.get('summarization.temperature', 0.3),
                max_output_tokens=self.config.get('summarization.max_output_tokens', 2048),
            ),
            max_attempts=self.config.get('summarization.max_attempts', 3),
        )

        self.controller = SessionController(
            acquirer=AudioSourceAcquirer(self.source_factory),
            mixer=StreamMixer(sample_rate=sample_rate),
            recorder=Recorder(flush_interval=self.config.get('audio.flush_interval_seconds', 1.0)),
            transcriber=transcriber,
            summarizer=summarizer,
            store=ArtifactStore(self.config.get_data_directory(), self.config.get_temp_directory()),
        )

        pub.subscribe(self._on_progress, PROGRESS_TOPIC)
        pub.subscribe(self._on_error, ERROR_TOPIC)

    def _on_progress(self, event: ProgressEvent) -> None:
        self.console.print(f"[{event.progress:3d}%] {event.message}", style="blue")

    def _on_error(self, event: ErrorEvent) -> None:
        self.console.print(f"❌ {event.error.kind.value} error: {event.error.message}", style="bold red")

    async def run(self, duration: Optional[int]) -> Optional[TranscriptResult]:
        if not await self.controller.start_recording():
            return None
        self.console.print("🔴 Recording", style="bold red")

        if duration:
            self.console.print(f"Recording for {duration} seconds...")
            await asyncio.sleep(duration)
        else:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, input, "Press Enter to stop recording\n")

        await self.controller.wait_for_interruption()
        if isinstance(self.controller.state, ErrorState):
            return None

        self.console.print("⏹️  Stopped, processing...", style="bold yellow")
        result = await self.controller.stop_recording()
        if result is not None:
            self.show_result(result)
        return result

    def show_result(self, result: TranscriptResult) -> None:
        self.console.print(Panel(format_transcript(result.transcript),
                                 title=f"Transcript ({result.transcript_path})"))
        if result.summary is not None:
            self.console.print(Panel(Markdown(result.summary.summary_markdown),
                                     title=f"Summary ({result.summary_path})"))
        else:
            self.console.print(f"⚠️  Summary unavailable: {result.summary_error}", style="yellow")

    def cleanup(self) -> None:
        if self.controller is not None:
            pub.unsubscribe(self._on_progress, PROGRESS_TOPIC)
            pub.unsubscribe(self._on_error, ERROR_TOPIC)
        if self.source_factory is not None:
            self.source_factory.terminate()
            self.source_factory = None


def setup_logging(config: OpenNotesConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/opennotes.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).expanduser().parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(Path(log_file_path).expanduser())
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("OpenNotes application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for OpenNotes."""
    parser = argparse.ArgumentParser(
        description="OpenNotes - record a call, transcribe it and summarize it"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Record for this many seconds, then process (default: until Enter is pressed)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="OpenNotes v0.1.0"
    )

    args = parser.parse_args()

    server = None
    try:
        server = Server(args.config, args.log_level)
        server.init()
        result = asyncio.run(server.run(args.duration))
        if result is None:
            sys.exit(1)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(2)
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if server is not None:
            server.cleanup()


if __name__ == "__main__":
    main()
