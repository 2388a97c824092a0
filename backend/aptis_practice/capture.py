"""
Capture Controller
==================

Owns the capture device and the countdown for one response window.

A capture starts with ``begin_capture`` and ends exactly once, either by an
explicit ``end_capture`` or by the countdown reaching zero (both take the same
path). Ending builds a single artifact, releases the device, cancels the
countdown, resolves the capture future and calls the completion callback.

Devices:
- ``StreamedAudioDevice``: audio chunks are uploaded by the HTTP client
- ``MicrophoneDevice``: local input via sounddevice, encoded to WAV with soundfile
- ``TextBuffer``: answer slots for writing parts
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Callable, List, Optional, Sequence

from .errors import DeviceUnavailable, ValidationFailure
from .models import AudioArtifact, CapturedArtifact, CapturePhase, Modality, TextArtifact
from .settings import Settings, settings


logger = logging.getLogger(__name__)


def _is_current(task: Optional[asyncio.Task]) -> bool:
	try:
		return task is not None and task is asyncio.current_task()
	except RuntimeError:
		return False


class Countdown:
	"""Whole-second countdown driven by an event-loop task.

	``tick`` is public so the owner (or a test) can advance time by hand; the
	background task simply calls it once per interval. ``on_expire`` fires exactly
	once, when ``remaining`` reaches zero.
	"""

	def __init__(self, seconds: int, on_expire: Callable[[], Any], *, interval: Optional[float] = None) -> None:
		self.remaining = max(0, int(seconds))
		self.interval = interval if interval is not None else settings.countdown_interval_seconds
		self._on_expire = on_expire
		self._task: Optional[asyncio.Task] = None
		self.expired = False

	@property
	def running(self) -> bool:
		return self._task is not None and not self._task.done()

	def start(self) -> None:
		self._task = asyncio.get_running_loop().create_task(self._run())

	async def _run(self) -> None:
		while not self.expired:
			await asyncio.sleep(self.interval)
			self.tick()

	def tick(self) -> None:
		if self.expired:
			return
		if self.remaining > 0:
			self.remaining -= 1
		if self.remaining == 0:
			self.expired = True
			self.stop()
			self._on_expire()

	def stop(self) -> None:
		task, self._task = self._task, None
		if task is not None and not task.done() and not _is_current(task):
			task.cancel()


# ============================================================================
# DEVICES
# ============================================================================

class AudioDevice:
	mime_type = "audio/wav"

	def open(self) -> None:
		raise NotImplementedError

	def collect(self, elapsed_seconds: float) -> AudioArtifact:
		raise NotImplementedError

	def close(self) -> None:
		raise NotImplementedError


class StreamedAudioDevice(AudioDevice):
	"""Buffers audio chunks pushed by a remote client (e.g. MediaRecorder webm blobs)."""

	def __init__(self, mime_type: str = "audio/webm") -> None:
		self.mime_type = mime_type
		self._chunks: List[bytes] = []
		self.is_open = False

	def open(self) -> None:
		if self.is_open:
			raise DeviceUnavailable("Audio stream is already in use")
		self._chunks = []
		self.is_open = True

	def push(self, chunk: bytes) -> None:
		if not self.is_open:
			raise ValidationFailure("No recording in progress")
		self._chunks.append(bytes(chunk))

	def collect(self, elapsed_seconds: float) -> AudioArtifact:
		return AudioArtifact(data=b"".join(self._chunks), mime_type=self.mime_type, duration_seconds=round(elapsed_seconds, 2))

	def close(self) -> None:
		self._chunks = []
		self.is_open = False


class MicrophoneDevice(AudioDevice):
	"""Local microphone input. Only one instance may hold the microphone at a time."""

	_holder: Optional["MicrophoneDevice"] = None

	def __init__(self, sample_rate: Optional[int] = None, channels: int = 1) -> None:
		self.sample_rate = sample_rate or settings.microphone_sample_rate
		self.channels = channels
		self._stream: Any = None
		self._frames: List[Any] = []
		self._running = False

	def open(self) -> None:
		if MicrophoneDevice._holder is not None:
			raise DeviceUnavailable("Microphone is already in use")
		try:
			import sounddevice as sd
		except (ImportError, OSError) as exc:
			raise DeviceUnavailable(f"Audio input is not available: {exc}") from exc
		self._frames = []
		try:
			stream = sd.InputStream(
				samplerate=self.sample_rate,
				channels=self.channels,
				dtype="float32",
				callback=self._record_callback,
			)
		except (sd.PortAudioError, OSError, ValueError) as exc:
			raise DeviceUnavailable(f"Could not open microphone: {exc}") from exc
		try:
			stream.start()
		except (sd.PortAudioError, OSError, ValueError) as exc:
			stream.close()
			raise DeviceUnavailable(f"Could not start microphone: {exc}") from exc
		self._stream = stream
		self._running = True
		MicrophoneDevice._holder = self
		logger.debug("Microphone opened at %s Hz", self.sample_rate)

	def _record_callback(self, indata, frames, time, status) -> None:
		if status:
			logger.debug("Input stream status: %s", status)
		self._frames.append(indata.copy())

	def _stop_stream(self) -> None:
		if self._stream is not None and self._running:
			self._running = False
			self._stream.stop()

	def collect(self, elapsed_seconds: float) -> AudioArtifact:
		# No frames may arrive while the recording is assembled
		self._stop_stream()
		if not self._frames:
			return AudioArtifact(data=b"", duration_seconds=0.0)
		import numpy as np
		import soundfile as sf

		audio = np.concatenate(self._frames, axis=0)
		buffer = io.BytesIO()
		sf.write(buffer, audio, self.sample_rate, format="WAV")
		return AudioArtifact(
			data=buffer.getvalue(),
			mime_type="audio/wav",
			duration_seconds=round(len(audio) / self.sample_rate, 2),
		)

	def close(self) -> None:
		stream = self._stream
		try:
			self._stop_stream()
		finally:
			self._stream = None
			self._running = False
			self._frames = []
			if MicrophoneDevice._holder is self:
				MicrophoneDevice._holder = None
			if stream is not None:
				stream.close()


def make_audio_device(cfg: Settings = settings) -> AudioDevice:
	if cfg.capture_backend == "microphone":
		return MicrophoneDevice(cfg.microphone_sample_rate)
	return StreamedAudioDevice()


class TextBuffer:
	"""Answer slots for one writing submission, one per prompt."""

	def __init__(self, slots: int, initial: Sequence[str] = ()) -> None:
		answers = [str(a) for a in list(initial)[:slots]]
		self._answers = answers + [""] * (slots - len(answers))

	def write(self, index: int, text: str) -> None:
		if not 0 <= index < len(self._answers):
			raise ValidationFailure(f"Answer slot {index} does not exist")
		self._answers[index] = text

	@property
	def answers(self) -> tuple:
		return tuple(self._answers)

	def snapshot(self) -> TextArtifact:
		return TextArtifact(answers=self.answers)


# ============================================================================
# CONTROLLER
# ============================================================================

class CaptureController:
	def __init__(self, device: Optional[AudioDevice] = None, *, interval: Optional[float] = None) -> None:
		self.device = device
		self.interval = interval if interval is not None else settings.countdown_interval_seconds
		self.phase = CapturePhase.IDLE
		self.countdown: Optional[Countdown] = None
		self.modality: Optional[Modality] = None
		self._text: Optional[TextBuffer] = None
		self._future: Optional[asyncio.Future] = None
		self._on_complete: Optional[Callable[[CapturedArtifact], Any]] = None
		self._started_at = 0.0

	@property
	def remaining(self) -> Optional[int]:
		return self.countdown.remaining if self.countdown is not None else None

	@property
	def answers(self) -> tuple:
		return self._text.answers if self._text is not None else ()

	def begin_preparation(self, seconds: int, on_expire: Optional[Callable[[], Any]] = None) -> None:
		"""Run a preparation countdown. Expiry returns to idle and stops nothing."""
		if self.phase != CapturePhase.IDLE:
			raise ValidationFailure(f"Cannot prepare while {self.phase.value}")

		def _done() -> None:
			if self.phase == CapturePhase.PREPARING:
				self.phase = CapturePhase.IDLE
			if on_expire is not None:
				on_expire()

		self.phase = CapturePhase.PREPARING
		self.countdown = Countdown(seconds, _done, interval=self.interval)
		self.countdown.start()

	def begin_capture(
		self,
		duration_seconds: Optional[int],
		modality: Modality,
		*,
		slots: int = 0,
		initial: Sequence[str] = (),
		on_complete: Optional[Callable[[CapturedArtifact], Any]] = None,
	) -> asyncio.Future:
		"""Start capturing. ``duration_seconds=None`` runs without a countdown.

		Raises:
			ValidationFailure: A capture is already running.
			DeviceUnavailable: The audio device could not be acquired; the
				controller stays idle and no countdown is started.
		"""
		if self.phase == CapturePhase.CAPTURING:
			raise ValidationFailure("A capture is already running")
		if self.phase == CapturePhase.PREPARING:
			# Speaking early skips the rest of the preparation time
			self._stop_countdown()
			self.phase = CapturePhase.IDLE
		if modality == Modality.AUDIO:
			if self.device is None:
				raise DeviceUnavailable("No audio device configured")
			self.device.open()
			self._text = None
		else:
			self._text = TextBuffer(slots, initial)
		loop = asyncio.get_running_loop()
		self.modality = modality
		self.phase = CapturePhase.CAPTURING
		self._on_complete = on_complete
		self._future = loop.create_future()
		self._started_at = loop.time()
		self.countdown = None
		if duration_seconds is not None:
			self.countdown = Countdown(duration_seconds, self.end_capture, interval=self.interval)
			self.countdown.start()
		return self._future

	def write(self, index: int, text: str) -> None:
		if self.phase != CapturePhase.CAPTURING or self._text is None:
			raise ValidationFailure("No writing in progress")
		self._text.write(index, text)

	def push(self, chunk: bytes) -> None:
		if self.phase != CapturePhase.CAPTURING or self.modality != Modality.AUDIO:
			raise ValidationFailure("No recording in progress")
		if not isinstance(self.device, StreamedAudioDevice):
			raise ValidationFailure("The active audio device does not accept uploaded audio")
		self.device.push(chunk)

	def end_capture(self) -> Optional[CapturedArtifact]:
		"""Stop the capture and emit its artifact. A second call returns None."""
		if self.phase != CapturePhase.CAPTURING:
			return None
		self.phase = CapturePhase.IDLE
		self._stop_countdown()
		elapsed = asyncio.get_running_loop().time() - self._started_at
		artifact: CapturedArtifact
		if self.modality == Modality.AUDIO and self.device is not None:
			try:
				artifact = self.device.collect(elapsed)
			except Exception:
				logger.exception("Failed to collect recorded audio; submitting an empty recording")
				artifact = AudioArtifact(duration_seconds=round(elapsed, 2))
			finally:
				self.device.close()
		else:
			artifact = self._text.snapshot() if self._text is not None else TextArtifact()
		future, self._future = self._future, None
		if future is not None and not future.done():
			future.set_result(artifact)
		callback, self._on_complete = self._on_complete, None
		if callback is not None:
			callback(artifact)
		return artifact

	def _stop_countdown(self) -> None:
		if self.countdown is not None:
			self.countdown.stop()

	def close(self) -> None:
		"""Abandon any capture in progress and release the device. No artifact is emitted."""
		capturing = self.phase == CapturePhase.CAPTURING
		self.phase = CapturePhase.IDLE
		self._stop_countdown()
		self._on_complete = None
		future, self._future = self._future, None
		if future is not None and not future.done():
			future.cancel()
		if capturing and self.modality == Modality.AUDIO and self.device is not None:
			self.device.close()
