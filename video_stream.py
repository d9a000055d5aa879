"""
Video stream transfer
Copies a remote video into a local file and tells the user when it is safe
to start playing it, based on a bandwidth sample taken at the start.
"""
import time
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from tqdm import tqdm

import stream_settings
from downloader import open_video_response
from duration_rules import format_duration
from stream_errors import FileCreateError, FileWriteError, NetworkReadError

logger = logging.getLogger(__name__)

READY_MESSAGE = "This video is ready to play."

# perf_counter can report 0 for a read served entirely from the socket buffer
MIN_ELAPSED = 1e-6


@dataclass
class BandwidthSample:
    nbytes: int
    elapsed: float
    exhausted: bool = False

    @property
    def bandwidth(self) -> float:
        """Bytes per second"""
        return self.nbytes / max(self.elapsed, MIN_ELAPSED)


def estimate_buffer_time(size: int, bandwidth: float, duration: float, fudge_factor: float = None) -> float:
    """
    Seconds to wait before playback can start without catching the writer.

    download_time = size / bandwidth * fudge_factor, and only the part of it
    that exceeds the playback duration has to be waited out.
    """
    if fudge_factor is None:
        fudge_factor = stream_settings.DEFAULT_FUDGE_FACTOR
    if size <= 0:
        return 0.0
    if bandwidth <= 0:
        raise ValueError(f"bandwidth must be positive, got {bandwidth}")
    download_time = (size / bandwidth) * fudge_factor
    return max(0.0, download_time - duration)


class ReadyNotifier:
    """
    One-shot "ready to play" signal.
    Fired by a timer thread or by the copy loop, whichever comes first; the
    callback runs at most once.
    """

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self.fired = False

    def schedule(self, delay: float):
        # threading refuses waits longer than TIMEOUT_MAX
        delay = min(max(0.0, delay), threading.TIMEOUT_MAX)
        self._timer = threading.Timer(delay, self.fire)
        self._timer.daemon = True
        self._timer.start()

    def fire(self) -> bool:
        with self._lock:
            if self.fired:
                return False
            self.fired = True
            self._callback()
            return True

    def cancel(self):
        """Stop the pending timer and wait out an announcement already in progress."""
        if self._timer is not None:
            self._timer.cancel()
        with self._lock:
            pass

    def finish(self) -> bool:
        """Transfer is complete: drop the pending timer and fire if it hasn't yet."""
        self.cancel()
        return self.fire()


class VideoStream:
    """
    One transfer session: owns the HTTP response and the output file until close().

    Use open_video_stream() to build one from a URL.
    """

    def __init__(
        self,
        response,
        size: int,
        duration: float,
        out,
        on_ready: Callable[[], None] = None,
        progress: bool = False,
        chunk_size: int = None,
        sample_size: int = None,
        fudge_factor: float = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.size = size
        self.duration = duration
        self.response = response
        self.out = out
        self.on_ready = on_ready or self._announce_ready
        self.progress = progress
        self.chunk_size = chunk_size if chunk_size is not None else stream_settings.chunk_size()
        self.sample_size = sample_size if sample_size is not None else stream_settings.sample_size()
        self.fudge_factor = fudge_factor if fudge_factor is not None else stream_settings.fudge_factor()
        self.clock = clock

        self.bytes_written = 0
        self.sample: Optional[BandwidthSample] = None
        self.buffer_time: Optional[float] = None
        self.closed = False
        self._chunks = response.iter_content(chunk_size=self.chunk_size)
        self._bar = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -----------------------------------------
    # I/O helpers
    # -----------------------------------------
    def _emit(self, message: str):
        if self._bar is not None:
            tqdm.write(message)
        else:
            print(message)

    def _announce_ready(self):
        self._emit(READY_MESSAGE)

    def _read_chunk(self):
        """Next body chunk, or None at end of stream."""
        try:
            return next(self._chunks, None)
        except (requests.RequestException, OSError) as e:
            raise NetworkReadError(f"Read failed after {self.bytes_written:,} bytes: {e}") from e

    def _write(self, chunk: bytes):
        try:
            self.out.write(chunk)
        except OSError as e:
            raise FileWriteError(f"Write failed after {self.bytes_written:,} bytes: {e}") from e
        self.bytes_written += len(chunk)
        if self._bar is not None:
            self._bar.update(len(chunk))

    # -----------------------------------------
    # Phases
    # -----------------------------------------
    def sample_bandwidth(self) -> BandwidthSample:
        """
        Read (and write out) up to sample_size bytes and time it.
        A body shorter than the sample is measured as-is.
        """
        nbytes = 0
        exhausted = False
        t_before = self.clock()
        while nbytes < self.sample_size:
            chunk = self._read_chunk()
            if chunk is None:
                exhausted = True
                break
            if chunk:
                self._write(chunk)
                nbytes += len(chunk)
        elapsed = self.clock() - t_before

        self.sample = BandwidthSample(nbytes, elapsed, exhausted)
        logger.debug(
            f"Sampled {nbytes:,} bytes in {elapsed:.3f}s"
            f"{' (whole body)' if exhausted else ''}"
        )
        return self.sample

    def copy_remaining(self):
        while True:
            chunk = self._read_chunk()
            if chunk is None:
                break
            if chunk:
                self._write(chunk)

    def stream(self) -> int:
        """
        Stream the remote file into the local file, telling the user once it
        can safely be played. Returns the number of bytes written.
        """
        self._bar = tqdm(
            total=self.size,
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            desc="Downloading",
        ) if self.progress else None

        try:
            self._emit("Calculating available downstream bandwidth...")
            sample = self.sample_bandwidth()

            if sample.nbytes == 0:
                self.buffer_time = 0.0
            else:
                self.buffer_time = estimate_buffer_time(
                    self.size, sample.bandwidth, self.duration, self.fudge_factor
                )
            logger.info(
                f"Bandwidth {sample.bandwidth / 1e6:.2f} MB/s for {self.size:,} bytes, "
                f"playback {format_duration(self.duration)}, buffer {format_duration(self.buffer_time)}"
            )

            self._emit(f"Buffering your video (about {format_duration(self.buffer_time)})...")
            notifier = ReadyNotifier(self.on_ready)
            notifier.schedule(self.buffer_time)
            try:
                if not sample.exhausted:
                    self.copy_remaining()
            except BaseException:
                notifier.cancel()
                raise
            notifier.finish()
        finally:
            if self._bar is not None:
                self._bar.close()
                self._bar = None

        if self.bytes_written != self.size:
            logger.warning(
                f"Wrote {self.bytes_written:,} bytes but Content-Length was {self.size:,}"
            )
        return self.bytes_written

    def close(self):
        """Release the output file and the network connection."""
        if self.closed:
            return
        self.closed = True
        try:
            self.out.close()
        finally:
            self.response.close()


def open_video_stream(url, duration, outfile, username=None, password=None, timeout=None, **options):
    """
    Construct a new video stream from an http URL.

    The output file is only created once the response has a usable
    Content-Length, so a rejected response leaves nothing open behind.
    """
    if duration is None or duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")

    resp, size = open_video_response(url, username, password, timeout)

    out_path = Path(outfile)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out = open(out_path, "wb")
    except OSError as e:
        resp.close()
        raise FileCreateError(f"Could not create {out_path}: {e}") from e

    logger.debug(f"Writing {size:,} bytes from {url} to {out_path}")
    try:
        return VideoStream(resp, size, duration, out, **options)
    except BaseException:
        out.close()
        resp.close()
        raise
