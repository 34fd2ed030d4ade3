import asyncio
import json
import logging
from collections import deque
from contextlib import suppress
from typing import Any, AsyncIterator, Dict, List, NamedTuple, Optional

from app.config.settings import config
from app.core.errors import UpstreamError
from app.models.internal import MediaKind

logger = logging.getLogger(__name__)

STDERR_MAX_LINES = 50


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes


class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        The process is killed and reaped on timeout or cancellation.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )

            return CompletedProcess(
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr if capture_stderr else b""
            )

        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise


class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    @staticmethod
    def _common_args() -> List[str]:
        args = [
            '--no-playlist',
            '--socket-timeout', str(config.ytdlp.socket_timeout),
            '--retries', str(config.ytdlp.retries),
        ]
        if config.ytdlp.js_runtime:
            args.extend(['--js-runtimes', config.ytdlp.js_runtime])
        return args

    @staticmethod
    def build_info_command(url: str) -> List[str]:
        """Build command for fetching the metadata document"""
        return [
            config.ytdlp.binary,
            '--dump-json',
            *YTDLPCommandBuilder._common_args(),
            url,
        ]

    @staticmethod
    def build_stream_command(url: str, format_str: str, kind: MediaKind) -> List[str]:
        """Build command writing the selected media to stdout"""
        cmd = [
            config.ytdlp.binary,
            url,
            '-f', format_str,
            '-o', '-',
            *YTDLPCommandBuilder._common_args(),
            # Keep stdout clean for binary output
            '--no-progress',
            '--quiet',
        ]
        if kind is MediaKind.VIDEO:
            cmd.extend(['--merge-output-format', 'mp4'])
        return cmd


class ProcessExtractor:
    """
    yt-dlp command-line extractor.

    fetch_metadata runs a short-lived --dump-json call; stream_media spawns a
    long-running process whose stdout is the media itself.
    """

    def __init__(self, chunk_size: Optional[int] = None):
        self.chunk_size = chunk_size or config.relay.chunk_size

    async def fetch_metadata(self, url: str) -> Dict[str, Any]:
        cmd = YTDLPCommandBuilder.build_info_command(url)
        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.ytdlp.metadata_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamError("yt-dlp metadata timeout", cause=e) from e
        except OSError as e:
            raise UpstreamError(f"yt-dlp unavailable: {e}", cause=e) from e

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="ignore").strip()
            raise UpstreamError(error_msg[:300] or "yt-dlp failed")

        try:
            return json.loads(result.stdout.decode(errors="ignore"))
        except json.JSONDecodeError as e:
            raise UpstreamError("Failed to parse yt-dlp output", cause=e) from e

    async def stream_media(self, command: List[str]) -> AsyncIterator[bytes]:
        """
        Yield stdout chunks of an extractor process.

        The first chunk is read before returning, so a spawn failure or an
        extractor that exits non-zero without output raises UpstreamError while
        a JSON error can still be sent. A non-zero exit after output raises at
        the end of the iteration so the transfer is truncated. The process is
        killed when the consumer stops iterating.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL
            )
        except OSError as e:
            raise UpstreamError(f"yt-dlp unavailable: {e}", cause=e) from e

        stderr_lines: deque = deque(maxlen=STDERR_MAX_LINES)

        async def drain_stderr():
            """Drain stderr to prevent buffer deadlock"""
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                stderr_lines.append(line.decode(errors="ignore").strip())

        stderr_task = asyncio.create_task(drain_stderr())

        async def check_exit():
            with suppress(asyncio.TimeoutError):
                await asyncio.wait_for(process.wait(), timeout=5.0)
            if process.returncode not in (None, 0):
                with suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stderr_task, timeout=1.0)
                detail = "\n".join(stderr_lines)[:200]
                logger.warning("yt-dlp exited with %s: %s", process.returncode, detail)
                raise UpstreamError(detail or f"yt-dlp exited with {process.returncode}")

        async def cleanup():
            if process.returncode is None:
                process.kill()
                await process.wait()

            stderr_task.cancel()
            with suppress(asyncio.CancelledError):
                await stderr_task

        try:
            first = await process.stdout.read(self.chunk_size)
            if not first:
                await check_exit()
        except BaseException:
            await cleanup()
            raise

        async def generate():
            try:
                chunk = first
                while chunk:
                    yield chunk
                    chunk = await process.stdout.read(self.chunk_size)
                await check_exit()
            finally:
                await cleanup()

        return generate()
