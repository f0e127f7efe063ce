"""
Reads the raw text of domain list sources.

A source is one of:
    /path/to/list.txt           local file
    file:///path/to/list.txt    local file
    http://host/list.txt        http GET
    https://host/list.txt       https GET
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import aiofiles
import aiohttp

from domain_dedup.errors import SourceError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class SourceResult:
    """Outcome of reading one source, either the text or the error"""

    source: str
    text: Optional[str] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def read_file(path: str) -> str:
    async with aiofiles.open(path, mode="r", encoding="utf-8") as f:
        return await f.read()


class AsyncSourceLoader:
    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        if timeout <= 0:
            raise ValueError(f"Timeout must be positive: {timeout}")

        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tab):
        if self.session:
            await self.session.close()
            self.session = None

    async def read(self, source: str) -> str:
        """
        Resolve the source and return its whole content.

        Raises:
            SourceError: non-200 response or unknown scheme
            OSError: local file can not be read
        """
        protocol_index = source.find("://")
        if protocol_index == -1:
            return await read_file(source)

        protocol = source[:protocol_index]
        if protocol == "file":
            return await read_file(source[len("file://") :])
        if protocol in ("http", "https"):
            return await self.request(source)

        raise SourceError(source, f"Unknown scheme '{protocol}'")

    async def request(self, url: str) -> str:
        if not self.session:
            raise Exception("Source loader session is None")

        logger.debug(f"GET {url}")
        async with self.session.get(url) as response:
            if response.status != 200:
                raise SourceError(url, f"Got status code {response.status}")
            return await response.text(encoding="utf-8")

    async def read_all(self, sources: List[str]) -> List[SourceResult]:
        """
        Read every source concurrently. A failing source does not affect
        the others, its error is kept in the result.
        Results are in the order of the given sources.
        """

        async def _read(source: str) -> SourceResult:
            try:
                text = await self.read(source)
            except (
                SourceError,
                OSError,
                UnicodeDecodeError,
                aiohttp.ClientError,
                asyncio.TimeoutError,
            ) as e:
                logger.debug(f"Reading {source} failed: {e!r}")
                return SourceResult(source, error=e)

            logger.info(f"Read {len(text)} characters from {source}")
            return SourceResult(source, text=text)

        return list(await asyncio.gather(*(_read(s) for s in sources)))


async def read_source(source: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Read a single source with a short lived loader"""
    async with AsyncSourceLoader(timeout) as loader:
        return await loader.read(source)
