"""
Merges domain lists into one minimal list, where no domain is a subdomain
of another listed domain.

    domain-dedup https://example.org/hosts.txt local.txt -o merged.txt
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import aiofiles
import aiohttp

from domain_dedup.config import LOG_LEVELS, ConfigManager
from domain_dedup.errors import SourceError
from domain_dedup.loader import DEFAULT_TIMEOUT, AsyncSourceLoader
from domain_dedup.trie import DomainTrie

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] - %(filename)s:%(lineno)d: %(message)s"

# errors that end the contribution of a single source
SOURCE_ERRORS = (
    SourceError,
    OSError,
    UnicodeDecodeError,
    aiohttp.ClientError,
    asyncio.TimeoutError,
)


def split_candidates(text: str) -> List[str]:
    """
    One candidate per line, blank lines and "#" comments are dropped
    """
    candidates = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        candidates.append(line)
    return candidates


def format_domains(domains: List[str]) -> str:
    if not domains:
        return ""
    return "\n".join(domains) + "\n"


@dataclass
class RunStats:
    candidates: int = 0
    accepted: int = 0
    rejected: int = 0
    failed_sources: List[str] = field(default_factory=list)


class Deduplicator:
    """
    Owns the trie and feeds it. Sources are fetched concurrently,
    but their candidates are inserted one at a time in source order.
    """

    def __init__(
        self, trie: Optional[DomainTrie] = None, timeout: float = DEFAULT_TIMEOUT
    ):
        self.trie = trie if trie is not None else DomainTrie()
        self.timeout = timeout
        self.stats = RunStats()

    def add_text(self, text: str) -> None:
        for candidate in split_candidates(text):
            self.stats.candidates += 1
            if self.trie.insert(candidate):
                self.stats.accepted += 1
            else:
                self.stats.rejected += 1

    async def run(self, sources: List[str], strict: bool = False) -> List[str]:
        """
        Read all sources and return the minimal domain list.

        A failed source is logged and skipped. With strict, the error of the
        first failed source is raised before anything is inserted.
        """
        async with AsyncSourceLoader(self.timeout) as loader:
            results = await loader.read_all(sources)

        failed = [r for r in results if not r.ok]
        if strict and failed:
            raise failed[0].error

        for result in results:
            if not result.ok:
                logger.error(f"Failed to read {result.source}: {result.error}")
                self.stats.failed_sources.append(result.source)
                continue

            before = self.stats.accepted
            self.add_text(result.text)
            logger.info(
                f"Added {self.stats.accepted - before} domains from {result.source}"
            )

        return self.trie.enumerate()


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Merge domain lists, dropping domains covered by a parent domain"
    )
    parser.add_argument(
        "sources", nargs="*", help="File paths, file://, http:// or https:// urls"
    )
    parser.add_argument("-c", "--config", help="Configuration file")
    parser.add_argument("-o", "--output", help="Output file, stdout if omitted")
    parser.add_argument("--timeout", type=float, help="Timeout per source in seconds")
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Abort when any source can not be read",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Log level")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument(
        "--print-tree", action="store_true", help="Print the domain tree to stdout"
    )
    return parser


async def write_output(path: Optional[str], content: str) -> None:
    if path is None:
        sys.stdout.write(content)
        sys.stdout.flush()
        return

    async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
        await f.write(content)


async def run_cli(args: argparse.Namespace, config: dict) -> int:
    sources = config["sources"] + args.sources
    output = args.output or config["output"]
    timeout = args.timeout if args.timeout is not None else config["timeout"]
    strict = args.strict if args.strict is not None else config["strict"]

    dedup = Deduplicator(timeout=timeout)
    try:
        domains = await dedup.run(sources, strict=strict)
    except SOURCE_ERRORS as e:
        logger.error(f"Aborting, failed to read a source: {e}")
        return 1

    stats = dedup.stats
    logger.info(
        f"{stats.candidates} candidates, {stats.accepted} accepted, "
        f"{stats.rejected} rejected, {len(domains)} domains after merging"
    )

    if len(stats.failed_sources) == len(sources):
        logger.error("No source could be read")
        return 1

    if args.print_tree:
        dedup.trie.pretty_print()

    await write_output(output, format_domains(domains))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    conf = ConfigManager()
    if args.config:
        try:
            conf.parse_file(args.config)
        except (ValueError, FileNotFoundError) as e:
            parser.exit(2, f"{parser.prog}: {e}\n")

    config = conf.config
    setup_logging(args.log_level or config["log_level"], args.log_file)

    if not config["sources"] and not args.sources:
        parser.error("no sources given")
    if args.timeout is not None and args.timeout <= 0:
        parser.error(f"timeout must be positive: {args.timeout}")

    try:
        return asyncio.run(run_cli(args, config))
    except KeyboardInterrupt:
        logger.info("Received KeyboardInterrupt, exiting...")
        return 130


if __name__ == "__main__":
    sys.exit(main())
