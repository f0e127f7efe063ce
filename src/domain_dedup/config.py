from pathlib import Path
from typing import Any, Dict, List, Tuple

from domain_dedup.loader import DEFAULT_TIMEOUT

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigManager:
    """
    A conf file would look like as follow:

        # lists to merge
        source=https://example.org/blocklist.txt
        source=file:///etc/blocklists/local.txt
        source=extra.txt

        output=merged.txt
        timeout=10
        log-level=DEBUG
        strict=true
    """

    def __init__(self) -> None:
        self.config: Dict[str, Any] = {
            "sources": [],
            "output": None,  # stdout
            "timeout": DEFAULT_TIMEOUT,
            "log_level": "INFO",
            "strict": False,
        }

        # define valid prefixes in the config file
        # and the functions to parse the line for each prefix
        self.valid_prefixes = {
            "source": self._batch_source_line,
            "output": self._parse_output_line,
            "timeout": self._parse_timeout_line,
            "log-level": self._parse_log_level_line,
            "strict": self._parse_strict_line,
        }

    def parse_file(self, file_path: str) -> Dict[str, Any]:
        conf = Path(file_path)
        if not conf.is_file():
            raise FileNotFoundError(f"No config file found at {file_path}")

        with open(conf, "r", encoding="utf-8") as f:
            return self.parse_lines(f)

    def parse_lines(self, lines) -> Dict[str, Any]:
        """
        Read all lines first, only storing the ones that are not comments.
        Syntax errors are collected and reported together.
        """
        batches: Dict[str, List[Tuple[int, str]]] = {
            prefix: [] for prefix in self.valid_prefixes
        }
        errors = []  # record all the syntax errors found

        for line_num, line in enumerate(lines, start=1):
            line = line.strip()

            # skip comments
            if line.startswith("#") or (not line):
                continue

            equals_pos = line.find("=")
            if equals_pos == -1:
                errors.append((line_num, line, "Missing '=' in configuration line"))
                continue

            directive = line[:equals_pos].strip()
            value = line[equals_pos + 1 :].strip()

            if directive in self.valid_prefixes:
                batches[directive].append((line_num, value))
            else:
                errors.append((line_num, line, f"Unknown directive: {directive}"))

        if errors:
            error_message = [
                f"Line {line_num}: {line} - {msg}" for line_num, line, msg in errors
            ]
            raise ValueError("Configuration errors found\n" + "\n".join(error_message))

        for prefix, handler in self.valid_prefixes.items():
            if batches[prefix]:
                handler(batches[prefix])

        return self.config

    def get_sources(self) -> List[str]:
        return self.config["sources"]

    def _batch_source_line(self, lines: List[Tuple[int, str]]):
        for line_num, value in lines:
            if not value:
                raise ValueError(f"Line {line_num}: Empty source")
            self.config["sources"].append(value)

    def _parse_output_line(self, lines: List[Tuple[int, str]]):
        # last one wins
        line_num, value = lines[-1]
        if not value:
            raise ValueError(f"Line {line_num}: Empty output path")
        self.config["output"] = value

    def _parse_timeout_line(self, lines: List[Tuple[int, str]]):
        line_num, value = lines[-1]

        try:
            timeout = float(value)
        except ValueError:
            raise ValueError(f"Line {line_num}: Invalid timeout: {value}")

        if timeout <= 0:
            raise ValueError(f"Line {line_num}: Timeout must be positive: {value}")
        self.config["timeout"] = timeout

    def _parse_log_level_line(self, lines: List[Tuple[int, str]]):
        line_num, value = lines[-1]
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Line {line_num}: Invalid log level: {value}")
        self.config["log_level"] = level

    def _parse_strict_line(self, lines: List[Tuple[int, str]]):
        line_num, value = lines[-1]
        flag = value.lower()
        if flag in ("true", "yes", "1"):
            self.config["strict"] = True
        elif flag in ("false", "no", "0"):
            self.config["strict"] = False
        else:
            raise ValueError(f"Line {line_num}: Invalid strict value: {value}")
