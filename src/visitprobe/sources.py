"""URL list reader.

The list is a newline-delimited table. Blank lines and lines starting with
``#`` are ignored. The first remaining line is a header and must mention
``url``; every following line contributes the text before its first comma.
"""

import logging
from pathlib import Path
from typing import List, Union

from .exceptions import ConfigurationError
from .models import Target

logger = logging.getLogger(__name__)


def read_urls(text: str) -> List[str]:
    """Parse URL list text into URLs in source order, without duplicates.

    Raises:
        ConfigurationError: the header line does not contain "url"
    """
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line and not line.startswith("#")]
    if not lines:
        return []

    if "url" not in lines[0].lower():
        raise ConfigurationError("The first line of the URL list must contain a 'url' header.")

    urls: List[str] = []
    seen = set()
    for line_number, line in enumerate(lines[1:], start=2):
        url = line.split(",")[0].strip()
        if not url:
            logger.warning(f"Skipping data line {line_number}: empty url column")
            continue
        if url in seen:
            logger.warning(f"Skipping duplicate URL: {url}")
            continue
        seen.add(url)
        urls.append(url)
    return urls


def load_targets(path: Union[str, Path]) -> List[Target]:
    """Read a URL list file into Targets.

    Raises:
        ConfigurationError: the file is missing or has no 'url' header
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"URL list not found: {file_path}") from None

    targets = [Target.from_url(url) for url in read_urls(text)]
    for target in targets:
        if not target.hostname:
            logger.warning(f"Could not parse a hostname from {target.url!r}; only the status rule can pass it")
    logger.info(f"Loaded {len(targets)} URLs from {file_path}")
    return targets
