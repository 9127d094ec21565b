"""Download the raw NOAA Storm Data file.

Saves the bzip2-compressed CSV as-is into the raw data layer
(data/01_raw/); the data_processing pipeline reads it without
decompressing first.

Run:
    python -m stormharm.download
"""

from __future__ import annotations

import logging
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

STORM_DATA_URL = "https://d396qusza40orc.cloudfront.net/repdata%2Fdata%2FStormData.csv.bz2"
DEFAULT_DEST = Path("data/01_raw/StormData.csv.bz2")


def download_storm_data(
    url: str = STORM_DATA_URL,
    dest: str | Path = DEFAULT_DEST,
    overwrite: bool = False,
    timeout: int = 300,
) -> Path:
    """Stream the Storm Data file to ``dest``.

    An existing file is left alone unless ``overwrite`` is set.

    Returns:
        Path to the downloaded file.
    """
    dest = Path(dest)
    if dest.exists() and not overwrite:
        logger.info("Already exists, skipping download: %s", dest)
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s → %s", url, dest)

    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with open(dest, "wb") as f:
            for chunk in response.iter_content(chunk_size=1024 * 1024):
                if chunk:
                    f.write(chunk)

    logger.info("Downloaded %.1f MB", dest.stat().st_size / 1024 / 1024)
    return dest


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    download_storm_data()
