"""
Discover and download the Fama–French factor archives.

This module:
- Scrapes the Kenneth French data library page to discover available ZIP files.
- Selects the ZIPs used as regression covariates:
  * Fama–French 5-Factor (2x3) model, monthly (includes Mkt-RF, SMB, HML,
    RMW, CMA and RF),
  * Momentum factor, monthly (Carhart's fourth factor).
- Downloads those ZIPs into `hf_neutral_data/raw/`.
"""

from __future__ import annotations

from dataclasses import dataclass
from html.parser import HTMLParser
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests

from .config import HTTP_TIMEOUT, RAW_DIR


BASE_URL = "https://mba.tuck.dartmouth.edu/pages/faculty/ken.french/"
DATA_LIBRARY_URL = BASE_URL + "data_library.html"


class _LinkParser(HTMLParser):
    """Collect href targets ending in .zip."""

    def __init__(self) -> None:
        super().__init__()
        self.file_links: List[str] = []

    def handle_starttag(self, tag, attrs) -> None:  # type: ignore[override]
        if tag != "a":
            return
        for attr, value in attrs:
            if attr == "href" and value and value.lower().endswith(".zip"):
                self.file_links.append(value)


@dataclass
class AvailableFiles:
    """Container for discovered Fama–French ZIP files."""

    filenames: List[str]
    url_map: Dict[str, str]


def _absolute_url(link: str) -> str:
    if link.startswith("http"):
        return link
    if link.startswith("/"):
        return "https://mba.tuck.dartmouth.edu" + link
    if link.startswith("ftp/"):
        return BASE_URL + link
    return BASE_URL + "ftp/" + link


def parse_available_files(html: str) -> AvailableFiles:
    """Extract ZIP filenames and absolute URLs from the data library HTML."""
    parser = _LinkParser()
    parser.feed(html)

    url_map: Dict[str, str] = {}
    for link in parser.file_links:
        full_url = _absolute_url(link)
        url_map[full_url.split("/")[-1]] = full_url

    return AvailableFiles(filenames=sorted(url_map), url_map=url_map)


def discover_available_files() -> AvailableFiles:
    """
    Scrape the Fama–French data library page and return the available ZIPs.
    """
    print(f"Discovering Fama–French ZIP files from {DATA_LIBRARY_URL} ...")

    response = requests.get(DATA_LIBRARY_URL, timeout=HTTP_TIMEOUT)
    response.raise_for_status()

    available = parse_available_files(response.text)
    print(f"  Found {len(available.filenames)} ZIP files.")
    return available


def find_file_by_keywords(
    available: AvailableFiles,
    keywords: List[str],
    exclude_keywords: Optional[List[str]] = None,
    prefer_csv: bool = True,
) -> Optional[str]:
    """
    Find a filename that contains all `keywords` and none of
    `exclude_keywords` (case-insensitive). Prefers '_CSV' variants.
    """
    exclude_keywords = exclude_keywords or []
    matches = [
        name
        for name in available.filenames
        if all(kw.upper() in name.upper() for kw in keywords)
        and not any(kw.upper() in name.upper() for kw in exclude_keywords)
    ]
    if not matches:
        return None

    if prefer_csv:
        csv_matches = [m for m in matches if "_CSV" in m.upper()]
        if csv_matches:
            return csv_matches[0]
    return matches[0]


def _download_zip(url: str, dest: Path, description: str) -> Path:
    """
    Download a ZIP file from `url` to `dest`, skipping existing files.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)

    if dest.exists():
        print(f"  ✓ {description} already downloaded at {dest}")
        return dest

    print(f"  Downloading {description} ...")
    print(f"    URL: {url}")
    resp = requests.get(url, timeout=HTTP_TIMEOUT)
    resp.raise_for_status()
    if not resp.content:
        raise RuntimeError(f"Empty response when downloading {description} from {url}")

    dest.write_bytes(resp.content)
    print(f"  ✓ Saved {description} ({dest.stat().st_size:,} bytes) to {dest}")
    return dest


def download_ff5_zip(available: Optional[AvailableFiles] = None) -> Path:
    """Download the Fama–French 5-factor (2x3) monthly ZIP."""
    if available is None:
        available = discover_available_files()

    # Daily and weekly variants share the stem; international regions are
    # prefixed (e.g. 'Europe_5_Factors').
    name = find_file_by_keywords(
        available,
        keywords=["F-F_Research_Data_5_Factors_2x3"],
        exclude_keywords=["daily", "weekly"],
    )
    if name is None:
        raise RuntimeError("Could not find the Fama–French 5-factor (2x3) ZIP on the data library page.")
    return _download_zip(available.url_map[name], RAW_DIR / name, "Fama–French 5-Factor model")


def download_momentum_zip(available: Optional[AvailableFiles] = None) -> Path:
    """Download the monthly momentum factor ZIP."""
    if available is None:
        available = discover_available_files()

    name = find_file_by_keywords(
        available,
        keywords=["F-F_Momentum_Factor"],
        exclude_keywords=["daily", "weekly"],
    )
    if name is None:
        raise RuntimeError("Could not find the momentum factor ZIP on the data library page.")
    return _download_zip(available.url_map[name], RAW_DIR / name, "Momentum factor")


def download_all_factor_zips() -> Tuple[Path, Path]:
    """
    Download every factor ZIP the regressions need.

    Returns
    -------
    (Path, Path)
        (ff5_zip, momentum_zip)
    """
    available = discover_available_files()
    return download_ff5_zip(available), download_momentum_zip(available)
