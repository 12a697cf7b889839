# -*- coding: utf-8 -*-
#
# tubeterm - Terminal Video Browser
# Copyright (C) 2026 xir
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#

import requests
import re
import threading
import logging
from logging.handlers import RotatingFileHandler
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union
from bs4 import BeautifulSoup
import os

from config import Settings

os.makedirs('logs', exist_ok=True)
log_handler = RotatingFileHandler('logs/backend.log', maxBytes=1024*1024, backupCount=1)
log_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                           datefmt='%Y-%m-%d %H:%M:%S'))
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(log_handler)

YT_URL = "https://www.youtube.com"
USER_AGENT = "Mozilla/5.0 (X11; U; Linux armv7l; en-US; rv:1.9.2a1pre) Gecko/20090322 Fennec/1.0b2pre"
ACCEPT_LANGUAGE = "en-US,en;q=0.9"

_VIDEO_ID_RE = re.compile(r"/watch\?v\\x3d([^\\]+)")
_REQUIRED_FIELDS = ('url', 'title', 'duration', 'uploaderName', 'uploaderVerified')

FetchResult = Tuple[bool, Union[List['ResultRecord'], str]]


@dataclass(frozen=True)
class ResultRecord:
    title: str
    locator: str
    duration: str
    uploader: str
    verified: bool


def format_duration(d: int) -> str:
    """Format a length in seconds as minutes:seconds.

    Padding is intentionally lopsided: seconds get a leading zero only past
    ten minutes, minutes only when seconds are above ten.
    """
    minutes, seconds = divmod(d, 60)
    if seconds < 10 and minutes > 10:
        return f"{minutes}:0{seconds}"
    if seconds > 10 and minutes < 10:
        return f"0{minutes}:{seconds}"
    return f"{minutes}:{seconds}"


def normalize_title(title: str) -> str:
    return title.replace("//", "")


def parse_items(items: List[Dict]) -> List[ResultRecord]:
    """Turn raw API items into records, skipping shorts, non-streams and incomplete items."""
    records = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if str(item.get('type', '')).lower() != 'stream':
            continue
        if item.get('isShort') is not False:
            continue
        missing = [key for key in _REQUIRED_FIELDS if item.get(key) is None]
        if missing:
            logger.warning(f"Dropping item {item.get('url')!r}, missing {', '.join(missing)}")
            continue
        try:
            duration = format_duration(int(item['duration']))
        except (TypeError, ValueError):
            logger.warning(f"Dropping item {item.get('url')!r}, bad duration {item['duration']!r}")
            continue
        records.append(ResultRecord(
            title=normalize_title(str(item['title'])),
            locator=f"{YT_URL}{item['url']}",
            duration=duration,
            uploader=str(item['uploaderName']),
            verified=bool(item['uploaderVerified']),
        ))
    return records


def _new_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        'User-Agent': USER_AGENT,
        'Accept-Language': ACCEPT_LANGUAGE,
    })
    return session


class PipedBackend:
    """Trending and search results from a Piped JSON API instance."""

    def __init__(self, api_url: str, region: str = 'US', timeout: float = 10.0,
                 search_pages: int = 3, session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip('/')
        self.region = region
        self.timeout = timeout
        self.search_pages = max(1, search_pages)
        self.session = session or _new_session()

    def request(self, path: str, params: Optional[Dict] = None):
        full_url = f"{self.api_url}{path}"
        logger.debug(f"Sending request to: {full_url}")
        logger.debug(f"Request params: {params}")
        response = self.session.get(full_url, params=params, timeout=self.timeout)
        logger.debug(f"Response status code: {response.status_code}")
        response.raise_for_status()
        return response.json()

    def trending(self) -> List[ResultRecord]:
        payload = self.request("/trending", {'region': self.region})
        if not isinstance(payload, list):
            raise ValueError("Unexpected trending payload")
        return parse_items(payload)

    def search(self, query: str) -> List[ResultRecord]:
        params = {'q': query, 'filter': 'all'}
        payload = self.request("/search", params)
        if not isinstance(payload, dict):
            raise ValueError("Unexpected search payload")
        items = list(payload.get('items') or [])
        next_page = payload.get('nextpage')
        for _ in range(self.search_pages - 1):
            if not next_page:
                break
            page = self.request("/nextpage/search", dict(params, nextpage=next_page))
            if not isinstance(page, dict):
                raise ValueError("Unexpected search payload")
            items.extend(page.get('items') or [])
            next_page = page.get('nextpage')
        return parse_items(items)

    def fetch(self, query: Optional[str] = None) -> FetchResult:
        query = (query or '').strip()
        try:
            if query:
                logger.info(f"Searching for '{query}'")
                records = self.search(query)
            else:
                logger.info("Fetching trending")
                records = self.trending()
            logger.info(f"Fetched {len(records)} results")
            return True, records
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching results for '{query}': {e}")
            return False, str(e)


class TitleCache:
    """Bounded, thread-safe video id to title store."""

    def __init__(self, max_size: int = 256):
        self.max_size = max_size
        self._data = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            value = self._data.get(key)
            if value is not None:
                self._data.move_to_end(key)
            return value

    def set(self, key, value):
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            if len(self._data) > self.max_size:
                self._data.popitem(last=False)

    def __contains__(self, key):
        with self._lock:
            return key in self._data

    def __len__(self):
        with self._lock:
            return len(self._data)


def extract_video_ids(page: str) -> List[str]:
    seen = OrderedDict()
    for video_id in _VIDEO_ID_RE.findall(page):
        seen.setdefault(video_id, None)
    return list(seen)


class ScrapeBackend:
    """Results scraped from the YouTube HTML pages, titles resolved per video."""

    def __init__(self, cache: TitleCache, timeout: float = 10.0, workers: int = 8,
                 session: Optional[requests.Session] = None):
        self.cache = cache
        self.timeout = timeout
        self.workers = workers
        self.session = session or _new_session()

    def _get(self, url: str, params: Optional[Dict] = None) -> str:
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def video_title(self, video_id: str) -> Optional[str]:
        cached = self.cache.get(video_id)
        if cached is not None:
            return cached
        try:
            html = self._get(f"{YT_URL}/watch", {'v': video_id})
        except requests.RequestException as e:
            logger.warning(f"Title lookup failed for {video_id}: {e}")
            return None
        soup = BeautifulSoup(html, 'html.parser')
        if soup.title is None or soup.title.string is None:
            logger.warning(f"No title found for {video_id}")
            return None
        title = soup.title.string.strip()
        if title.endswith(" - YouTube"):
            title = title[:-len(" - YouTube")]
        self.cache.set(video_id, title)
        return title

    def fetch(self, query: Optional[str] = None) -> FetchResult:
        query = (query or '').strip()
        try:
            if query:
                logger.info(f"Scraping search results for '{query}'")
                page = self._get(f"{YT_URL}/results", {'search_query': query})
            else:
                logger.info("Scraping trending page")
                page = self._get(f"{YT_URL}/feed/trending")
        except requests.RequestException as e:
            logger.error(f"Error scraping results for '{query}': {e}")
            return False, str(e)

        video_ids = extract_video_ids(page)
        if not video_ids:
            return True, []
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            titles = list(pool.map(self.video_title, video_ids))

        records = []
        for video_id, title in zip(video_ids, titles):
            if not title:
                continue
            records.append(ResultRecord(
                title=normalize_title(title),
                locator=f"{YT_URL}/watch?v={video_id}",
                duration="-",
                uploader="",
                verified=False,
            ))
        logger.info(f"Scraped {len(records)} results")
        return True, records


def make_fetcher(settings: Settings, cache: Optional[TitleCache] = None):
    if settings.backend == 'piped':
        return PipedBackend(settings.api_url, settings.region, settings.request_timeout,
                            settings.search_pages)
    if settings.backend == 'scrape':
        return ScrapeBackend(cache if cache is not None else TitleCache(settings.title_cache_size),
                             settings.request_timeout)
    raise ValueError(f"Unknown backend: {settings.backend}")
