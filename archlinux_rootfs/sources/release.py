"""Latest release discovery.

The Arch Linux download page lists release information in a box with id
``arch-downloads``; the first item of its first list holds the current
release, e.g. ``<li><strong>Current Release:</strong> 2024.02.01</li>``.
The lookup is the structural query
``//*[@id="arch-downloads"]/ul[1]/li[1]/text()``.
"""

from __future__ import annotations

import logging
from html.parser import HTMLParser

import httpx

from archlinux_rootfs.config import ARCHLINUX_DOWNLOAD_PAGE
from archlinux_rootfs.sources.errors import ResolutionError
from archlinux_rootfs.sources.fetch import transport_error

logger = logging.getLogger(__name__)

# Timeout for the index page request (seconds)
INDEX_TIMEOUT = 30

RELEASE_ANCHOR_ID = "arch-downloads"

# Elements that never get an end tag
EMPTY_TAGS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
}


class ReleaseItemParser(HTMLParser):
    """Collect the direct text of ``#<anchor>/ul[1]/li[1]``.

    Depths are the length of the tag stack once the element is open, so an
    element is a direct child of another when its parent depth equals the
    other's depth.
    """

    def __init__(self, anchor_id: str = RELEASE_ANCHOR_ID) -> None:
        super().__init__(convert_charrefs=True)
        self.anchor_id = anchor_id
        self.tag_stack: list[str] = []
        self.anchor_depth: int | None = None
        self.list_depth: int | None = None
        self.item_depth: int | None = None
        self.done = False
        self.text_nodes: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self.done:
            return
        parent_depth = len(self.tag_stack)
        if tag in EMPTY_TAGS:
            return
        self.tag_stack.append(tag)

        if self.anchor_depth is None:
            if dict(attrs).get("id") == self.anchor_id:
                self.anchor_depth = parent_depth + 1
        elif self.list_depth is None:
            if tag == "ul" and parent_depth == self.anchor_depth:
                self.list_depth = parent_depth + 1
        elif self.item_depth is None:
            if tag == "li" and parent_depth == self.list_depth:
                self.item_depth = parent_depth + 1

    def handle_endtag(self, tag: str) -> None:
        if self.done:
            return
        for i in range(len(self.tag_stack) - 1, -1, -1):
            if self.tag_stack[i] == tag:
                del self.tag_stack[i:]
                break

        depth = len(self.tag_stack)
        # Closing the innermost open element of the query ends the search
        for open_depth in (self.item_depth, self.list_depth, self.anchor_depth):
            if open_depth is not None:
                if depth < open_depth:
                    self.done = True
                break

    def handle_data(self, data: str) -> None:
        if self.done or self.item_depth is None:
            return
        if len(self.tag_stack) == self.item_depth:
            self.text_nodes.append(data)

    def first_text(self) -> str | None:
        """Return the first non-blank direct text node, stripped."""
        for text in self.text_nodes:
            if text.strip():
                return text.strip()
        return None


def find_latest_release(html: str, anchor_id: str = RELEASE_ANCHOR_ID) -> str:
    """Extract the current release from the download page HTML.

    Args:
        html: Source of the download page.
        anchor_id: Id of the element holding the release list.

    Returns:
        Release identifier, e.g. '2024.02.01'.

    Raises:
        ResolutionError: If the page has no matching node.
    """
    parser = ReleaseItemParser(anchor_id)
    parser.feed(html)
    parser.close()

    release = parser.first_text()
    if not release:
        raise ResolutionError("Failed to determine latest release")
    return release


def fetch_html_index(
    client: httpx.Client,
    url: str = ARCHLINUX_DOWNLOAD_PAGE,
    timeout: float = INDEX_TIMEOUT,
) -> str:
    """Fetch the download page.

    Args:
        client: HTTPX client instance.
        url: URL of the page.
        timeout: Request timeout in seconds.

    Returns:
        Page source.

    Raises:
        DownloadError: If the fetch fails.
    """
    logger.debug("Fetching release index from %s", url)

    try:
        response = client.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise transport_error(url, e) from e
    return response.text


def get_latest_release(
    client: httpx.Client,
    index_url: str = ARCHLINUX_DOWNLOAD_PAGE,
    timeout: float = INDEX_TIMEOUT,
) -> str:
    """Determine the latest Arch Linux release.

    Raises:
        DownloadError: If the index page cannot be fetched.
        ResolutionError: If the page does not name a release.
    """
    html = fetch_html_index(client, index_url, timeout=timeout)
    release = find_latest_release(html)
    logger.info("Latest release is %s", release)
    return release


__all__ = [
    "RELEASE_ANCHOR_ID",
    "ReleaseItemParser",
    "fetch_html_index",
    "find_latest_release",
    "get_latest_release",
]
