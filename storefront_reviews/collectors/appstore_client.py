import requests
from typing import List, Dict, Any, Optional

from ..config import APPSTORE_PAGE_SIZE, APPSTORE_MAX_PAGE, APPSTORE_PAGE_DELAY, HTTP_TIMEOUT, DEFAULT_COUNTRY
from ..errors import UpstreamFetchError
from ..models import AppStoreReview, AggregationRequest, Page, PageCursor
from ..utils.logger import get_logger

RSS_TMPL = "https://itunes.apple.com/{country}/rss/customerreviews/page={page}/id={app_id}/sortby={sort}/json"
LOOKUP_URL = "https://itunes.apple.com/lookup"
SEARCH_URL = "https://itunes.apple.com/search"

HEADERS = {"User-Agent": "Mozilla/5.0"}

SORTS = {"mostRecent": "mostrecent", "mostHelpful": "mosthelpful"}

logger = get_logger("appstore")


def _label(entry: Dict, key: str, default: str = "") -> str:
    value = entry.get(key) or {}
    if isinstance(value, dict):
        return value.get('label', default)
    return str(value)


class AppStoreCollector:
    """App Store customer reviews over the iTunes RSS JSON feed: 50 per page, pages 1..10."""
    page_ceiling = APPSTORE_PAGE_SIZE

    def __init__(self, page_delay: float = APPSTORE_PAGE_DELAY, timeout: float = HTTP_TIMEOUT):
        self.page_delay = page_delay
        self.timeout = timeout

    def initial_cursor(self) -> PageCursor:
        return PageCursor(1)

    def fetch_page(self, request: AggregationRequest, cursor: PageCursor, count: int) -> Page:
        # The page size is fixed by the feed, count only matters to the caller
        nxt = cursor.next()
        if cursor.number > APPSTORE_MAX_PAGE:
            return Page(records=[], next_cursor=nxt, page_size=APPSTORE_PAGE_SIZE)

        url = RSS_TMPL.format(country=request.country, page=cursor.number, app_id=request.app_id,
                              sort=SORTS.get(request.sort, "mostrecent"))
        data = self._get_json(url)
        entries = data.get('feed', {}).get('entry', [])
        if isinstance(entries, dict):
            entries = [entries]

        out = []
        for e in entries:
            # The first entry can be app metadata, skip non-reviews
            if 'im:rating' not in e:
                continue
            out.append(self._to_review(e))
        logger.debug(f"[{request.app_id}] page {cursor.number}: {len(out)} reviews")
        return Page(records=out, next_cursor=nxt, page_size=APPSTORE_PAGE_SIZE)

    def app_info(self, app_id: str, country: str = DEFAULT_COUNTRY) -> Dict[str, Any]:
        data = self._get_json(LOOKUP_URL, params={"id": app_id, "country": country})
        results = data.get('results') or []
        if not results:
            raise UpstreamFetchError(f"App Store app not found: {app_id}", retryable=False)
        r = results[0]
        return {
            "app_id": str(r.get('trackId', app_id)),
            "bundle_id": r.get('bundleId'),
            "title": r.get('trackName'),
            "description": r.get('description'),
            "url": r.get('trackViewUrl'),
            "icon": r.get('artworkUrl512') or r.get('artworkUrl100'),
            "screenshots": r.get('screenshotUrls', []),
            "developer": r.get('artistName'),
            "developer_id": r.get('artistId'),
            "developer_website": r.get('sellerUrl'),
            "genre": r.get('primaryGenreName'),
            "genre_id": r.get('primaryGenreId'),
            "price": r.get('price'),
            "currency": r.get('currency'),
            "free": r.get('price') == 0,
            "version": r.get('version'),
            "released": r.get('releaseDate'),
            "updated": r.get('currentVersionReleaseDate'),
            "release_notes": r.get('releaseNotes'),
            "score": r.get('averageUserRating'),
            "ratings": r.get('userRatingCount'),
            "size": r.get('fileSizeBytes'),
            "content_rating": r.get('contentAdvisoryRating'),
            "languages": r.get('languageCodesISO2A', []),
            "required_os_version": r.get('minimumOsVersion'),
        }

    def search(self, term: str, num: int = 20, country: str = DEFAULT_COUNTRY) -> List[Dict[str, Any]]:
        params = {"term": term, "country": country, "media": "software", "entity": "software", "limit": num}
        data = self._get_json(SEARCH_URL, params=params)
        return [{
            "app_id": str(r.get('trackId', "")),
            "bundle_id": r.get('bundleId'),
            "title": r.get('trackName'),
            "developer": r.get('artistName'),
            "developer_id": r.get('artistId'),
            "icon": r.get('artworkUrl100'),
            "score": r.get('averageUserRating'),
            "price": r.get('price'),
            "currency": r.get('currency'),
            "free": r.get('price') == 0,
            "genre": r.get('primaryGenreName'),
        } for r in data.get('results', [])]

    def _get_json(self, url: str, params: Optional[Dict] = None) -> Dict:
        try:
            r = requests.get(url, params=params, headers=HEADERS, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamFetchError(f"Failed to fetch App Store data: {e}") from e
        if r.status_code == 404:
            raise UpstreamFetchError("App Store app not found", retryable=False)
        if r.status_code != 200:
            raise UpstreamFetchError(f"Failed to fetch App Store data: HTTP {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamFetchError(f"App Store returned malformed JSON: {e}") from e

    @staticmethod
    def _to_review(e: Dict) -> AppStoreReview:
        link = e.get('link') or {}
        if isinstance(link, list):
            link = link[0] if link else {}
        return AppStoreReview(
            id=_label(e, 'id'),
            author_name=e.get('author', {}).get('name', {}).get('label', ""),
            body=_label(e, 'content'),
            rating=int(_label(e, 'im:rating', "0") or 0),
            submitted_at=_label(e, 'updated'),
            version=_label(e, 'im:version') or None,
            title=_label(e, 'title'),
            permalink=link.get('attributes', {}).get('href', ""),
        )
