from datetime import datetime
from typing import List, Dict, Any, Optional

from google_play_scraper import app, reviews, search, Sort
from google_play_scraper.exceptions import NotFoundError

from ..config import PLAY_PAGE_CEILING, PLAY_PAGE_DELAY, DEFAULT_LANG, DEFAULT_COUNTRY
from ..errors import UpstreamFetchError
from ..models import PlayReview, AggregationRequest, Page, TokenCursor
from ..utils.logger import get_logger

SORTS = {
    "newest": Sort.NEWEST,
    "rating": Sort.RATING,
    "helpfulness": Sort.MOST_RELEVANT,
}

logger = get_logger("play")


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class PlayCollector:
    """Google Play reviews through google-play-scraper, paged with continuation tokens."""
    page_ceiling = PLAY_PAGE_CEILING

    def __init__(self, page_delay: float = PLAY_PAGE_DELAY):
        self.page_delay = page_delay

    def initial_cursor(self) -> TokenCursor:
        return TokenCursor(None)

    def fetch_page(self, request: AggregationRequest, cursor: TokenCursor, count: int) -> Page:
        page_size = min(count, PLAY_PAGE_CEILING)
        try:
            result, token = reviews(
                request.app_id,
                lang=request.lang,
                country=request.country,
                sort=SORTS.get(request.sort, Sort.NEWEST),
                count=page_size,
                continuation_token=cursor.value,
            )
        except NotFoundError as e:
            raise UpstreamFetchError(f"Google Play app not found: {request.app_id}", retryable=False) from e
        except Exception as e:
            raise UpstreamFetchError(f"Failed to fetch reviews batch: {e}") from e

        # The library hands back a token object even at the end; its inner token is None then
        next_cursor = None
        if token is not None and getattr(token, 'token', None) is not None:
            next_cursor = TokenCursor(token)

        logger.debug(f"[{request.app_id}] batch of {len(result)} (requested {page_size})")
        return Page(records=[self._to_review(r) for r in result], next_cursor=next_cursor, page_size=page_size)

    def app_info(self, app_id: str, lang: str = DEFAULT_LANG, country: str = DEFAULT_COUNTRY) -> Dict[str, Any]:
        try:
            raw = app(app_id, lang=lang, country=country)
        except NotFoundError as e:
            raise UpstreamFetchError(f"Google Play app not found: {app_id}", retryable=False) from e
        except Exception as e:
            raise UpstreamFetchError(f"Failed to fetch app info: {e}") from e
        return {
            "app_id": raw.get('appId', app_id),
            "title": raw.get('title'),
            "description": raw.get('description'),
            "summary": raw.get('summary'),
            "installs": raw.get('installs'),
            "min_installs": raw.get('minInstalls'),
            "score": raw.get('score'),
            "ratings": raw.get('ratings'),
            "reviews": raw.get('reviews'),
            "histogram": raw.get('histogram'),
            "price": raw.get('price'),
            "free": raw.get('free'),
            "currency": raw.get('currency'),
            "developer": raw.get('developer'),
            "developer_id": raw.get('developerId'),
            "developer_email": raw.get('developerEmail'),
            "developer_website": raw.get('developerWebsite'),
            "genre": raw.get('genre'),
            "genre_id": raw.get('genreId'),
            "content_rating": raw.get('contentRating'),
            "released": raw.get('released'),
            "updated": raw.get('updated'),
            "version": raw.get('version'),
            "recent_changes": raw.get('recentChanges'),
        }

    def search(self, term: str, num: int = 20, lang: str = DEFAULT_LANG,
               country: str = DEFAULT_COUNTRY) -> List[Dict[str, Any]]:
        try:
            results = search(term, lang=lang, country=country, n_hits=num)
        except Exception as e:
            raise UpstreamFetchError(f"Failed to search apps: {e}") from e
        return [{
            "app_id": r.get('appId'),
            "title": r.get('title'),
            "developer": r.get('developer'),
            "icon": r.get('icon'),
            "score": r.get('score'),
            "price": r.get('price'),
            "free": r.get('free'),
            "genre": r.get('genre'),
        } for r in results]

    @staticmethod
    def _to_review(raw: Dict[str, Any]) -> PlayReview:
        return PlayReview(
            id=raw.get('reviewId', ''),
            author_name=raw.get('userName', ''),
            body=raw.get('content'),
            rating=int(raw.get('score') or 0),
            submitted_at=_iso(raw.get('at')) or '',
            version=raw.get('reviewCreatedVersion') or raw.get('appVersion'),
            thumbs_up=int(raw.get('thumbsUpCount') or 0),
            reply_body=raw.get('replyContent'),
            reply_at=_iso(raw.get('repliedAt')),
        )
