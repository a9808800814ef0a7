import re
from typing import Optional

_PLAY_ID = re.compile(r'[?&]id=([^&#]+)')

# Most specific shape first
_APPSTORE_IDS = [
    re.compile(r'/app/[^/]+/id(\d+)'),   # https://apps.apple.com/tr/app/whatsapp-messenger/id310633997
    re.compile(r'/app/id(\d+)'),         # https://apps.apple.com/app/id310633997
    re.compile(r'/id(\d+)'),
]


def extract_play_app_id(url: str) -> Optional[str]:
    if not url:
        return None
    m = _PLAY_ID.search(url)
    return m.group(1) if m else None


def extract_appstore_app_id(url: str) -> Optional[str]:
    if not url:
        return None
    for pattern in _APPSTORE_IDS:
        m = pattern.search(url)
        if m:
            return m.group(1)
    return None
