from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from .config import DEFAULT_LANG, DEFAULT_COUNTRY


class PlayExportRequest(BaseModel):
    url: str = Field(..., description="Google Play Store URL (e.g., 'https://play.google.com/store/apps/details?id=com.whatsapp')")
    num: int = Field(default=500, ge=1, description="Number of reviews to export, no upper limit")
    lang: str = Field(default=DEFAULT_LANG, description="2-letter language code")
    country: str = Field(default=DEFAULT_COUNTRY, description="2-letter country code")
    sort: str = Field(default="newest", description="newest|rating|helpfulness")


class AppStoreExportRequest(BaseModel):
    url: str = Field(..., description="App Store URL (e.g., 'https://apps.apple.com/tr/app/whatsapp-messenger/id310633997')")
    num: int = Field(default=500, ge=1, description="Number of reviews to export, no upper limit")
    country: str = Field(default=DEFAULT_COUNTRY, description="2-letter country code")
    sort: str = Field(default="mostRecent", description="mostRecent|mostHelpful")


class PlayReviewOut(BaseModel):
    id: str
    author_name: Optional[str] = ""
    body: Optional[str] = None
    rating: int
    submitted_at: str
    version: Optional[str] = None
    thumbs_up: int = 0
    reply_body: Optional[str] = None
    reply_at: Optional[str] = None


class AppStoreReviewOut(BaseModel):
    id: str
    author_name: Optional[str] = ""
    title: Optional[str] = ""
    body: Optional[str] = None
    rating: int
    submitted_at: str
    version: Optional[str] = None
    permalink: Optional[str] = ""


class ReviewsMeta(BaseModel):
    app_id: str
    platform: str
    requested_count: int
    actual_count: int
    has_more: bool
    reached_target: bool
    partial: bool
    error: Optional[str] = None
    page_attempts: int
    sort: str
    lang: Optional[str] = None
    country: str
    fetched_at: datetime


class PlayReviewsOut(BaseModel):
    success: bool = True
    data: List[PlayReviewOut]
    meta: ReviewsMeta


class AppStoreReviewsOut(BaseModel):
    success: bool = True
    data: List[AppStoreReviewOut]
    meta: ReviewsMeta


class ExportInfoOut(BaseModel):
    file_path: str
    file_name: str
    file_size: int
    file_size_formatted: str
    review_count: int
    created_at: datetime
    modified_at: datetime


class ExportData(BaseModel):
    message: str
    export_info: ExportInfoOut
    review_count: int
    app_id: str
    download_url: str


class ExportMeta(BaseModel):
    url: str
    app_id: str
    platform: str
    requested_count: int
    actual_count: int
    partial: bool
    error: Optional[str] = None
    sort: str
    lang: Optional[str] = None
    country: str
    exported_at: datetime


class ExportOut(BaseModel):
    success: bool = True
    data: ExportData
    meta: ExportMeta


class ExportListItem(BaseModel):
    file_name: str
    file_path: str
    file_size: int
    file_size_formatted: str
    created_at: datetime
    modified_at: datetime


class ExportListOut(BaseModel):
    success: bool = True
    data: List[ExportListItem]
    meta: Dict[str, Any]


class CatalogOut(BaseModel):
    success: bool = True
    data: Any
    meta: Dict[str, Any]


class ErrorOut(BaseModel):
    success: bool = False
    error: str
    message: str
