import re
from datetime import datetime, timezone
from typing import Sequence

from fastapi import FastAPI, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from .config import (EXPORT_DIR, DEFAULT_LANG, DEFAULT_COUNTRY, HOST, PORT,
                     PLAY_SORTS, APPSTORE_SORTS)
from .collectors.play_client import PlayCollector
from .collectors.appstore_client import AppStoreCollector
from .errors import ReviewApiError, InvalidInputError, NoReviewsError
from .models import AggregationRequest, AggregationResult
from .schemas import (PlayExportRequest, AppStoreExportRequest, PlayReviewsOut, AppStoreReviewsOut,
                      ExportOut, ExportListOut, CatalogOut, ErrorOut)
from .services.review_service import AggregatorSettings
from .services.csv_service import serialize, PLAY_SCHEMA, APPSTORE_SCHEMA
from .services.export_service import ExportStore, play_export_name, appstore_export_name
from .utils.urls import extract_play_app_id, extract_appstore_app_id
from .utils.logger import get_logger, setup_logger

logger = get_logger("api")

app = FastAPI(title="Storefront Review Export API", version="1.0.0",
              responses={400: {"model": ErrorOut}, 502: {"model": ErrorOut}})

_PLAY_APP_ID = re.compile(r'^[A-Za-z0-9_.]+$')


def get_export_store() -> ExportStore:
    return ExportStore(EXPORT_DIR)

def get_play_collector() -> PlayCollector:
    return PlayCollector()

def get_appstore_collector() -> AppStoreCollector:
    return AppStoreCollector()

def get_aggregator_settings() -> AggregatorSettings:
    return AggregatorSettings()


@app.exception_handler(ReviewApiError)
async def api_error_handler(request: Request, exc: ReviewApiError):
    return JSONResponse(status_code=exc.status_code,
                        content={"success": False, "error": exc.category, "message": exc.message})

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    msg = "; ".join(f"{'.'.join(str(p) for p in e['loc'] if p != 'body')}: {e['msg']}" for e in exc.errors())
    return JSONResponse(status_code=400, content={"success": False, "error": "invalid_input", "message": msg})

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500,
                        content={"success": False, "error": "internal_error", "message": "Something went wrong!"})


def _now() -> datetime:
    return datetime.now(timezone.utc)

def _pick_sort(sort: str, allowed: Sequence[str]) -> str:
    return sort if sort in allowed else allowed[0]

def _check_play_id(app_id: str) -> str:
    if not app_id or not _PLAY_APP_ID.match(app_id):
        raise InvalidInputError("App ID is required and must be a valid package name")
    return app_id

def _check_appstore_id(app_id: str) -> str:
    if not app_id or not app_id.isdigit():
        raise InvalidInputError("App Store app ID is required and must be numeric")
    return app_id

def _aggregate(collector, settings: AggregatorSettings, app_id: str, num: int, lang: str,
               country: str, sort: str) -> AggregationResult:
    req = AggregationRequest(app_id=app_id, target_count=num, lang=lang, country=country, sort=sort)
    return settings.build(collector).aggregate(req)

def _reviews_meta(result: AggregationResult, app_id: str, platform: str, num: int,
                  sort: str, lang, country: str) -> dict:
    return {
        "app_id": app_id,
        "platform": platform,
        "requested_count": num,
        "actual_count": len(result.records),
        "has_more": result.has_more,
        "reached_target": result.reached_target,
        "partial": result.partial,
        "error": result.error,
        "page_attempts": len(result.events),
        "sort": sort,
        "lang": lang,
        "country": country,
        "fetched_at": _now(),
    }

def _export(store: ExportStore, result: AggregationResult, schema, file_name: str, *, url: str,
            app_id: str, platform: str, num: int, sort: str, lang, country: str, label: str) -> dict:
    if not result.records:
        raise NoReviewsError(f"No reviews found for the specified {label} app")
    path = store.write(file_name, serialize(result.records, schema))
    info = store.stats(path)
    return {
        "success": True,
        "data": {
            "message": f"{label} reviews exported successfully",
            "export_info": info.to_dict(),
            "review_count": len(result.records),
            "app_id": app_id,
            "download_url": f"/api/reviews/download/{info.file_name}",
        },
        "meta": {
            "url": url,
            "app_id": app_id,
            "platform": platform,
            "requested_count": num,
            "actual_count": len(result.records),
            "partial": result.partial,
            "error": result.error,
            "sort": sort,
            "lang": lang,
            "country": country,
            "exported_at": _now(),
        },
    }


@app.get("/health")
def health():
    return {"status": "OK", "message": "Storefront review API is running", "timestamp": _now().isoformat()}


@app.get("/api/reviews/search", response_model=CatalogOut)
def search_play(q: str = Query(..., min_length=1), num: int = Query(default=20, ge=1),
                lang: str = DEFAULT_LANG, country: str = DEFAULT_COUNTRY,
                collector: PlayCollector = Depends(get_play_collector)):
    results = collector.search(q, num=num, lang=lang, country=country)
    return {"success": True, "data": results,
            "meta": {"query": q, "requested_count": num, "actual_count": len(results), "lang": lang,
                     "country": country, "platform": "play", "searched_at": _now().isoformat()}}


@app.get("/api/reviews/exports", response_model=ExportListOut)
def list_exports(store: ExportStore = Depends(get_export_store)):
    files = store.list_exports()
    return {"success": True, "data": files,
            "meta": {"total_exports": len(files), "fetched_at": _now().isoformat()}}


@app.get("/api/reviews/download/{filename}")
def download_export(filename: str, store: ExportStore = Depends(get_export_store)):
    path = store.resolve(filename)
    return FileResponse(path, media_type="text/csv", filename=filename)


@app.post("/api/reviews/export/csv", response_model=ExportOut)
def export_play_csv(req: PlayExportRequest, collector: PlayCollector = Depends(get_play_collector),
                    store: ExportStore = Depends(get_export_store),
                    settings: AggregatorSettings = Depends(get_aggregator_settings)):
    app_id = extract_play_app_id(req.url)
    if not app_id:
        raise InvalidInputError("Could not extract app ID from the provided Google Play URL")
    _check_play_id(app_id)
    sort = _pick_sort(req.sort, PLAY_SORTS)
    result = _aggregate(collector, settings, app_id, req.num, req.lang, req.country, sort)
    return _export(store, result, PLAY_SCHEMA, play_export_name(app_id), url=req.url, app_id=app_id,
                   platform="play", num=req.num, sort=sort, lang=req.lang, country=req.country,
                   label="Google Play")


@app.get("/api/reviews/appstore/search", response_model=CatalogOut)
def search_appstore(q: str = Query(..., min_length=1), num: int = Query(default=20, ge=1),
                    country: str = DEFAULT_COUNTRY,
                    collector: AppStoreCollector = Depends(get_appstore_collector)):
    results = collector.search(q, num=num, country=country)
    return {"success": True, "data": results,
            "meta": {"query": q, "requested_count": num, "actual_count": len(results),
                     "country": country, "platform": "appstore", "searched_at": _now().isoformat()}}


@app.post("/api/reviews/appstore/export/csv", response_model=ExportOut)
def export_appstore_csv(req: AppStoreExportRequest,
                        collector: AppStoreCollector = Depends(get_appstore_collector),
                        store: ExportStore = Depends(get_export_store),
                        settings: AggregatorSettings = Depends(get_aggregator_settings)):
    app_id = extract_appstore_app_id(req.url)
    if not app_id:
        raise InvalidInputError("Could not extract app ID from the provided App Store URL")
    _check_appstore_id(app_id)
    sort = _pick_sort(req.sort, APPSTORE_SORTS)
    result = _aggregate(collector, settings, app_id, req.num, None, req.country, sort)
    return _export(store, result, APPSTORE_SCHEMA, appstore_export_name(app_id), url=req.url,
                   app_id=app_id, platform="appstore", num=req.num, sort=sort, lang=None,
                   country=req.country, label="App Store")


@app.get("/api/reviews/appstore/{app_id}/info", response_model=CatalogOut)
def appstore_info(app_id: str, country: str = DEFAULT_COUNTRY,
                  collector: AppStoreCollector = Depends(get_appstore_collector)):
    info = collector.app_info(_check_appstore_id(app_id), country=country)
    return {"success": True, "data": info,
            "meta": {"app_id": app_id, "country": country, "platform": "appstore",
                     "fetched_at": _now().isoformat()}}


@app.get("/api/reviews/appstore/{app_id}", response_model=AppStoreReviewsOut)
def appstore_reviews(app_id: str, num: int = Query(default=100, ge=1), country: str = DEFAULT_COUNTRY,
                     sort: str = "mostRecent",
                     collector: AppStoreCollector = Depends(get_appstore_collector),
                     settings: AggregatorSettings = Depends(get_aggregator_settings)):
    sort = _pick_sort(sort, APPSTORE_SORTS)
    result = _aggregate(collector, settings, _check_appstore_id(app_id), num, None, country, sort)
    return {"success": True, "data": [r.to_dict() for r in result.records],
            "meta": _reviews_meta(result, app_id, "appstore", num, sort, None, country)}


@app.get("/api/reviews/{app_id}/info", response_model=CatalogOut)
def play_info(app_id: str, lang: str = DEFAULT_LANG, country: str = DEFAULT_COUNTRY,
              collector: PlayCollector = Depends(get_play_collector)):
    info = collector.app_info(_check_play_id(app_id), lang=lang, country=country)
    return {"success": True, "data": info,
            "meta": {"app_id": app_id, "lang": lang, "country": country, "platform": "play",
                     "fetched_at": _now().isoformat()}}


@app.get("/api/reviews/{app_id}", response_model=PlayReviewsOut)
def play_reviews(app_id: str, num: int = Query(default=100, ge=1), lang: str = DEFAULT_LANG,
                 country: str = DEFAULT_COUNTRY, sort: str = "newest",
                 collector: PlayCollector = Depends(get_play_collector),
                 settings: AggregatorSettings = Depends(get_aggregator_settings)):
    sort = _pick_sort(sort, PLAY_SORTS)
    result = _aggregate(collector, settings, _check_play_id(app_id), num, lang, country, sort)
    return {"success": True, "data": [r.to_dict() for r in result.records],
            "meta": _reviews_meta(result, app_id, "play", num, sort, lang, country)}


def run():
    import uvicorn
    setup_logger("reviews")
    uvicorn.run(app, host=HOST, port=PORT, log_level="info")


if __name__ == "__main__":
    run()
