"""
FastAPI web application for Site Audit
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, field_validator

from app import SiteAuditApp
from models import ScanMode
from scan_queue import QueueFullError
from utils import InvalidUrlError

logger = logging.getLogger(__name__)


# Pydantic models for API requests
class AnalysisRequestBody(BaseModel):
    url: str
    mode: Optional[str] = None

    @field_validator('mode')
    @classmethod
    def mode_must_be_known(cls, v):
        if v is None:
            return v
        return ScanMode.parse(v).value

    @property
    def scan_mode(self) -> ScanMode:
        return ScanMode.parse(self.mode)


# Response models
class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    components: Dict[str, Any]


app = FastAPI(
    title="Site Audit API",
    description="Performance, SEO and accessibility audits for a single URL",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global application instance
audit_app: Optional[SiteAuditApp] = None


@app.on_event("startup")
async def startup_event():
    """Initialize the audit app and start the scan worker"""
    global audit_app
    try:
        audit_app = SiteAuditApp()
        await audit_app.start()
        logger.info("Site Audit API started successfully")
    except Exception as e:
        logger.error(f"Failed to initialize audit app: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the scan worker"""
    global audit_app
    if audit_app:
        await audit_app.shutdown()
        logger.info("Site Audit API shut down successfully")


def get_audit_app() -> SiteAuditApp:
    """Dependency to get the audit app instance"""
    if audit_app is None:
        raise HTTPException(status_code=500, detail="Audit app not initialized")
    return audit_app


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@app.get("/", response_model=Dict[str, str])
async def root():
    """Root endpoint"""
    return {
        "message": "Site Audit API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(site_audit: SiteAuditApp = Depends(get_audit_app)):
    """Health check endpoint"""
    try:
        status = site_audit.get_system_status()
        return HealthResponse(
            status=status["overall_status"],
            timestamp=datetime.now(timezone.utc),
            components=status["components"]
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/analyze")
async def analyze(request: AnalysisRequestBody, site_audit: SiteAuditApp = Depends(get_audit_app)):
    """Analyze a URL and save it to history"""
    try:
        logger.info(f"Analyzing URL: {request.url}")
        result = await site_audit.analyze(request.url, request.scan_mode, save_history=True)
        return result.to_dict()
    except Exception as e:
        logger.error(f"Error analyzing URL {request.url}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/report")
async def report(request: AnalysisRequestBody, site_audit: SiteAuditApp = Depends(get_audit_app)):
    """Analyze a URL without saving history and return the derived report"""
    try:
        logger.info(f"Building report for URL: {request.url}")
        analysis_report = await site_audit.report(request.url, request.scan_mode)
        return analysis_report.to_dict()
    except Exception as e:
        logger.error(f"Error building report for {request.url}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/history")
async def get_history(
    url: Optional[str] = Query(None, description="URL whose scans to list"),
    site_audit: SiteAuditApp = Depends(get_audit_app)
):
    """Saved scans for a URL, newest first"""
    try:
        return [record.to_dict() for record in site_audit.get_history(url)]
    except InvalidUrlError as e:
        return _message(400, str(e))
    except Exception as e:
        logger.error(f"Error reading history for {url}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/history/latest")
async def get_latest(
    url: Optional[str] = Query(None, description="URL whose latest scan to return"),
    site_audit: SiteAuditApp = Depends(get_audit_app)
):
    """Most recent saved scan for a URL, or 204 when none exists"""
    try:
        latest = site_audit.get_latest(url)
    except InvalidUrlError as e:
        return _message(400, str(e))
    except Exception as e:
        logger.error(f"Error reading latest scan for {url}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    if latest is None:
        return Response(status_code=204)
    return latest.to_dict()


@app.post("/analyze/async", status_code=202)
async def queue_analysis(request: AnalysisRequestBody, site_audit: SiteAuditApp = Depends(get_audit_app)):
    """Queue an analysis for the background worker"""
    try:
        job_id = site_audit.enqueue(request.url, request.scan_mode)
    except QueueFullError as e:
        logger.warning(f"Rejected scan for {request.url}: {e}")
        return _message(503, str(e))
    except Exception as e:
        logger.error(f"Error queueing scan for {request.url}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return JSONResponse(
        status_code=202,
        content={"jobId": job_id},
        headers={"Location": f"/analyze/async/{job_id}"}
    )


@app.get("/analyze/async/{job_id}")
async def get_queued_analysis(job_id: str, site_audit: SiteAuditApp = Depends(get_audit_app)):
    """Status of a queued analysis"""
    status = site_audit.get_job_status(job_id)
    if status is None:
        return _message(404, "Scan not found.")
    return status.to_dict()


if __name__ == "__main__":
    uvicorn.run(
        "api:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
