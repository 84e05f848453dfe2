"""FastAPI backend for spending analytics."""
import logging
import tempfile
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field

from spending_analytics.api.analytics_service import AnalyticsService
from spending_analytics.models import (
    Budget,
    BudgetAlert,
    BudgetPrediction,
    BudgetRecommendation,
    Insight,
    MerchantInsight,
    RecurringPattern,
    Transaction,
)


logger = logging.getLogger(__name__)

# Global service instance (for production use)
_service: Optional[AnalyticsService] = None


def get_service() -> AnalyticsService:
    """Dependency to get the analytics service."""
    global _service
    if _service is None:
        _service = AnalyticsService()
        _service.__enter__()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage service lifecycle."""
    yield
    # Cleanup on shutdown
    global _service
    if _service is not None:
        _service.__exit__(None, None, None)
        _service = None


app = FastAPI(
    title="Spending Analytics API",
    description="Recurring payments, budget forecasts and spending insights from transaction history",
    version="1.0.0",
    lifespan=lifespan
)


# === Pydantic Models ===

class AnalysisRequest(BaseModel):
    transactions: List[Transaction]
    now: Optional[datetime] = None  # Reference time, server clock if omitted


class BudgetAnalysisRequest(AnalysisRequest):
    budgets: List[Budget] = Field(default_factory=list)


class ImportPreviewResponse(BaseModel):
    filename: Optional[str] = None
    total: int
    transactions: List[Transaction]


# === Endpoints ===

@app.get("/api/health")
def health():
    """Liveness check."""
    return {"status": "ok"}


@app.post("/api/recurring", response_model=List[RecurringPattern])
def detect_recurring(request: AnalysisRequest, service: AnalyticsService = Depends(get_service)):
    """Detected subscriptions and other recurring payments."""
    return service.detect_recurring(request.transactions, now=request.now)


@app.post("/api/budgets/predictions", response_model=List[BudgetPrediction])
def budget_predictions(request: BudgetAnalysisRequest, service: AnalyticsService = Depends(get_service)):
    """Month-end projection for every budget."""
    return service.predict_budgets(request.transactions, request.budgets, now=request.now)


@app.post("/api/budgets/alerts", response_model=List[BudgetAlert])
def budget_alerts(request: BudgetAnalysisRequest, service: AnalyticsService = Depends(get_service)):
    """Budget alerts from predictions, month-over-month spikes and missing budgets."""
    return service.budget_alerts(request.transactions, request.budgets, now=request.now)


@app.post("/api/budgets/recommendations", response_model=List[BudgetRecommendation])
def budget_recommendations(request: BudgetAnalysisRequest, service: AnalyticsService = Depends(get_service)):
    """Suggested budget per category from recent spending."""
    return service.recommend_budgets(request.transactions, request.budgets, now=request.now)


@app.post("/api/insights", response_model=List[Insight])
def insights(request: AnalysisRequest, service: AnalyticsService = Depends(get_service)):
    """Behavioral insights in detector order."""
    return service.generate_insights(request.transactions, now=request.now)


@app.post("/api/merchants", response_model=List[MerchantInsight])
def merchants(
    request: AnalysisRequest,
    top_n: int = Query(10, ge=1, le=100),
    service: AnalyticsService = Depends(get_service)
):
    """Top merchants by total spend."""
    return service.merchant_insights(request.transactions, top_n=top_n, now=request.now)


@app.post("/api/analyze")
def analyze(request: BudgetAnalysisRequest, service: AnalyticsService = Depends(get_service)):
    """Run every analysis over one snapshot."""
    return service.analyze(request.transactions, request.budgets, now=request.now)


@app.post("/api/import/preview", response_model=ImportPreviewResponse)
async def import_preview(file: UploadFile = File(...), service: AnalyticsService = Depends(get_service)):
    """Parse an uploaded CSV/Excel file into transactions without analyzing them."""
    suffix = Path(file.filename).suffix if file.filename else ".csv"
    content = await file.read()

    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(content)
        tmp_path = Path(tmp.name)

    try:
        transactions = service.load_transactions(tmp_path)
    except Exception as e:
        logger.warning(f"Failed to parse upload {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=f"Failed to parse file: {str(e)}")
    finally:
        tmp_path.unlink(missing_ok=True)

    return ImportPreviewResponse(
        filename=file.filename,
        total=len(transactions),
        transactions=transactions,
    )
