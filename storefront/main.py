from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront import services
from storefront.database import engine, get_db
from storefront.errors import StorefrontError
from storefront.logging_config import get_logger
from storefront.models import models
from storefront.reconciliation import generate_points_reconciliation_csv
from storefront.schemas.app_schemas import (
    ProfileResponse,
    ProfileUpdate,
    PurchaseRequest,
    RedemptionResponse,
    TransactionResponse,
    VaultResponse,
    VoucherResponse,
)
from storefront.security import require_bearer_token, require_user_id


logger = get_logger(__name__)

models.Base.metadata.create_all(bind=engine)
app = FastAPI(title="Game Top-Up Storefront")


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

@app.get("/games")
def list_games(_auth=Depends(require_bearer_token), db: Session = Depends(get_db)):
    return services.list_games(db)

@app.get("/games/{slug}")
def get_game(slug: str, _auth=Depends(require_bearer_token), db: Session = Depends(get_db)):
    return services.get_game(db, slug)

@app.get("/vouchers", response_model=list[VoucherResponse])
def list_vouchers(_auth=Depends(require_bearer_token), db: Session = Depends(get_db)):
    return services.list_vouchers(db)

@app.post("/purchases", response_model=TransactionResponse)
def create_purchase(
    request: PurchaseRequest,
    _auth=Depends(require_bearer_token),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
    idempotency_key: str | None = Header(None),
):
    return services.purchase(db, user_id, request, idempotency_key=idempotency_key)

@app.post("/vouchers/{voucher_id}/redeem", response_model=RedemptionResponse)
def redeem_voucher(
    voucher_id: str,
    _auth=Depends(require_bearer_token),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    return services.redeem_voucher(db, user_id, voucher_id)

@app.get("/vault", response_model=VaultResponse)
def vault(
    _auth=Depends(require_bearer_token),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    return services.get_vault(db, user_id)

@app.get("/profile", response_model=ProfileResponse)
def profile(
    _auth=Depends(require_bearer_token),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    return services.get_profile(db, user_id)

@app.patch("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    _auth=Depends(require_bearer_token),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
):
    return services.rename_profile(db, user_id, payload.name)

@app.get("/reconciliation_data")
def download_reconciliation_csv(_auth=Depends(require_bearer_token), db: Session = Depends(get_db)):
    csv_text, mismatch_count = generate_points_reconciliation_csv(db)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={
            "Content-Disposition": 'attachment; filename="points_reconciliation.csv"',
            "X-Mismatch-Count": str(mismatch_count),
        },
    )

@app.get("/swagger", include_in_schema=False)
async def swagger_ui():
    return get_swagger_ui_html(openapi_url=str(app.openapi_url), title="Game Top-Up Storefront - Swagger UI")

@app.get("/health")
async def health():
    return {"status": "ok"}
