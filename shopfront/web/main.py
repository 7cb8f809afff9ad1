from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import quote_plus

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool

from shopfront.config import settings
from shopfront.constants import PAYMENT_METHODS
from shopfront.db.sqlite import SqliteStorage, init_db
from shopfront.db.storage import Storage
from shopfront.models import Product
from shopfront.services.api_client import BackendClient, BackendError, BackendUnavailable
from shopfront.services.attribution import AttributionStore, InvalidReferralError, now_ms
from shopfront.services.cart import CartStore, related_products
from shopfront.services.orders import CheckoutValidationError, checkout, load_last_order, remember_order
from shopfront.services.pricing import compute_totals
from shopfront.services.receipt_pdf import generate_receipt_pdf, receipt_filename, receipt_lines, receipt_total
from shopfront.services.reviews import product_rating, product_reviews
from shopfront.utils.formatters import money

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

SESSION_MAX_AGE = 60 * 60 * 24 * 30
_SID_RE = re.compile(r"^[0-9a-f]{32}$")

GENERIC_ORDER_ERROR = "An error occurred while placing the order"

app = FastAPI(title="Shopfront")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["money"] = money

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.on_event("startup")
def _startup() -> None:
    init_db()


@app.middleware("http")
async def _session_cookie(request: Request, call_next):
    # opaque visitor id; scopes the cart/referral rows, not an auth token
    sid = request.cookies.get(settings.session_cookie, "")
    is_new = not _SID_RE.match(sid)
    if is_new:
        sid = uuid.uuid4().hex
    request.state.session_id = sid

    response = await call_next(request)
    if is_new:
        response.set_cookie(
            settings.session_cookie, sid, max_age=SESSION_MAX_AGE, httponly=True, samesite="lax"
        )
    return response


# ---------------- dependencies ----------------

def get_storage(request: Request) -> Storage:
    return SqliteStorage(request.state.session_id)


def get_backend() -> BackendClient:
    return BackendClient()


def get_clock() -> Callable[[], int]:
    return now_ms


def _render(
    request: Request,
    name: str,
    ctx: dict[str, Any],
    storage: Optional[Storage] = None,
    status_code: int = 200,
) -> HTMLResponse:
    base = {
        "request": request,
        "currency": settings.currency,
        "cart_count": CartStore(storage).total_items() if storage is not None else 0,
        "message": request.query_params.get("msg", ""),
    }
    base.update(ctx)
    return templates.TemplateResponse(request, name, base, status_code=status_code)


def _redirect(target: str, msg: str = "") -> RedirectResponse:
    if msg:
        sep = "&" if "?" in target else "?"
        target = f"{target}{sep}msg={quote_plus(msg)}"
    return RedirectResponse(url=target, status_code=303)


def _product_json(p: Product) -> dict[str, Any]:
    d = p.model_dump(mode="json", by_alias=True)
    d["price"] = float(p.price)
    if p.commission_percentage is not None:
        d["commissionPercentage"] = float(p.commission_percentage)
    d["allImages"] = p.gallery
    return d


@app.get("/", response_class=HTMLResponse)
def index():
    return RedirectResponse(url="/shop", status_code=303)


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------- catalog proxy ----------------

@app.get("/api/products")
def api_products(backend: BackendClient = Depends(get_backend)):
    return [_product_json(p) for p in backend.list_products()]


@app.get("/api/products/{product_id}")
def api_product(product_id: str, backend: BackendClient = Depends(get_backend)):
    try:
        product = backend.get_product(product_id)
    except (BackendError, BackendUnavailable) as e:
        logger.error("product %s fetch failed: %s", product_id, e)
        return JSONResponse({"message": "Error fetching product"}, status_code=500)
    if product is None:
        return JSONResponse({"message": "Product not found"}, status_code=404)
    return _product_json(product)


# ---------------- shop ----------------

@app.get("/shop", response_class=HTMLResponse)
def shop(
    request: Request,
    category: str = "",
    q: str = "",
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
):
    products = backend.list_products()
    categories = sorted({p.category for p in products if p.category})

    if category:
        products = [p for p in products if p.category.lower() == category.lower()]
    if q.strip():
        needle = q.strip().lower()
        products = [p for p in products if needle in p.name.lower() or needle in p.description.lower()]

    return _render(
        request,
        "shop.html",
        {
            "products": products,
            "categories": categories,
            "selected_category": category,
            "query": q,
            "ratings": {p.id: product_rating(p.id) for p in products},
        },
        storage,
    )


@app.get("/product/{product_id}", response_class=HTMLResponse)
def product_page(
    request: Request,
    product_id: str,
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
):
    try:
        product = backend.get_product(product_id)
    except (BackendError, BackendUnavailable) as e:
        logger.error("product %s fetch failed: %s", product_id, e)
        return _render(request, "error.html", {"error": "Error fetching product"}, storage, status_code=502)
    if product is None:
        return _render(request, "error.html", {"error": "Product not found"}, storage, status_code=404)

    return _render(
        request,
        "product.html",
        {
            "product": product,
            "rating": product_rating(product.id),
            "reviews": product_reviews(product.id),
            "related": related_products(backend.list_products(), [product.id]),
        },
        storage,
    )


# ---------------- referral ----------------

@app.get("/referral/{agent_id}", response_class=HTMLResponse)
def referral(
    request: Request,
    agent_id: str,
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
    clock: Callable[[], int] = Depends(get_clock),
):
    try:
        AttributionStore(storage, clock=clock).record_referral(agent_id)
    except InvalidReferralError as e:
        return _render(request, "error.html", {"error": str(e)}, storage, status_code=400)

    backend.record_referral_click(agent_id)
    return RedirectResponse(url="/shop", status_code=303)


# ---------------- cart ----------------

def _cart_product(backend: BackendClient, product_id: str) -> tuple[Optional[Product], str]:
    try:
        product = backend.get_product(product_id)
    except (BackendError, BackendUnavailable) as e:
        logger.error("product %s fetch failed: %s", product_id, e)
        return None, "Error fetching product"
    if product is None:
        return None, "Product not found"
    return product, ""


@app.get("/cart", response_class=HTMLResponse)
def cart_get(
    request: Request,
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
    clock: Callable[[], int] = Depends(get_clock),
):
    cart = CartStore(storage)
    quantities = cart.items()
    products = backend.list_products() if quantities else []
    totals = compute_totals(quantities, products)

    return _render(
        request,
        "cart.html",
        {
            "totals": totals,
            "total_items": cart.total_items(),
            "related": related_products(products, quantities.keys()),
            "referral_agent": AttributionStore(storage, clock=clock).get_active_referral(),
        },
        storage,
    )


@app.post("/cart/add")
def cart_add(
    product_id: str = Form(...),
    quantity: int = Form(1),
    next_url: str = Form("/cart"),
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
):
    product, err = _cart_product(backend, product_id)
    if product is not None:
        ok, err = CartStore(storage).add_item(product, quantity)
        msg = f"added {quantity} x {product.name}" if ok else err
    else:
        msg = err
    # only local redirects
    target = next_url if next_url.startswith("/") and not next_url.startswith("//") else "/cart"
    return _redirect(target, msg)


@app.post("/cart/update")
def cart_update(
    product_id: str = Form(...),
    quantity: int = Form(...),
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
):
    product, err = _cart_product(backend, product_id)
    if product is not None:
        ok, err = CartStore(storage).set_quantity(product, quantity)
        msg = "OK" if ok else err
    else:
        msg = err
    return _redirect("/cart", msg)


@app.post("/cart/remove")
def cart_remove(product_id: str = Form(...), storage: Storage = Depends(get_storage)):
    CartStore(storage).remove_item(product_id)
    return _redirect("/cart", "removed")


# ---------------- checkout ----------------

def _checkout_ctx(
    storage: Storage,
    backend: BackendClient,
    clock: Callable[[], int],
    form: Optional[dict] = None,
    errors: Optional[list] = None,
) -> dict[str, Any]:
    cart = CartStore(storage)
    quantities = cart.items()
    products = backend.list_products() if quantities else []
    return {
        "totals": compute_totals(quantities, products),
        "total_items": cart.total_items(),
        "referral_agent": AttributionStore(storage, clock=clock).get_active_referral(),
        "payment_methods": PAYMENT_METHODS,
        "form": form or {},
        "errors": errors or [],
    }


@app.get("/checkout", response_class=HTMLResponse)
def checkout_get(
    request: Request,
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
    clock: Callable[[], int] = Depends(get_clock),
):
    return _render(request, "checkout.html", _checkout_ctx(storage, backend, clock), storage)


@app.post("/checkout", response_class=HTMLResponse)
async def checkout_post(
    request: Request,
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
    clock: Callable[[], int] = Depends(get_clock),
):
    form = {k: str(v) for k, v in (await request.form()).items()}
    cart = CartStore(storage)
    attribution = AttributionStore(storage, clock=clock)

    try:
        placed = await run_in_threadpool(checkout, form, backend, cart, attribution, storage)
    except CheckoutValidationError as e:
        errors, status = e.errors, 400
    except BackendUnavailable:
        errors, status = [GENERIC_ORDER_ERROR], 502
    except BackendError as e:
        errors, status = [e.message or "Failed to place order"], 502
    else:
        return RedirectResponse(url=f"/order-success?orderId={placed.order_id}", status_code=303)

    # card fields are not echoed back into the form
    safe_form = {k: v for k, v in form.items() if k not in ("cardNumber", "cvc", "expiryDate")}
    ctx = await run_in_threadpool(_checkout_ctx, storage, backend, clock, safe_form, errors)
    return _render(request, "checkout.html", ctx, storage, status_code=status)


# ---------------- order confirmation ----------------

@app.get("/order-success", response_class=HTMLResponse)
def order_success(
    request: Request,
    orderId: str = "",
    storage: Storage = Depends(get_storage),
    backend: BackendClient = Depends(get_backend),
):
    order = None
    if orderId:
        order = backend.get_order(orderId)
        if order is not None:
            remember_order(storage, order)

    if order is None:
        cached = load_last_order(storage)
        if cached is not None and (not orderId or str(cached.get("orderId") or cached.get("id")) == orderId):
            order = cached

    if order is None:
        error = "Failed to load order details" if orderId else "No order information found"
        return _render(request, "error.html", {"error": error}, storage, status_code=404)

    return _render(
        request,
        "order_success.html",
        {"order": order, "order_id": orderId, "lines": receipt_lines(order), "total": receipt_total(order)},
        storage,
    )


@app.get("/order-success/receipt.pdf")
def order_receipt(storage: Storage = Depends(get_storage)):
    order = load_last_order(storage)
    if order is None:
        return JSONResponse({"message": "No order information found"}, status_code=404)
    return Response(
        content=generate_receipt_pdf(order),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{receipt_filename(order)}"'},
    )
