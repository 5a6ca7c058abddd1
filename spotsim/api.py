from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, APIRouter, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import SandboxError
from .models import OrderRequest, Side, WalletView
from .sandbox import Sandbox
from .utils import now_ts, setup_logging


def create_app(settings: Optional[Settings] = None, sandbox: Optional[Sandbox] = None) -> FastAPI:
    settings = settings or (sandbox.settings if sandbox else Settings.from_env())
    setup_logging(settings.log_level)
    sandbox = sandbox or Sandbox(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # initial price, then the periodic cycles
        await sandbox.start()
        try:
            yield
        finally:
            await sandbox.stop()

    app = FastAPI(title="Spot Trading Sandbox", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    router = APIRouter(prefix="/api")

    app.state.sandbox = sandbox

    @app.exception_handler(SandboxError)
    async def _sandbox_error(request: Request, exc: SandboxError):
        return JSONResponse(
            status_code=exc.http_status,
            content={"success": False, "error": exc.message, "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid amount or price", "code": "invalid_input"},
        )

    @router.get("/wallet")
    async def get_wallet():
        return {"success": True, "wallet": WalletView(**sandbox.wallet()).model_dump()}

    @router.get("/price")
    async def get_price():
        res = await sandbox.current_price()
        return {
            "success": True,
            "price": str(res.price),
            "timestamp": now_ts(),
            "source": res.source.value,
            "cached": res.cached,
        }

    @router.get("/price/status")
    async def get_price_status():
        return {"success": True, "status": sandbox.price_status()}

    @router.get("/price-history")
    async def get_price_history():
        return {"success": True, "history": [p.to_dict() for p in sandbox.price_history()]}

    async def _place(side: Side, req: OrderRequest):
        order = sandbox.submit_order(side, req.price, req.amount)
        return {
            "success": True,
            "order": order.to_dict(),
            "message": f"{side.value.capitalize()} order placed: {order.amount} at {order.limit_price}",
        }

    @router.post("/orders/buy")
    async def post_buy(req: OrderRequest):
        return await _place(Side.buy, req)

    @router.post("/orders/sell")
    async def post_sell(req: OrderRequest):
        return await _place(Side.sell, req)

    @router.get("/orders")
    async def get_orders():
        return {"success": True, "orders": [o.to_dict() for o in sandbox.orders()]}

    @router.get("/orders/{order_id}")
    async def get_order(order_id: str):
        return {"success": True, "order": sandbox.order(order_id).to_dict()}

    @router.delete("/orders/{order_id}")
    async def delete_order(order_id: str):
        sandbox.cancel_order(order_id)
        return {"success": True, "message": "Order cancelled successfully"}

    @router.post("/enable-mock")
    async def enable_mock():
        price = sandbox.enable_mock()
        return {"success": True, "message": "Mock price simulation enabled", "current_price": str(price)}

    @router.get("/stats")
    async def get_stats():
        return {"success": True, "stats": sandbox.stats().model_dump()}

    app.include_router(router)
    return app
