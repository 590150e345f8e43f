"""
main.py — FastAPI Entry Point for the Order Intake Service

This module provides the REST API of the order intake backend. It wires the
catalog store, reservation engine, access gates and mail client together and
exposes them over HTTP.

Responsibilities:
    • Serve the inventory catalog
    • Accept shopping-cart orders and run the order workflow
    • Issue and validate contractor tokens
    • Admin login/logout and inventory CRUD behind a session cookie
    • Seed the catalog on startup and report health
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .access import AdminGate, AdminSession, ContractorGate
from .catalog import CatalogStore, load_seed_items
from .clients import MailClient, Notifier
from .database import check_db_health, create_db_engine, create_session_factory, init_schema
from .errors import AuthenticationRequired, InvalidRequest, OrderIntakeError
from .logging_config import get_logger, setup_logging
from .models import (
    AdminLoginRequest,
    ContractorLoginRequest,
    InventoryItemCreate,
    InventoryItemUpdate,
    OrderRequest,
    TokenRequest,
)
from .reservation import ReservationEngine
from .settings import Settings, settings as default_settings
from .workflow import OrderServices, process_order_workflow

log = get_logger(__name__)


def dump_items(items):
    return [item.model_dump(mode="json", by_alias=True) for item in items]


# Dependencies

def get_services(request: Request) -> OrderServices:
    return request.app.state.services


def get_admin_gate(request: Request) -> AdminGate:
    return request.app.state.admin_gate


def current_admin(request: Request) -> Optional[AdminSession]:
    token = request.cookies.get(request.app.state.settings.ADMIN_COOKIE_NAME)
    return request.app.state.admin_gate.lookup(token)


def require_admin(admin: Optional[AdminSession] = Depends(current_admin)) -> AdminSession:
    if admin is None:
        raise AuthenticationRequired("Admin login required")
    return admin


def create_app(app_settings: Optional[Settings] = None, notifier: Optional[Notifier] = None) -> FastAPI:
    """
    Builds the FastAPI application and every component it owns.

    Args:
        app_settings (Settings | None): Configuration; the environment-derived one by default.
        notifier (Notifier | None): Mail transport; an SMTP `MailClient` by default.

    Returns:
        FastAPI: The configured application. Schema creation and catalog seeding
        run in its lifespan, i.e. when the server (or a TestClient) starts it.
    """
    cfg = app_settings or default_settings

    engine = create_db_engine(cfg)
    session_factory = create_session_factory(engine)
    catalog = CatalogStore(session_factory)
    services = OrderServices(
        catalog=catalog,
        reservations=ReservationEngine(catalog, session_factory),
        contractor_gate=ContractorGate(cfg.CONTRACTOR_ACCESS_CODE),
        notifier=notifier or MailClient.from_settings(cfg),
        settings=cfg,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Order intake service starting...")
        init_schema(engine)
        seeded = catalog.seed_if_empty(load_seed_items(cfg.SEED_FILE))
        if seeded:
            log.info(f"Catalog was empty; seeded {seeded} items.")
        if not cfg.ADMIN_PASSWORD:
            log.warning("ADMIN_PASSWORD is not set; admin login is disabled.")
        yield
        engine.dispose()
        log.info("Order intake service stopped.")

    app = FastAPI(title="Order Intake Service", lifespan=lifespan)
    app.state.settings = cfg
    app.state.services = services
    app.state.session_factory = session_factory
    app.state.admin_gate = AdminGate(cfg.ADMIN_USERNAME, cfg.ADMIN_PASSWORD, cfg.ADMIN_SESSION_TTL_SECONDS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error envelope: {"ok": false, "error": ..., "code": ..., "details": ...}

    @app.exception_handler(OrderIntakeError)
    async def handle_order_intake_error(request: Request, exc: OrderIntakeError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        problems = [
            {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
            for err in exc.errors()
        ]
        error = InvalidRequest("Invalid request body", {"errors": problems})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        log.critical(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error",
                                                      "code": "INTERNAL_ERROR"})

    # --- Storefront ---

    @app.get("/api/inventory")
    def list_inventory(services: OrderServices = Depends(get_services)):
        """Full catalog as a JSON array, ordered by name."""
        return dump_items(services.catalog.get_all())

    @app.post("/api/login")
    def contractor_login(body: ContractorLoginRequest, services: OrderServices = Depends(get_services)):
        token = services.contractor_gate.issue_token(body.email, body.code)
        return {"ok": True, "token": token}

    @app.post("/api/session/validate")
    def validate_contractor_session(body: TokenRequest, services: OrderServices = Depends(get_services)):
        if services.contractor_gate.validate(body.token):
            return {"ok": True}
        raise AuthenticationRequired("Session invalid")

    @app.post("/api/order")
    def submit_order(order: OrderRequest, services: OrderServices = Depends(get_services)):
        """
        Receives a shopping-cart order and runs the full workflow synchronously.

        Returns:
            dict: `{"ok": true, "inventory": [...]}` with the catalog after the reservation.
        """
        result = process_order_workflow(order, services)
        return {"ok": True, "reference": result.reference, "inventory": dump_items(result.inventory)}

    # --- Admin console ---

    @app.get("/api/admin/session")
    def admin_session(admin: Optional[AdminSession] = Depends(current_admin)):
        if admin is None:
            return {"ok": False}
        return {"ok": True, "admin": admin.public()}

    @app.post("/api/admin/login")
    def admin_login(body: AdminLoginRequest, response: Response, gate: AdminGate = Depends(get_admin_gate)):
        session = gate.login(body.username, body.password)
        response.set_cookie(
            key=cfg.ADMIN_COOKIE_NAME,
            value=session.token,
            max_age=cfg.ADMIN_SESSION_TTL_SECONDS,
            httponly=True,
            secure=cfg.ADMIN_COOKIE_SECURE,
            samesite="lax",
        )
        return {"ok": True, "admin": session.public()}

    @app.post("/api/admin/logout")
    def admin_logout(request: Request, response: Response, gate: AdminGate = Depends(get_admin_gate)):
        gate.logout(request.cookies.get(cfg.ADMIN_COOKIE_NAME))
        response.delete_cookie(cfg.ADMIN_COOKIE_NAME)
        return {"ok": True}

    @app.get("/api/admin/inventory")
    def admin_list_inventory(admin: AdminSession = Depends(require_admin),
                             services: OrderServices = Depends(get_services)):
        return {"ok": True, "items": dump_items(services.catalog.get_all())}

    @app.post("/api/admin/inventory", status_code=201)
    def admin_create_item(item: InventoryItemCreate, admin: AdminSession = Depends(require_admin),
                          services: OrderServices = Depends(get_services)):
        created = services.catalog.create(item)
        log.info(f"Admin {admin.username} created {created.sku}")
        return {"ok": True, "item": created.model_dump(mode="json", by_alias=True)}

    @app.put("/api/admin/inventory/{sku}")
    def admin_update_item(sku: str, fields: InventoryItemUpdate, admin: AdminSession = Depends(require_admin),
                          services: OrderServices = Depends(get_services)):
        updated = services.catalog.update(sku, fields)
        log.info(f"Admin {admin.username} updated {sku}")
        return {"ok": True, "item": updated.model_dump(mode="json", by_alias=True)}

    @app.delete("/api/admin/inventory/{sku}")
    def admin_delete_item(sku: str, admin: AdminSession = Depends(require_admin),
                          services: OrderServices = Depends(get_services)):
        services.catalog.delete(sku)
        log.info(f"Admin {admin.username} deleted {sku}")
        return {"ok": True}

    # --- Health ---

    @app.get("/health")
    def health_check():
        """
        Simple health check endpoint for monitoring systems and container orchestrators.

        Returns:
            dict: Service status and database connectivity.
        """
        return check_db_health(session_factory)

    if cfg.STATIC_DIR:
        app.mount("/", StaticFiles(directory=str(cfg.STATIC_DIR), html=True), name="frontend")

    return app


setup_logging(default_settings.LOG_FILE, default_settings.LOG_LEVEL)
app = create_app()


def run():
    """Console entry point: serve the app with uvicorn on HOST:PORT."""
    import uvicorn

    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
