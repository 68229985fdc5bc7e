from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.exceptions import register_exception_handlers
from app.startup import configure_logging, run_startup_checks

# ========== Authentication & Users ==========
from modules.auth.routes.auth_routes import router as auth_router
from modules.auth.routes.user_routes import router as user_router

# ========== Menu ==========
from modules.menu.routes.menu_routes import router as menu_router

# ========== Orders ==========
from modules.orders.routes.order_routes import router as order_router
from modules.orders.routes.admin_order_routes import router as admin_order_router

# ========== Back office ==========
from modules.settings.routes.settings_routes import router as settings_router
from modules.analytics.routes.analytics_routes import router as analytics_router
from modules.reporting.routes.report_routes import router as report_router

app = FastAPI(
    title="Canteen Ordering API",
    description="""
    Storefront and back-office API for a canteen.

    * **Menu** - browse available items; admins manage the catalog and stock
    * **Orders** - checkout with UPI QR, payment confirmation, order history, receipts
    * **Counter** - walk-in cash and UPI sales entered by staff
    * **Live orders** - server-sent events for new and updated orders
    * **Dashboard** - daily stats, analytics and emailed daily reports

    ## Authentication

    Use `/auth/login` to obtain a bearer token.
    """,
    version="1.0.0",
)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(menu_router)
app.include_router(order_router)
app.include_router(admin_order_router)
app.include_router(settings_router)
app.include_router(analytics_router)
app.include_router(report_router)


@app.on_event("startup")
async def startup_event():
    configure_logging()
    run_startup_checks()


@app.get("/")
def read_root():
    return {"message": "Canteen backend is running"}


@app.get("/health")
def health():
    return {"status": "ok"}
