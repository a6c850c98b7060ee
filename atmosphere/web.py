# ABOUTME: ASGI web entry point serving the Atmosphere dashboard page.
# ABOUTME: Creates a Starlette app with one shared httpx client and renders the Jinja2 template.

import logging
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles
from starlette.templating import Jinja2Templates

from atmosphere.air_quality import pollutant_color, recommendations
from atmosphere.config import Settings
from atmosphere.dashboard import build_dashboard
from atmosphere.deps import create_http_client
from atmosphere.models import FeedError

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent

TREND_LABELS = {
    "rising": "📈 En hausse",
    "falling": "📉 En baisse",
    "stable": "➡️ Stable",
}

templates = Jinja2Templates(directory=str(PACKAGE_DIR / "templates"))
templates.env.globals.update(
    pollutant_color=pollutant_color,
    recommendations=recommendations,
    trend_labels=TREND_LABELS,
)
templates.env.tests["feed_error"] = lambda value: isinstance(value, FeedError)


def client_ip(request: Request) -> str:
    """Peer address of the visitor; run uvicorn with --proxy-headers behind a reverse proxy."""
    return request.client.host if request.client else "127.0.0.1"


async def homepage(request: Request):
    settings: Settings = request.app.state.settings
    dashboard = await build_dashboard(request.app.state.http_client, settings, client_ip(request))
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "dashboard": dashboard,
            "incidents": [i.model_dump(by_alias=True) for i in dashboard.incidents],
            "wastewater_chart": dashboard.wastewater_chart,
            "year": date.today().year,
        },
    )


def create_app(settings: Settings | None = None) -> Starlette:
    """Build the application; the HTTP client lives for the whole process."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        async with create_http_client(settings) as client:
            app.state.http_client = client
            yield

    app = Starlette(
        routes=[
            Route("/", homepage),
            Mount("/static", app=StaticFiles(directory=str(PACKAGE_DIR / "static")), name="static"),
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    return app


app = create_app()


def main() -> None:
    settings = app.state.settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting Atmosphere on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, proxy_headers=True)
