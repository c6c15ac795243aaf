from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, Response
from starlette.concurrency import run_in_threadpool

from vm_config_tagger import __version__
from vm_config_tagger.handler import AlarmTagHandler
from vm_config_tagger.logging_config import configure_logging
from vm_config_tagger.settings import Settings, get_settings
from vm_config_tagger.vsphere.connection import ConnectionManager, get_connection_manager

# Set up logging
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None,
               handler: AlarmTagHandler | None = None,
               connection_manager: ConnectionManager | None = None) -> FastAPI:
    """Create the function's FastAPI application.

    `POST /` takes the raw alarm cloud event and answers with the handler's
    message as text/plain and its status code.
    """
    settings = settings or get_settings()
    connection_manager = connection_manager or get_connection_manager()
    handler = handler or AlarmTagHandler(connection_manager=connection_manager)

    configure_logging(settings)
    # Called from the main thread at import/startup time
    connection_manager.install_signal_handlers()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name}")
        yield
        connection_manager.shutdown()

    app = FastAPI(
        title="VM Config Tagger",
        summary="Tag VMs with their next CPU/memory tier on vCenter alarms",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.handler = handler
    app.state.connection_manager = connection_manager

    @app.post("/")
    async def invoke(request: Request) -> Response:
        """Function invocation: alarm cloud event in, status message out."""
        body = await request.body()
        # pyvmomi and requests block, keep them off the event loop
        result = await run_in_threadpool(request.app.state.handler.handle, body)
        return Response(
            content=result.body,
            status_code=result.status_code,
            media_type="text/plain",
        )

    @app.get("/health")
    async def health_check():
        """Health check reporting whether a vSphere session is established."""
        manager = app.state.connection_manager
        return {
            "status": "ok",
            "app": settings.app_name,
            "vsphere_session": "connected" if manager.has_session else "not connected",
        }

    return app


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8080)
