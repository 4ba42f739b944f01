from fastapi import FastAPI

from core.config import apply_cors, configure_logging
from routers.convert_router import router as convert_router


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Blueprint BPMN")

    apply_cors(app)

    # Routry
    app.include_router(convert_router)

    return app


app = create_app()
