from prometheus_fastapi_instrumentator import Instrumentator

from terminal_inventory import create_app
from terminal_inventory.core.config import settings
from terminal_inventory.core.logging import setup_logging

setup_logging()
app = create_app()
Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
