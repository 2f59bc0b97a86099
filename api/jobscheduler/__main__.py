import uvicorn

from .main import app
from .settings import settings

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
