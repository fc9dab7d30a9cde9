import uvicorn

from minirecon.config import get_settings
from minirecon.main import app

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
