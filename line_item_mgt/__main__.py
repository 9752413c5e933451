import uvicorn

from .config import settings

if __name__ == "__main__":
    uvicorn.run("line_item_mgt.main:app", host=settings.api_host, port=settings.api_port)
