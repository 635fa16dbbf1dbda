import uvicorn

from paidmada.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "paidmada.app:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG
    )
