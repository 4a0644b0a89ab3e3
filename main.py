"""
Family Tree Layout - FastAPI Entry Point
"""
import logging

from fastapi import FastAPI

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Development server configuration
HOST = "0.0.0.0"
PORT = 8000


app = FastAPI(
    title="Family Tree Layout",
    description="Deterministic layout and branch visibility for multi-generation family trees",
    version="1.0.0"
)

from api import tree

app.include_router(tree.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
