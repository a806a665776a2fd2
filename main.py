"""Main entry point for the exam sync webhook server"""
import logging
import os
import sys

from exam_sync.main import app

logger = logging.getLogger(__name__)

# Expose the app for uvicorn
__all__ = ['app']

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8080))
    logger.info(f"Python version: {sys.version}")
    logger.info(f"Starting server on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)
